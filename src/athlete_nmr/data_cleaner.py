"""
Data cleaning utilities for the athlete urine NMR report
"""

import pandas as pd
import numpy as np
from sklearn.preprocessing import StandardScaler


TRUE_STRINGS = {'1', '1.0', 'true', 'yes', 'y', 'x'}


class DataCleaner:
    """Normalisation of flags, identities and bucket intensities"""

    @staticmethod
    def standardize_flag(value):
        """
        Standardize a pathology flag to bool.
        Missing values mean the sample is healthy.
        """
        if pd.isna(value):
            return False
        if isinstance(value, (bool, np.bool_)):
            return bool(value)
        if isinstance(value, (int, float, np.integer, np.floating)):
            return value != 0
        return str(value).strip().lower() in TRUE_STRINGS

    @staticmethod
    def build_subject(df):
        return df['name'].astype(str).str.strip() + ' ' + df['surname'].astype(str).str.strip()

    @staticmethod
    def scale_buckets(df, bucket_columns):
        """Z-scale every bucket column over the whole dataset"""
        scaled = df.copy()
        values = scaled[bucket_columns].astype(float)
        scaled[bucket_columns] = StandardScaler().fit_transform(values)
        return scaled

    def clean_dataset(self, df, bucket_columns):
        """Normalise the joined table before any subsetting"""
        print("=== Data Cleaning ===")

        df_clean = df.copy()

        df_clean['sample_code'] = df_clean['sample_code'].astype(str).str.strip()
        df_clean['subject'] = self.build_subject(df_clean)

        df_clean['day'] = pd.to_numeric(df_clean['day'], errors='coerce')
        missing_day = df_clean['day'].isnull().sum()
        if missing_day:
            raise ValueError(f"{missing_day} samples have no usable camp day")
        df_clean['day'] = df_clean['day'].astype(int)

        if 'patho' not in df_clean.columns:
            df_clean['patho'] = False
        df_clean['patho'] = df_clean['patho'].apply(self.standardize_flag)

        if 'pathology_during' in df_clean.columns:
            df_clean['pathology_during'] = df_clean['pathology_during'].apply(self.standardize_flag)
        else:
            df_clean['pathology_during'] = False
        # Subject-level flag: symptomatic on any day of the camp
        by_subject = df_clean.groupby('subject')
        df_clean['pathology_during'] = (
            by_subject['pathology_during'].transform('any') | by_subject['patho'].transform('any')
        )

        for col in ['age', 'height', 'weight']:
            df_clean[col] = pd.to_numeric(df_clean[col], errors='coerce')
        df_clean['bmi'] = df_clean['weight'] / (df_clean['height'] / 100) ** 2

        missing_buckets = df_clean[bucket_columns].isnull().sum().sum()
        if missing_buckets:
            raise ValueError(f"{missing_buckets} bucket intensities are missing")

        df_clean = self.scale_buckets(df_clean, bucket_columns)

        print(f"Cleaned dataset: {len(df_clean)} samples, {df_clean['subject'].nunique()} subjects")
        return df_clean

    def generate_quality_report(self, df):
        """Generate a short data quality report"""
        report = []
        report.append("=== DATA QUALITY REPORT ===\n")

        report.append(f"Total samples: {len(df)}")
        report.append(f"Total subjects: {df['subject'].nunique()}")
        report.append(f"Pathological samples: {int(df['patho'].sum())}")
        report.append(
            f"Subjects ill during camp: "
            f"{df.loc[df['pathology_during'], 'subject'].nunique()}"
        )

        report.append("\n=== SAMPLES PER DAY ===")
        for day, count in df['day'].value_counts().sort_index().items():
            report.append(f"  day {day}: {count}")

        duplicated = df.duplicated(subset=['subject', 'day'], keep=False)
        if duplicated.any():
            report.append(
                f"\nWARNING: {int(duplicated.sum())} samples share a subject/day; "
                f"the first one in file order is used"
            )

        report.append("\n=== MISSING DATA ANALYSIS ===")
        for col in ['age', 'height', 'weight']:
            missing_count = df[col].isnull().sum()
            missing_pct = (missing_count / len(df)) * 100
            report.append(f"{col}: {missing_count} missing ({missing_pct:.1f}%)")

        return '\n'.join(report)
