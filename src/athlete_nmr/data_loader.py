"""
Data loading utilities for the athlete urine NMR report
"""

import os

import pandas as pd


# Columns carrying annotations rather than spectral intensities
CATEGORY_COLUMNS = [
    'patho', 'day', 'sample_code', 'name', 'surname', 'discriminant',
    'date', 'quality', 'pathology_during', 'filter_condition'
]

SUBJECT_COLUMNS = ['name', 'surname']
ANTHROPOMETRIC_COLUMNS = ['age', 'height', 'weight']
METADATA_COLUMNS = ['sample_code', 'name', 'surname', 'day']


class DataLoader:
    """Handles loading and joining of the three input tables"""

    def __init__(self,
                 subjects_path="data/subjects.csv",
                 buckets_path="data/buckets.csv",
                 metadata_path="data/metadata.csv"):
        self.subjects_path = subjects_path
        self.buckets_path = buckets_path
        self.metadata_path = metadata_path
        self.bucket_columns = []

    @staticmethod
    def read_table(path):
        """Read a CSV or Excel table, picking the reader from the suffix"""
        suffix = os.path.splitext(path)[1].lower()
        if suffix == '.csv':
            return pd.read_csv(path)
        if suffix in ('.xlsx', '.xls'):
            return pd.read_excel(path)
        raise ValueError(f"Unsupported table format '{suffix}' for {path}")

    @staticmethod
    def require_columns(df, columns, table_name):
        missing = [col for col in columns if col not in df.columns]
        if missing:
            raise ValueError(f"{table_name} table is missing required columns: {missing}")

    @staticmethod
    def find_bucket_columns(df):
        """Numeric columns of the spectral table that are not reserved annotations"""
        return [
            col for col in df.columns
            if col not in CATEGORY_COLUMNS and pd.api.types.is_numeric_dtype(df[col])
        ]

    def explore_structure(self):
        """Print the shape and head of each input table"""
        print("=== Input File Structure Analysis ===")

        structure_info = {}
        for label, path in [('subjects', self.subjects_path),
                            ('buckets', self.buckets_path),
                            ('metadata', self.metadata_path)]:
            df = self.read_table(path)
            print(f"\n--- {label}: {path} ---")
            print(f"Shape: {df.shape}")
            print(df.head())
            structure_info[label] = {'shape': df.shape, 'columns': list(df.columns)}

        return structure_info

    def load_subjects(self):
        print(f"\nLoading subjects from {self.subjects_path}...")
        df = self.read_table(self.subjects_path)
        self.require_columns(df, SUBJECT_COLUMNS + ANTHROPOMETRIC_COLUMNS, 'Subjects')
        df = df.drop_duplicates(subset=SUBJECT_COLUMNS, keep='first')
        print(f"Loaded {len(df)} subjects")
        return df

    def load_buckets(self):
        print(f"\nLoading spectral buckets from {self.buckets_path}...")
        df = self.read_table(self.buckets_path)
        self.require_columns(df, ['sample_code'], 'Buckets')

        self.bucket_columns = self.find_bucket_columns(df)
        if not self.bucket_columns:
            raise ValueError("Buckets table has no numeric bucket columns")

        print(f"Loaded {len(df)} spectra with {len(self.bucket_columns)} buckets")
        return df

    def load_metadata(self):
        print(f"\nLoading sample metadata from {self.metadata_path}...")
        df = self.read_table(self.metadata_path)
        self.require_columns(df, METADATA_COLUMNS, 'Metadata')
        print(f"Loaded metadata for {len(df)} samples")
        return df

    def merge_tables(self, subjects, buckets, metadata):
        """Join spectra, metadata and anthropometrics into one row per sample"""
        # Annotation columns present on both sides are taken from the metadata
        shared = [col for col in buckets.columns
                  if col in metadata.columns and col != 'sample_code']
        df = buckets.drop(columns=shared).merge(metadata, on='sample_code', how='inner')

        anthropometrics = subjects[SUBJECT_COLUMNS + ANTHROPOMETRIC_COLUMNS]
        df = df.merge(anthropometrics, on=SUBJECT_COLUMNS, how='left')

        if df['sample_code'].duplicated().any():
            dupes = df.loc[df['sample_code'].duplicated(), 'sample_code'].unique().tolist()
            raise ValueError(f"Duplicate sample codes after join: {dupes}")

        return df

    def load_all_data(self):
        """Load the three tables and join them on sample code"""
        print("=== Loading All Data ===")

        subjects = self.load_subjects()
        buckets = self.load_buckets()
        metadata = self.load_metadata()

        df_combined = self.merge_tables(subjects, buckets, metadata)

        print(f"\nCombined Dataset:")
        print(f"Total samples: {len(df_combined)}")
        print(f"Spectra without metadata: {len(buckets) - len(df_combined)}")

        return df_combined, self.bucket_columns
