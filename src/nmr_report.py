"""
Exploratory report on athlete urine NMR spectra

This script runs the whole analysis in a single pass:
1. Loading of anthropometrics, spectral buckets and sample metadata
2. Cleaning, default pathology flags and bucket scaling
3. Anthropometric summary
4. Cohort construction and shared test split
5. PCA, PLS-DA, VIP, rank-sum tests and test-split scoring per cohort
6. Cross-cohort evolution table and figures

Usage:
    source env/bin/activate
    python src/nmr_report.py
"""

import os
import sys
from datetime import datetime

import pandas as pd

# Add src to path for imports
sys.path.append('src')

from athlete_nmr import (DataLoader, DataCleaner, CohortBuilder, StatisticalAnalyzer,
                         ChemometricAnalyzer, Visualizer)
from athlete_nmr.analyzer import TOP_N, N_COMPONENTS, RANDOM_STATE
from athlete_nmr.visualizer import evolution_arrows


class Tee:
    """Helper class to redirect output to both console and file"""
    def __init__(self, *files):
        self.files = files
    def write(self, obj):
        for f in self.files:
            f.write(obj)
            f.flush()
    def flush(self):
        for f in self.files:
            f.flush()


def analyze_cohort(cohort, bucket_columns, builder, test_df, visualizer):
    """Run every per-cohort analysis and figure; returns the cohort's results"""
    name = cohort['name']
    label_names = cohort['label_names']
    data = cohort['data']
    labels = data['condition_label'].astype(str)

    chemometrics = ChemometricAnalyzer(cohort, bucket_columns)

    pca_results = chemometrics.run_pca()
    visualizer.plot_pca(name, pca_results, labels, label_names)

    plsda_results = chemometrics.run_plsda(n_components=N_COMPONENTS, top_n=TOP_N,
                                           random_state=RANDOM_STATE)
    visualizer.plot_plsda(name, plsda_results, labels, label_names)
    visualizer.plot_vip(name, plsda_results['vip'], top_n=TOP_N)

    top_features = plsda_results['top_features']
    descriptive = StatisticalAnalyzer.describe_groups(data, top_features)
    significance = StatisticalAnalyzer.significance_tests(data, top_features)
    print("\nRank-sum tests (FDR corrected):")
    print(significance.to_string(index=False))

    visualizer.plot_correlation(name, data, top_features)
    visualizer.plot_boxplots(name, data, significance, label_names)

    truth = builder.test_truth(name, test_df)
    test_results = chemometrics.score_test_split(test_df, truth)
    visualizer.plot_confusion_matrix(name, test_results['confusion_matrix'], label_names)

    return {
        'data': data,
        'label_names': label_names,
        'pca': pca_results,
        'plsda': plsda_results,
        'top_features': top_features,
        'descriptive': descriptive,
        'significance': significance,
        'test': test_results,
    }


def main():
    """Main report workflow"""
    print("="*60)
    print("ATHLETE URINE NMR EXPLORATORY REPORT")
    print("="*60)
    print(f"Started at: {datetime.now()}")

    results_dir = "results/nmr_report"
    os.makedirs(results_dir, exist_ok=True)

    log_file = f"{results_dir}/experiment_log.txt"

    with open(log_file, "w", encoding='utf-8') as f:
        original_stdout = sys.stdout
        sys.stdout = Tee(sys.stdout, f)

        try:
            # =====================================
            # STEP 1: DATA LOADING
            # =====================================
            print("\n" + "="*50)
            print("STEP 1: DATA LOADING")
            print("="*50)

            loader = DataLoader()
            loader.explore_structure()
            df_combined, bucket_columns = loader.load_all_data()

            # =====================================
            # STEP 2: DATA CLEANING
            # =====================================
            print("\n" + "="*50)
            print("STEP 2: DATA CLEANING")
            print("="*50)

            cleaner = DataCleaner()
            df_clean = cleaner.clean_dataset(df_combined, bucket_columns)
            print("\n" + cleaner.generate_quality_report(df_clean))

            # =====================================
            # STEP 3: ANTHROPOMETRICS
            # =====================================
            print("\n" + "="*50)
            print("STEP 3: ANTHROPOMETRICS")
            print("="*50)

            summary = StatisticalAnalyzer(df_clean).anthropometric_summary()
            summary.to_csv(f"{results_dir}/anthropometrics.csv")

            # =====================================
            # STEP 4: COHORTS
            # =====================================
            print("\n" + "="*50)
            print("STEP 4: COHORTS")
            print("="*50)

            builder = CohortBuilder(df_clean)
            cohorts = builder.build_all()
            test_df = builder.test_split()
            print(f"Shared test split: {len(test_df)} samples")

            # =====================================
            # STEP 5: PER-COHORT ANALYSIS
            # =====================================
            print("\n" + "="*50)
            print("STEP 5: PER-COHORT ANALYSIS")
            print("="*50)

            visualizer = Visualizer(results_dir)
            cohort_results = {
                name: analyze_cohort(cohort, bucket_columns, builder, test_df, visualizer)
                for name, cohort in cohorts.items()
            }

            # =====================================
            # STEP 6: EVOLUTION TABLE
            # =====================================
            print("\n" + "="*50)
            print("STEP 6: EVOLUTION TABLE")
            print("="*50)

            evolution = StatisticalAnalyzer.evolution_table(cohort_results)
            evolution.to_csv(f"{results_dir}/evolution.csv")
            print(evolution_arrows(evolution).to_string())
            visualizer.plot_evolution(evolution)

            # =====================================
            # STEP 7: SUMMARY
            # =====================================
            print("\n" + "="*50)
            print("STEP 7: SUMMARY")
            print("="*50)

            summary_rows = []
            for name, result in cohort_results.items():
                counts = result['data']['condition_label'].value_counts()
                summary_rows.append({
                    'cohort': name,
                    'n_0': int(counts.get('0', 0)),
                    'n_1': int(counts.get('1', 0)),
                    'cv_accuracy': result['plsda']['cv_scores'].mean(),
                    'test_accuracy': result['test']['accuracy'],
                    'test_excluded': result['test']['n_excluded'],
                    'test_single_class': result['test']['single_class'],
                    'significant_buckets': int(result['significance']['significant'].sum()),
                })
            cohort_summary = pd.DataFrame(summary_rows)
            cohort_summary.to_csv(f"{results_dir}/cohort_summary.csv", index=False)
            print(cohort_summary.to_string(index=False, float_format='%.3f'))

            print(f"\n=== OUTPUT FILES ===")
            print(f"All results saved to: {results_dir}/")

        finally:
            sys.stdout = original_stdout

    print(f"\nReport completed successfully!")
    print(f"Results saved to: {results_dir}/")
    print(f"Log file: {log_file}")
    print(f"Completed at: {datetime.now()}")


if __name__ == "__main__":
    main()
