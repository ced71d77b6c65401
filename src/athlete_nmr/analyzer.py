"""
Analysis utilities for the athlete urine NMR report
"""

import pandas as pd
import numpy as np
from scipy import stats
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.cross_decomposition import PLSRegression
from sklearn.decomposition import PCA
from sklearn.metrics import accuracy_score, confusion_matrix
from sklearn.model_selection import StratifiedKFold, cross_val_score
from statsmodels.stats.multitest import multipletests

from .cohort_builder import LABELS


RANDOM_STATE = 42
N_COMPONENTS = 5
N_PCA_COMPONENTS = 5
TOP_N = 10
ALPHA = 0.05
CV_FOLDS = 5


def calculate_vip_scores(pls_model):
    """Variable importance in projection for a fitted PLSRegression"""
    t = pls_model.x_scores_
    w = pls_model.x_weights_
    q = pls_model.y_loadings_
    p, h = w.shape

    # Y variance explained by each latent component
    s = np.diag(t.T @ t @ q.T @ q)
    weights = (w / np.linalg.norm(w, axis=0)) ** 2
    with np.errstate(divide='ignore', invalid='ignore'):
        vip = np.sqrt(p * (weights @ s) / s.sum())
    return np.nan_to_num(vip, nan=0.0)


def significance_stars(p_value):
    if pd.isna(p_value):
        return 'ns'
    if p_value < 0.001:
        return '***'
    if p_value < 0.01:
        return '**'
    if p_value < 0.05:
        return '*'
    return 'ns'


class PLSDA(ClassifierMixin, BaseEstimator):
    """PLS regression on a 0/1 encoded label, predicting "0" or "1" """

    def __init__(self, n_components=N_COMPONENTS):
        self.n_components = n_components

    def fit(self, X, y):
        X = np.asarray(X, dtype=float)
        y = np.asarray(y).astype(str)
        unknown = set(y) - set(LABELS)
        if unknown:
            raise ValueError(f"PLS-DA labels must be {LABELS}, got {sorted(unknown)}")

        self.classes_ = np.array(LABELS)
        self.n_components_ = max(1, min(self.n_components, X.shape[0] - 1, X.shape[1]))
        self.model_ = PLSRegression(n_components=self.n_components_, scale=False)
        self.model_.fit(X, (y == LABELS[1]).astype(float))
        self.vip_ = calculate_vip_scores(self.model_)
        return self

    def decision_function(self, X):
        return self.model_.predict(np.asarray(X, dtype=float)).ravel()

    def predict(self, X):
        return np.where(self.decision_function(X) >= 0.5, LABELS[1], LABELS[0])

    def transform(self, X):
        return self.model_.transform(np.asarray(X, dtype=float))


class StatisticalAnalyzer:
    """Descriptive statistics and univariate tests"""

    def __init__(self, df):
        self.df = df

    def anthropometric_summary(self):
        """Mean ± sd of anthropometrics per camp outcome, one row per subject"""
        print("=== ANTHROPOMETRIC SUMMARY ===")

        subjects = self.df.drop_duplicates(subset='subject', keep='first')
        groups = {
            'healthy': subjects[~subjects['pathology_during']],
            'pathological': subjects[subjects['pathology_during']],
        }

        rows = []
        for col in ['age', 'height', 'weight', 'bmi']:
            row = {'variable': col}
            for group_name, group in groups.items():
                values = group[col].dropna()
                row[group_name] = f"{values.mean():.1f} ± {values.std():.1f}" if len(values) else ''
            healthy = groups['healthy'][col].dropna()
            ill = groups['pathological'][col].dropna()
            if len(healthy) > 0 and len(ill) > 0:
                row['p_value'] = stats.mannwhitneyu(healthy, ill, alternative='two-sided').pvalue
            else:
                row['p_value'] = np.nan
            rows.append(row)

        summary = pd.DataFrame(rows).set_index('variable')
        summary.loc['n'] = [len(groups['healthy']), len(groups['pathological']), np.nan]
        print(summary)
        return summary

    @staticmethod
    def describe_groups(cohort_df, features):
        return cohort_df.groupby('condition_label', observed=False)[features].describe()

    @staticmethod
    def significance_tests(cohort_df, features, fdr_method='fdr_bh', alpha=ALPHA):
        """Rank-sum test per feature between labels, FDR corrected within the cohort"""
        group_0 = cohort_df[cohort_df['condition_label'] == LABELS[0]]
        group_1 = cohort_df[cohort_df['condition_label'] == LABELS[1]]

        rows = []
        for feature in features:
            values_0 = group_0[feature].dropna()
            values_1 = group_1[feature].dropna()
            if len(values_0) == 0 or len(values_1) == 0:
                statistic, p_value = np.nan, np.nan
            else:
                result = stats.mannwhitneyu(values_0, values_1, alternative='two-sided')
                statistic, p_value = result.statistic, result.pvalue
            rows.append({'feature': feature, 'statistic': statistic, 'p_value': p_value})

        results = pd.DataFrame(rows, columns=['feature', 'statistic', 'p_value'])
        results['p_adjusted'] = np.nan

        valid = results['p_value'].notna()
        if valid.any():
            _, corrected, _, _ = multipletests(results.loc[valid, 'p_value'], alpha=alpha,
                                               method=fdr_method)
            results.loc[valid, 'p_adjusted'] = corrected

        results['significant'] = results['p_adjusted'] < alpha
        results['stars'] = results['p_adjusted'].apply(significance_stars)
        return results

    @staticmethod
    def evolution(cohort_df, features, name=None):
        """Group "1" mean minus group "0" mean per feature, two decimals"""
        means = cohort_df.groupby('condition_label', observed=False)[features].mean()
        delta = (means.loc[LABELS[1]] - means.loc[LABELS[0]]).round(2)
        delta.name = name
        return delta

    @classmethod
    def evolution_table(cls, cohort_results):
        """One evolution row per cohort, collected into a single table"""
        rows = [
            cls.evolution(result['data'], result['top_features'], name=name)
            for name, result in cohort_results.items()
        ]
        if not rows:
            return pd.DataFrame()
        table = pd.DataFrame(rows)
        table.index.name = 'cohort'
        return table


class ChemometricAnalyzer:
    """PCA and PLS-DA on a cohort's bucket matrix"""

    def __init__(self, cohort, bucket_columns):
        self.name = cohort['name']
        self.df = cohort['data']
        self.bucket_columns = list(bucket_columns)
        self.model = None

        counts = self.df['condition_label'].value_counts()
        if any(counts.get(label, 0) < 2 for label in LABELS):
            raise ValueError(
                f"Cohort {self.name} needs at least 2 samples per label, "
                f"got {counts.reindex(LABELS, fill_value=0).to_dict()}"
            )

    @property
    def X(self):
        return self.df[self.bucket_columns].to_numpy(dtype=float)

    @property
    def y(self):
        return self.df['condition_label'].astype(str).to_numpy()

    def run_pca(self, n_components=N_PCA_COMPONENTS):
        X = self.X
        n_components = min(n_components, X.shape[0], X.shape[1])
        pca = PCA(n_components=n_components)
        scores = pca.fit_transform(X)

        pc_names = [f'PC{i + 1}' for i in range(n_components)]
        explained = pca.explained_variance_ratio_
        print(f"PCA {self.name}: " + ', '.join(
            f"{pc}={ratio * 100:.1f}%" for pc, ratio in zip(pc_names[:2], explained[:2])
        ))

        return {
            'model': pca,
            'scores': pd.DataFrame(scores, columns=pc_names, index=self.df.index),
            'loadings': pd.DataFrame(pca.components_.T, columns=pc_names,
                                     index=self.bucket_columns),
            'explained_variance_ratio': explained,
        }

    def run_plsda(self, n_components=N_COMPONENTS, top_n=TOP_N, random_state=RANDOM_STATE):
        print(f"\n=== PLS-DA: {self.name} ===")

        X, y = self.X, self.y
        self.model = PLSDA(n_components=n_components).fit(X, y)

        n_splits = min(CV_FOLDS, int(pd.Series(y).value_counts().min()))
        cv = StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=random_state)
        cv_scores = cross_val_score(PLSDA(n_components=n_components), X, y, cv=cv)
        print(f"Cross-validation accuracy ({n_splits} folds): "
              f"{cv_scores.mean():.3f} ± {cv_scores.std():.3f}")

        vip = pd.DataFrame({
            'feature': self.bucket_columns,
            'vip': self.model.vip_,
        }).sort_values('vip', ascending=False).reset_index(drop=True)

        scores = self.model.transform(X)
        lv_names = [f'LV{i + 1}' for i in range(scores.shape[1])]

        print(f"Top {top_n} buckets by VIP:")
        print(vip.head(top_n).to_string(index=False))

        return {
            'model': self.model,
            'scores': pd.DataFrame(scores, columns=lv_names, index=self.df.index),
            'vip': vip,
            'top_features': vip['feature'].head(top_n).tolist(),
            'cv_scores': cv_scores,
        }

    def score_test_split(self, test_df, truth):
        """Predict the shared test split and compare with this cohort's expected labels"""
        if self.model is None:
            raise ValueError(f"PLS-DA for cohort {self.name} has not been fitted")

        known = truth.notna()
        n_excluded = int((~known).sum())
        if n_excluded:
            print(f"Test split: {n_excluded} rows have no counterpart in cohort {self.name}")

        y_true = truth[known].astype(str).to_numpy()
        if len(y_true) == 0:
            return {
                'y_true': y_true,
                'y_pred': np.array([], dtype=str),
                'confusion_matrix': np.zeros((2, 2), dtype=int),
                'accuracy': np.nan,
                'n_excluded': n_excluded,
                'single_class': True,
            }

        y_pred = self.model.predict(test_df.loc[known, self.bucket_columns])
        single_class = len(set(y_true)) < 2
        if single_class:
            accuracy = np.nan
            print(f"Test split: only label {y_true[0]!r} expected for cohort {self.name}, "
                  f"accuracy not reported")
        else:
            accuracy = accuracy_score(y_true, y_pred)
            print(f"Test split accuracy ({len(y_true)} rows): {accuracy:.3f}")

        return {
            'y_true': y_true,
            'y_pred': y_pred,
            'confusion_matrix': confusion_matrix(y_true, y_pred, labels=LABELS),
            'accuracy': accuracy,
            'n_excluded': n_excluded,
            'single_class': single_class,
        }
