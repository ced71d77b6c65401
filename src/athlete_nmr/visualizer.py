"""
Visualization utilities for the athlete urine NMR report
"""

import os

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.patches import Ellipse

from .cohort_builder import LABELS


LABEL_COLORS = {LABELS[0]: 'lightcoral', LABELS[1]: 'skyblue'}


def confidence_ellipse(x, y, ax, color, n_std=1.96, alpha=0.15):
    """Draw a 95% confidence ellipse around a 2D point cloud"""
    if len(x) < 3:
        return
    cov = np.cov(x, y)
    if np.any(~np.isfinite(cov)):
        return
    eigvals, eigvecs = np.linalg.eigh(cov)
    eigvals = np.maximum(eigvals, 1e-10)
    angle = np.degrees(np.arctan2(eigvecs[1, 1], eigvecs[0, 1]))
    width, height = 2 * n_std * np.sqrt(eigvals)
    ax.add_patch(Ellipse(
        xy=(np.mean(x), np.mean(y)), width=width, height=height, angle=angle,
        facecolor=color, edgecolor=color, alpha=alpha, linewidth=1.5
    ))


def evolution_arrows(evolution_table):
    """Text version of the evolution table with up/down indicators"""
    def arrow(value):
        if pd.isna(value):
            return ''
        if value > 0:
            return f'▲ {value:.2f}'
        if value < 0:
            return f'▼ {value:.2f}'
        return f'= {value:.2f}'
    return evolution_table.apply(lambda column: column.map(arrow))


class Visualizer:
    """Per-cohort and cross-cohort figures"""

    def __init__(self, results_dir="results"):
        self.results_dir = results_dir
        os.makedirs(results_dir, exist_ok=True)
        plt.style.use('default')
        sns.set_palette("husl")

    def _save(self, filename):
        path = os.path.join(self.results_dir, filename)
        plt.savefig(path, dpi=300, bbox_inches='tight')
        plt.close()
        print(f"Saved {path}")
        return path

    @staticmethod
    def _legend_name(label, label_names):
        return f"{label}: {label_names[int(label)]}"

    def plot_scores(self, scores, labels, label_names, title, filename,
                    explained_variance=None):
        """2D score scatter with one confidence ellipse per label"""
        fig, ax = plt.subplots(figsize=(8, 6))
        x_col, y_col = scores.columns[0], scores.columns[1] if scores.shape[1] > 1 else None
        labels = pd.Series(labels, index=scores.index).astype(str)

        for label in LABELS:
            mask = labels == label
            x = scores.loc[mask, x_col].to_numpy()
            y = scores.loc[mask, y_col].to_numpy() if y_col else np.zeros(len(x))
            color = LABEL_COLORS[label]
            ax.scatter(x, y, alpha=0.8, color=color, edgecolor='k', linewidth=0.3,
                       label=self._legend_name(label, label_names))
            confidence_ellipse(x, y, ax, color)

        x_label, y_label = x_col, y_col or ''
        if explained_variance is not None:
            x_label = f'{x_col} ({explained_variance[0] * 100:.1f}%)'
            if y_col and len(explained_variance) > 1:
                y_label = f'{y_col} ({explained_variance[1] * 100:.1f}%)'
        ax.set_xlabel(x_label)
        ax.set_ylabel(y_label)
        ax.axhline(0, color='grey', linewidth=0.5)
        ax.axvline(0, color='grey', linewidth=0.5)
        ax.set_title(title)
        ax.legend()
        return self._save(filename)

    def plot_pca(self, name, pca_results, labels, label_names):
        return self.plot_scores(
            pca_results['scores'], labels, label_names,
            title=f'PCA - {name}', filename=f'{name}_pca.png',
            explained_variance=pca_results['explained_variance_ratio']
        )

    def plot_plsda(self, name, plsda_results, labels, label_names):
        return self.plot_scores(
            plsda_results['scores'], labels, label_names,
            title=f'PLS-DA scores - {name}', filename=f'{name}_plsda.png'
        )

    def plot_vip(self, name, vip_df, top_n=10):
        top = vip_df.head(top_n).sort_values('vip', ascending=True)
        plt.figure(figsize=(8, 6))
        colors = ['lightcoral' if value >= 1 else 'lightgrey' for value in top['vip']]
        plt.barh(top['feature'].astype(str), top['vip'], color=colors)
        plt.axvline(1, color='grey', linestyle='--', linewidth=0.8)
        plt.xlabel('VIP score')
        plt.title(f'Top {top_n} buckets by VIP - {name}')
        plt.tight_layout()
        return self._save(f'{name}_vip.png')

    def plot_correlation(self, name, cohort_df, features):
        plt.figure(figsize=(10, 8))
        corr = cohort_df[features].corr()
        sns.heatmap(corr, annot=len(features) <= 15, cmap='coolwarm', center=0,
                    square=True, fmt='.2f')
        plt.title(f'Bucket correlation - {name}')
        return self._save(f'{name}_correlation.png')

    def plot_boxplots(self, name, cohort_df, significance, label_names):
        """One boxplot per tested bucket, titled with the adjusted p-value"""
        features = significance['feature'].tolist()
        n_cols = min(5, max(1, len(features)))
        n_rows = int(np.ceil(len(features) / n_cols)) or 1
        fig, axes = plt.subplots(n_rows, n_cols, figsize=(4 * n_cols, 4 * n_rows),
                                 squeeze=False)

        data = cohort_df.assign(condition_label=cohort_df['condition_label'].astype(str))
        for ax, (_, row) in zip(axes.flat, significance.iterrows()):
            sns.boxplot(data=data, x='condition_label', y=row['feature'], order=LABELS,
                        hue='condition_label', hue_order=LABELS, palette=LABEL_COLORS,
                        legend=False, ax=ax)
            ax.set_xticks(range(len(LABELS)))
            ax.set_xticklabels([label_names[0], label_names[1]], rotation=15)
            ax.set_xlabel('')
            p_text = 'n/a' if pd.isna(row['p_adjusted']) else f"{row['p_adjusted']:.3f}"
            ax.set_title(f"{row['feature']}\nq={p_text} {row['stars']}")

        for ax in list(axes.flat)[len(features):]:
            ax.axis('off')

        plt.tight_layout()
        return self._save(f'{name}_boxplots.png')

    def plot_confusion_matrix(self, name, cm, label_names):
        plt.figure(figsize=(6, 5))
        sns.heatmap(cm, annot=True, fmt='d', cmap='Blues',
                    xticklabels=list(label_names), yticklabels=list(label_names))
        plt.ylabel('Expected Label')
        plt.xlabel('Predicted Label')
        plt.title(f'Test split - {name}')
        return self._save(f'{name}_confusion_matrix.png')

    def plot_evolution(self, evolution_table):
        """Heatmap of mean differences: red for increase, blue for decrease"""
        n_rows, n_cols = evolution_table.shape
        plt.figure(figsize=(max(8, 0.6 * n_cols), max(4, 0.6 * n_rows)))
        sns.heatmap(evolution_table.astype(float), annot=True, fmt='.2f', cmap='coolwarm',
                    center=0, cbar_kws={'label': 'mean(1) - mean(0)'})
        plt.title('Evolution of top VIP buckets')
        plt.xlabel('Bucket')
        plt.ylabel('Cohort')
        return self._save('evolution.png')
