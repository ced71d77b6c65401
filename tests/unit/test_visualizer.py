#!/usr/bin/env python3
"""
Unit tests for figure generation and the per-cohort report step.
"""

import os

import numpy as np
import pandas as pd
import pytest

from athlete_nmr import CohortBuilder, StatisticalAnalyzer, ChemometricAnalyzer, Visualizer
from athlete_nmr.visualizer import evolution_arrows

from nmr_report import analyze_cohort


@pytest.fixture
def visualizer(tmp_path):
    return Visualizer(str(tmp_path / 'figures'))


class TestVisualizer:

    def test_creates_results_dir(self, tmp_path):
        Visualizer(str(tmp_path / 'new_dir'))
        assert (tmp_path / 'new_dir').is_dir()

    def test_score_plots(self, visualizer, separated_cohort, bucket_columns):
        analyzer = ChemometricAnalyzer(separated_cohort, bucket_columns)
        labels = separated_cohort['data']['condition_label']
        label_names = separated_cohort['label_names']

        pca_path = visualizer.plot_pca('separated', analyzer.run_pca(), labels, label_names)
        plsda_path = visualizer.plot_plsda('separated', analyzer.run_plsda(), labels, label_names)

        assert os.path.isfile(pca_path)
        assert os.path.isfile(plsda_path)

    def test_single_component_scores(self, visualizer):
        scores = pd.DataFrame({'LV1': [0.1, 0.2, -0.3, -0.1]})
        path = visualizer.plot_scores(scores, ['0', '0', '1', '1'], ('a', 'b'),
                                      title='one component', filename='one.png')
        assert os.path.isfile(path)

    def test_vip_and_boxplots(self, visualizer, separated_cohort, bucket_columns):
        data = separated_cohort['data']
        results = ChemometricAnalyzer(separated_cohort, bucket_columns).run_plsda()
        significance = StatisticalAnalyzer.significance_tests(data, results['top_features'][:3])

        assert os.path.isfile(visualizer.plot_vip('separated', results['vip']))
        assert os.path.isfile(visualizer.plot_boxplots('separated', data, significance,
                                                       separated_cohort['label_names']))
        assert os.path.isfile(visualizer.plot_correlation('separated', data, bucket_columns))

    def test_confusion_matrix(self, visualizer):
        cm = np.array([[3, 1], [0, 4]])
        path = visualizer.plot_confusion_matrix('separated', cm, ('before', 'after'))
        assert path.endswith('separated_confusion_matrix.png')
        assert os.path.isfile(path)

    def test_evolution_arrows(self):
        table = pd.DataFrame({'0.98': [1.25, -0.5], '1.33': [0.0, np.nan]},
                             index=['one', 'two'])
        arrows = evolution_arrows(table)
        assert arrows.loc['one', '0.98'] == '▲ 1.25'
        assert arrows.loc['two', '0.98'] == '▼ -0.50'
        assert arrows.loc['one', '1.33'] == '= 0.00'
        assert arrows.loc['two', '1.33'] == ''


class TestReportStep:

    @pytest.mark.parametrize("name", ['first_patho', 'third_mid'])
    def test_analyze_cohort(self, name, camp_table, bucket_columns, visualizer):
        builder = CohortBuilder(camp_table)
        test_df = builder.test_split()
        result = analyze_cohort(builder.build(name), bucket_columns, builder, test_df, visualizer)

        assert len(result['top_features']) == len(bucket_columns)
        assert set(result['significance']['feature']) == set(result['top_features'])
        assert result['test']['confusion_matrix'].shape == (2, 2)
        for suffix in ['pca', 'plsda', 'vip', 'correlation', 'boxplots', 'confusion_matrix']:
            assert os.path.isfile(os.path.join(visualizer.results_dir, f'{name}_{suffix}.png'))

    def test_patho_bucket_stands_out(self, camp_table, bucket_columns, visualizer):
        builder = CohortBuilder(camp_table)
        result = analyze_cohort(builder.build('first_patho'), bucket_columns, builder,
                                builder.test_split(), visualizer)
        assert result['top_features'][0] == '3.03'

        table = StatisticalAnalyzer.evolution_table({'first_patho': result})
        # First day minus first pathological day
        assert table.loc['first_patho', '3.03'] < -1
        assert os.path.isfile(visualizer.plot_evolution(table))

    def test_healthy_cohort_test_accuracy_withheld(self, camp_table, bucket_columns, visualizer):
        # Only day-3 rows of the healthy subjects fall in the shared test split
        builder = CohortBuilder(camp_table)
        result = analyze_cohort(builder.build('third_mid'), bucket_columns, builder,
                                builder.test_split(), visualizer)
        assert result['test']['single_class']
        assert np.isnan(result['test']['accuracy'])
        assert set(result['test']['y_true']) == {'0'}
