"""Shared fixtures: small synthetic camp tables."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


BUCKETS = ['0.98', '1.33', '2.05', '3.03', '3.27', '3.56', '4.06', '7.84']


def _frame(rows, seed=0):
    df = pd.DataFrame(rows, columns=['sample_code', 'subject', 'day', 'patho', 'pathology_during'])
    rng = np.random.default_rng(seed)
    for bucket in BUCKETS:
        df[bucket] = rng.normal(size=len(df))
    return df


@pytest.fixture
def bucket_columns():
    return list(BUCKETS)


@pytest.fixture
def sample_table():
    """
    Hand-built table covering the cohort rules.

    Ann: ill, patho on day 5.           Bob: healthy, days 1/3/8/12.
    Cid: ill, patho on days 3 and 9.    Dee: healthy, days 2/3/8.
    Eve: ill, patho on her first day.   Fay: healthy, two samples on day 3.
    """
    rows = [
        ('X1', 'Ann', 1, False, True),     # 0
        ('X3', 'Ann', 3, False, True),     # 1
        ('X5', 'Ann', 5, True, True),      # 2
        ('X8', 'Ann', 8, False, True),     # 3
        ('Y1', 'Bob', 1, False, False),    # 4
        ('Y3', 'Bob', 3, False, False),    # 5
        ('Y8', 'Bob', 8, False, False),    # 6
        ('Y12', 'Bob', 12, False, False),  # 7
        ('Z1', 'Cid', 1, False, True),     # 8
        ('Z3', 'Cid', 3, True, True),      # 9
        ('Z5', 'Cid', 5, False, True),     # 10
        ('Z9', 'Cid', 9, True, True),      # 11
        ('W2', 'Dee', 2, False, False),    # 12
        ('W3', 'Dee', 3, False, False),    # 13
        ('W8', 'Dee', 8, False, False),    # 14
        ('V1', 'Eve', 1, True, True),      # 15
        ('V3', 'Eve', 3, False, True),     # 16
        ('V8', 'Eve', 8, False, True),     # 17
        ('U3a', 'Fay', 3, False, False),   # 18
        ('U3b', 'Fay', 3, False, False),   # 19
        ('U8', 'Fay', 8, False, False),    # 20
    ]
    return _frame(rows)


@pytest.fixture
def camp_table():
    """
    Twelve subjects sampled on days 1, 3, 5, 8 and 12. The first six fall
    ill on day 5 and bucket 3.03 rises on that day.
    """
    rows = []
    for i in range(12):
        ill = i < 6
        for day in [1, 3, 5, 8, 12]:
            patho = ill and day == 5
            rows.append((f'S{i:02d}D{day:02d}', f'subject {i:02d}', day, patho, ill))
    df = _frame(rows, seed=1)
    df.loc[df['patho'], '3.03'] += 3.0
    df['age'] = 20.0 + (df.index % 7)
    df['height'] = 175.0 + (df.index % 5)
    df['weight'] = 70.0 + (df.index % 3)
    df['bmi'] = df['weight'] / (df['height'] / 100) ** 2
    return df


@pytest.fixture
def separated_cohort():
    """Two labelled groups of 15 with a clear shift in bucket 0.98."""
    rng = np.random.default_rng(42)
    n = 15
    df = pd.DataFrame(rng.normal(size=(2 * n, len(BUCKETS))), columns=BUCKETS)
    df.loc[n:, '0.98'] += 3.0
    df['condition_label'] = pd.Categorical(['0'] * n + ['1'] * n, categories=['0', '1'])
    return {
        'name': 'separated',
        'label_names': ('before', 'after'),
        'paired': False,
        'data': df,
    }


@pytest.fixture
def input_files(tmp_path):
    """The three raw input tables written as CSV files."""
    subjects = pd.DataFrame({
        'name': ['Ann', 'Bob'],
        'surname': ['Smith', 'Jones'],
        'age': [24, 31],
        'height': [170, 182],
        'weight': [62, 80],
    })
    buckets = pd.DataFrame({
        'sample_code': ['A1', 'A3', 'B1', 'B3', 'C1'],
        'quality': ['good', 'good', 'poor', 'good', 'good'],
        'day': [1, 3, 1, 3, 1],
        '0.98': [1.0, 2.0, 3.0, 4.0, 5.0],
        '1.33': [10.0, 10.0, 20.0, 20.0, 30.0],
    })
    metadata = pd.DataFrame({
        'sample_code': ['A1', 'A3', 'B1', 'B3'],
        'name': ['Ann', 'Ann', 'Bob', 'Bob'],
        'surname': ['Smith', 'Smith', 'Jones', 'Jones'],
        'day': [1, 3, 1, 3],
        'patho': [np.nan, 1, np.nan, np.nan],
    })

    paths = {}
    for name, df in [('subjects', subjects), ('buckets', buckets), ('metadata', metadata)]:
        path = tmp_path / f'{name}.csv'
        df.to_csv(path, index=False)
        paths[name] = str(path)
    return paths
