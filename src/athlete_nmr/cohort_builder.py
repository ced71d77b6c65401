"""
Cohort construction for the athlete urine NMR report

Every cohort contrasts two kinds of sample. Subjects are walked in input
order, their samples ordered by camp day (ties keep file order), and at most
one row per subject is picked for each side. Side A is labelled "0" and
side B "1".
"""

import numpy as np
import pandas as pd


LABELS = ['0', '1']


def first_patho(rows):
    """Earliest sample flagged as pathological"""
    hits = rows.index[rows['patho'].to_numpy()]
    return hits[0] if len(hits) else None


def before_first_patho(rows):
    """Sample immediately preceding the first pathological one"""
    flags = rows['patho'].to_numpy()
    if not flags.any():
        return None
    position = int(np.argmax(flags))
    return rows.index[position - 1] if position > 0 else None


def after_first_patho(rows):
    """Sample immediately following the first pathological one"""
    flags = rows['patho'].to_numpy()
    if not flags.any():
        return None
    position = int(np.argmax(flags))
    return rows.index[position + 1] if position + 1 < len(rows) else None


def earliest(ill):
    def select(rows):
        if subject_ill(rows) != ill:
            return None
        return rows.index[0]
    return select


def latest(ill):
    def select(rows):
        if subject_ill(rows) != ill:
            return None
        return rows.index[-1]
    return select


def on_day(day, ill):
    def select(rows):
        if subject_ill(rows) != ill:
            return None
        hits = rows.index[(rows['day'] == day).to_numpy()]
        return hits[0] if len(hits) else None
    return select


def subject_ill(rows):
    return bool(rows['pathology_during'].any())


# paired: both sides must come from the same subject, otherwise the subject
# is dropped. Unpaired cohorts draw each side from its own set of subjects.
# test_rule: how rows of the shared test split are labelled for this cohort.
COHORT_DEFINITIONS = {
    'first_patho': {
        'group_a': first_patho,
        'group_b': earliest(ill=True),
        'label_names': ('first pathological day', 'first day'),
        'paired': True,
        'test_rule': 'patho',
    },
    'third_patho': {
        'group_a': first_patho,
        'group_b': on_day(3, ill=True),
        'label_names': ('first pathological day', 'day 3'),
        'paired': True,
        'test_rule': 'patho',
    },
    'pre_patho': {
        'group_a': first_patho,
        'group_b': before_first_patho,
        'label_names': ('first pathological day', 'day before'),
        'paired': True,
        'test_rule': 'patho',
    },
    'post_patho': {
        'group_a': first_patho,
        'group_b': after_first_patho,
        'label_names': ('first pathological day', 'day after'),
        'paired': True,
        'test_rule': 'patho',
    },
    'last_patho': {
        'group_a': first_patho,
        'group_b': latest(ill=False),
        'label_names': ('first pathological day', 'last day healthy'),
        'paired': False,
        'test_rule': 'patho',
    },
    'first_third': {
        'group_a': on_day(3, ill=False),
        'group_b': earliest(ill=False),
        'label_names': ('day 3 healthy', 'first day healthy'),
        'paired': True,
        'test_rule': 'selectors',
    },
    'third_mid': {
        'group_a': on_day(3, ill=False),
        'group_b': on_day(8, ill=False),
        'label_names': ('day 3 healthy', 'day 8 healthy'),
        'paired': True,
        'test_rule': 'selectors',
    },
    'patho_mid': {
        'group_a': first_patho,
        'group_b': on_day(8, ill=False),
        'label_names': ('first pathological day', 'day 8 healthy'),
        'paired': False,
        'test_rule': 'patho',
    },
}


class CohortBuilder:
    """Derives the labelled two-group cohorts from the unified sample table"""

    def __init__(self, df):
        self.df = df

    def _subjects(self):
        """Yield each subject's rows ordered by day, subjects in input order"""
        for subject, rows in self.df.groupby('subject', sort=False):
            yield subject, rows.sort_values('day', kind='mergesort')

    @staticmethod
    def get_definition(name):
        if name not in COHORT_DEFINITIONS:
            raise ValueError(
                f"Unknown cohort '{name}'. Available: {list(COHORT_DEFINITIONS)}"
            )
        return COHORT_DEFINITIONS[name]

    def select(self, name):
        """Return the index labels picked for side A and side B"""
        definition = self.get_definition(name)
        picked_a, picked_b = [], []

        for _, rows in self._subjects():
            row_a = definition['group_a'](rows)
            row_b = definition['group_b'](rows)

            if row_a is not None and row_a == row_b:
                continue
            if definition['paired'] and (row_a is None or row_b is None):
                continue

            if row_a is not None:
                picked_a.append(row_a)
            if row_b is not None:
                picked_b.append(row_b)

        return picked_a, picked_b

    def build(self, name):
        """Build one cohort: side A rows then side B rows with condition_label"""
        definition = self.get_definition(name)
        picked_a, picked_b = self.select(name)

        data = self.df.loc[picked_a + picked_b].copy()
        data['condition_label'] = pd.Categorical(
            [LABELS[0]] * len(picked_a) + [LABELS[1]] * len(picked_b),
            categories=LABELS
        )

        print(f"Cohort {name}: {len(picked_a)} '{definition['label_names'][0]}' vs "
              f"{len(picked_b)} '{definition['label_names'][1]}'")

        return {
            'name': name,
            'label_names': definition['label_names'],
            'paired': definition['paired'],
            'data': data,
        }

    def build_all(self):
        print("=== Building Cohorts ===")
        return {name: self.build(name) for name in COHORT_DEFINITIONS}

    def test_split(self):
        """Day 3 samples, pathological samples and the sample after each pathological one"""
        masks = []
        for _, rows in self._subjects():
            follows_patho = rows['patho'].shift(1, fill_value=False).astype(bool)
            masks.append((rows['day'] == 3) | rows['patho'] | follows_patho)

        if not masks:
            return self.df.iloc[0:0].copy()

        mask = pd.concat(masks).reindex(self.df.index, fill_value=False)
        return self.df.loc[mask].copy()

    def test_truth(self, name, test_df):
        """
        Expected condition_label of each test row under this cohort's polarity.

        Pathology-anchored cohorts label pathological rows "0" and every other
        row "1". Healthy temporal cohorts only label the rows their own
        selectors pick; all other rows get NaN and are left out of scoring.
        """
        definition = self.get_definition(name)

        if definition['test_rule'] == 'patho':
            return pd.Series(
                np.where(test_df['patho'].to_numpy(), LABELS[0], LABELS[1]),
                index=test_df.index, dtype=object
            )

        picked_a, picked_b = self.select(name)
        truth = pd.Series(np.nan, index=test_df.index, dtype=object)
        truth[test_df.index.isin(picked_a)] = LABELS[0]
        truth[test_df.index.isin(picked_b)] = LABELS[1]
        return truth
