"""
Utility modules for the athlete urine NMR report
"""

from .data_loader import DataLoader, CATEGORY_COLUMNS
from .data_cleaner import DataCleaner
from .cohort_builder import CohortBuilder, COHORT_DEFINITIONS
from .analyzer import StatisticalAnalyzer, ChemometricAnalyzer, PLSDA
from .visualizer import Visualizer

__all__ = [
    'DataLoader',
    'DataCleaner',
    'CohortBuilder',
    'StatisticalAnalyzer',
    'ChemometricAnalyzer',
    'PLSDA',
    'Visualizer',
    'CATEGORY_COLUMNS',
    'COHORT_DEFINITIONS',
]
