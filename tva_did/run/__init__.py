"""
Execution module

Provides the estimator orchestration and the TVA analysis pipeline.
"""

from .common import (
    ESTIMATOR_COLUMNS,
    compute_all_estimators,
    compute_point_estimates,
)
from .tva_analysis import TVAAnalysis

__all__ = [
    "ESTIMATOR_COLUMNS",
    "compute_all_estimators",
    "compute_point_estimates",
    "TVAAnalysis",
]
