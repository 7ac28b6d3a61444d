"""Common result models for estimation methods"""

from .models import (
    ATTEstimateResult,
    OverlapDiagnostics,
    IPWResult,
    DRResult,
    FirstDifferenceResult,
    PropensityScoreResult,
    OutcomeModelResult,
    GroupMeansResult,
    TWFEResult,
    EventStudyResult,
    SensitivityInputs,
    SensitivityResult,
)

__all__ = [
    "ATTEstimateResult",
    "OverlapDiagnostics",
    "IPWResult",
    "DRResult",
    "FirstDifferenceResult",
    "PropensityScoreResult",
    "OutcomeModelResult",
    "GroupMeansResult",
    "TWFEResult",
    "EventStudyResult",
    "SensitivityInputs",
    "SensitivityResult",
]
