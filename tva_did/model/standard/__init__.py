"""Standard DID estimation methods"""

from .did import estimate_did
from .outcome_regression import estimate_outcome_regression
from .ipw import estimate_ipw
from .dr_did import (
    estimate_dr_did,
    dr_att_residual_form,
    dr_att_mean_difference_form,
)
from .twfe import estimate_twfe
from .event_study import estimate_event_study

__all__ = [
    "estimate_did",
    "estimate_outcome_regression",
    "estimate_ipw",
    "estimate_dr_did",
    "dr_att_residual_form",
    "dr_att_mean_difference_form",
    "estimate_twfe",
    "estimate_event_study",
]
