"""
Model estimators package

This package contains the estimation methods organized by approach:
- standard: first-difference DID, outcome regression, IPW, DR-DID, TWFE and
  event study estimators
- sensitivity: inputs for parallel-trends sensitivity analysis
- bootstrap: cluster bootstrap standard errors
- common: result models
"""

# Standard estimation methods
from .standard import (
    estimate_did,
    estimate_outcome_regression,
    estimate_ipw,
    estimate_dr_did,
    estimate_twfe,
    estimate_event_study,
)

# Sensitivity analysis boundary
from .sensitivity import prepare_sensitivity_inputs, run_sensitivity

# Bootstrap
from .bootstrap import ClusterBootstrap

__all__ = [
    # Standard
    "estimate_did",
    "estimate_outcome_regression",
    "estimate_ipw",
    "estimate_dr_did",
    "estimate_twfe",
    "estimate_event_study",
    # Sensitivity
    "prepare_sensitivity_inputs",
    "run_sensitivity",
    # Bootstrap
    "ClusterBootstrap",
]
