"""
DID estimators for the TVA electrification county panel

Subpackages:
- settings: configuration, data loader and synthetic panel generator
- model: estimators, sensitivity-analysis inputs and cluster bootstrap
- run: estimator orchestration and the TVAAnalysis pipeline
- visualization: figures and Markdown report
"""

from .exceptions import TVADIDError, DataIntegrityError, EstimationError, OverlapWarning
from .settings import Config, get_config, generate_tva_panel, load_tva_data

# model must be imported before utils (utils depends on model.common)
from .model import (
    estimate_did,
    estimate_outcome_regression,
    estimate_ipw,
    estimate_dr_did,
    estimate_twfe,
    estimate_event_study,
    prepare_sensitivity_inputs,
    run_sensitivity,
    ClusterBootstrap,
)
from .utils import first_difference
from .run import TVAAnalysis, compute_all_estimators

__version__ = "0.1.0"

__all__ = [
    "TVADIDError",
    "DataIntegrityError",
    "EstimationError",
    "OverlapWarning",
    "Config",
    "get_config",
    "generate_tva_panel",
    "load_tva_data",
    "first_difference",
    "estimate_did",
    "estimate_outcome_regression",
    "estimate_ipw",
    "estimate_dr_did",
    "estimate_twfe",
    "estimate_event_study",
    "prepare_sensitivity_inputs",
    "run_sensitivity",
    "ClusterBootstrap",
    "TVAAnalysis",
    "compute_all_estimators",
]
