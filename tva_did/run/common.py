"""
Common estimator calculation module

Runs the first-difference estimators on one first-differenced table, sharing
the fitted nuisance models between the estimators that need them.
"""

import dataclasses
import numpy as np
from typing import Any, Dict, Optional

from ..exceptions import TVADIDError
from ..settings import Config
from ..utils import (
    prepare_data_for_estimation,
    fit_outcome_model,
    fit_propensity_model,
    compute_ipw_weights,
    compute_overlap_diagnostics,
)
from ..model.common.models import FirstDifferenceResult
from ..model.standard import (
    estimate_did,
    estimate_outcome_regression,
    estimate_ipw,
    estimate_dr_did,
)
from ..model.bootstrap import ClusterBootstrap

# Constant definitions
ESTIMATOR_COLUMNS = {
    "DID": "did",
    "Outcome regression": "outcome_regression",
    "IPW (Hajek)": "ipw_hajek",
    "IPW (Horvitz-Thompson)": "ipw_horvitz_thompson",
    "DR-DID": "dr_did",
}


def _record_failure(
    errors: Dict[str, str], keys, error: Exception, config: Config, raise_errors: bool
) -> None:
    if raise_errors:
        raise error
    for key in keys:
        errors[key] = str(error)
    if config.verbose:
        print(f"Warning: {', '.join(keys)} calculation failed: {error}")


def compute_all_estimators(
    fd: FirstDifferenceResult,
    config: Config,
    raise_errors: bool = False,
) -> Dict[str, Any]:
    """
    Common function to calculate all first-difference estimators

    Each estimator is attempted independently. A failing estimator is recorded
    under ``errors`` and omitted from ``estimates``; no default value is
    substituted.

    Args:
        fd: First-differenced table
        config: Configuration object
        raise_errors: Re-raise the first estimation error instead of recording it

    Returns:
        Dictionary with keys:
        - estimates: estimator key -> ATTEstimateResult
        - overlap: OverlapDiagnostics (None if the propensity model failed)
        - propensity: PropensityScoreResult (None if the propensity model failed)
        - dr_mean_difference_form: DR estimate in its alternative algebraic form
        - errors: estimator key -> error message
        - se_method: "influence function" or "cluster bootstrap"
        - bootstrap_failures: estimator key -> number of failed bootstrap
          draws (None without the bootstrap)
    """
    estimates = {}
    errors: Dict[str, str] = {}
    overlap = None
    dr_alt = np.nan

    X, D, delta_Y = prepare_data_for_estimation(fd)

    # 1. Plain DID
    try:
        estimates["did"] = estimate_did(fd)
    except TVADIDError as e:
        _record_failure(errors, ["did"], e, config, raise_errors)

    # 2. Nuisance models (fitted once per call)
    outcome_model = None
    try:
        outcome_model = fit_outcome_model(X, D, delta_Y)
    except TVADIDError as e:
        _record_failure(errors, ["outcome_regression", "dr_did"], e, config, raise_errors)

    propensity = None
    try:
        propensity = fit_propensity_model(X, D, config)
    except TVADIDError as e:
        _record_failure(
            errors,
            ["ipw_hajek", "ipw_horvitz_thompson", "dr_did"],
            e,
            config,
            raise_errors,
        )

    # Overlap is diagnosed once and shared by IPW and DR-DID
    if propensity is not None:
        weights = compute_ipw_weights(D, propensity.ps)
        overlap = compute_overlap_diagnostics(D, propensity.ps, weights, config)

    # 3. Outcome regression
    if outcome_model is not None:
        try:
            estimates["outcome_regression"] = estimate_outcome_regression(
                fd, outcome_model=outcome_model
            )
        except TVADIDError as e:
            _record_failure(errors, ["outcome_regression"], e, config, raise_errors)

    # 4. IPW (both weighting schemes)
    if propensity is not None:
        ipw_result = estimate_ipw(fd, config, propensity=propensity, overlap=overlap)
        estimates["ipw_hajek"] = ipw_result.hajek
        estimates["ipw_horvitz_thompson"] = ipw_result.horvitz_thompson

    # 5. DR-DID
    if propensity is not None and outcome_model is not None:
        dr_result = estimate_dr_did(
            fd,
            config,
            propensity=propensity,
            outcome_model=outcome_model,
            overlap=overlap,
        )
        estimates["dr_did"] = dr_result.att
        dr_alt = dr_result.att_mean_difference_form

    se_method = "influence function"
    bootstrap_failures = None
    if config.use_bootstrap_se and estimates:
        bootstrap = ClusterBootstrap(config)
        standard_errors = bootstrap.estimate_standard_errors(fd, compute_point_estimates)
        for key, result in estimates.items():
            estimates[key] = result.model_copy(
                update={"standard_error": standard_errors.get(f"{key}_se")}
            )
        se_method = "cluster bootstrap"
        bootstrap_failures = {
            key: bootstrap.n_failed_by_estimate.get(key, bootstrap.n_failed)
            for key in estimates
        }

    return {
        "estimates": estimates,
        "overlap": overlap,
        "propensity": propensity,
        "dr_mean_difference_form": dr_alt,
        "errors": errors,
        "se_method": se_method,
        "bootstrap_failures": bootstrap_failures,
    }


def compute_point_estimates(
    fd: FirstDifferenceResult, config: Optional[Config] = None
) -> Dict[str, float]:
    """Point estimates only (used for bootstrap draws)

    Every estimator key is returned; an estimator that fails on this sample
    is reported as NaN so the bootstrap can count the failed draw.
    """
    if config is None:
        config = Config(verbose=False)
    # Nested bootstraps are never run
    quiet = dataclasses.replace(config, verbose=False, use_bootstrap_se=False)
    results = compute_all_estimators(fd, quiet, raise_errors=False)
    estimates = results["estimates"]
    return {
        key: estimates[key].estimate if key in estimates else np.nan
        for key in ESTIMATOR_COLUMNS.values()
    }
