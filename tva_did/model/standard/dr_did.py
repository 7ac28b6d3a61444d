"""
Doubly Robust Difference-in-Differences (DR-DID) Estimator

Combines the untreated-only outcome regression with Hajek-normalized inverse
probability weights. Consistent if either nuisance model is correctly
specified. Based on R package DRDID (Sant'Anna & Zhao, 2020).
"""

import numpy as np
from typing import Dict, Optional

from ...settings import Config
from ...utils import (
    prepare_data_for_estimation,
    fit_outcome_model,
    fit_propensity_model,
    compute_ipw_weights,
    compute_overlap_diagnostics,
    ols_asymptotic_linear_rep,
    logit_asymptotic_linear_rep,
    influence_standard_error,
)
from ..common.models import (
    ATTEstimateResult,
    DRResult,
    FirstDifferenceResult,
    OverlapDiagnostics,
    OutcomeModelResult,
    PropensityScoreResult,
)


def dr_att_residual_form(
    weights: Dict[str, np.ndarray], delta_Y: np.ndarray, out_delta: np.ndarray
) -> float:
    """mean(w1n * (dY - m)) - mean(w0n * (dY - m)) with Hajek weights"""
    residual = delta_Y - out_delta
    return float(
        np.mean(weights["w_treat_hajek"] * residual)
        - np.mean(weights["w_cont_hajek"] * residual)
    )


def dr_att_mean_difference_form(
    weights: Dict[str, np.ndarray], delta_Y: np.ndarray, out_delta: np.ndarray
) -> float:
    """Difference of weighted outcome means minus difference of weighted prediction means"""
    w1 = weights["w_treat_hajek"]
    w0 = weights["w_cont_hajek"]
    outcome_gap = np.mean(w1 * delta_Y) - np.mean(w0 * delta_Y)
    prediction_gap = np.mean(w1 * out_delta) - np.mean(w0 * out_delta)
    return float(outcome_gap - prediction_gap)


def estimate_dr_did(
    fd: FirstDifferenceResult,
    config: Config,
    propensity: Optional[PropensityScoreResult] = None,
    outcome_model: Optional[OutcomeModelResult] = None,
    overlap: Optional[OverlapDiagnostics] = None,
) -> DRResult:
    """Calculate Doubly Robust Difference-in-Differences (DR-DID) estimator

    Implementation based on R code drdid_panel function.

    Args:
        fd: First-differenced table
        config: Configuration object
        propensity: Previously fitted propensity model (fitted here if None)
        outcome_model: Previously fitted outcome model (fitted here if None)
        overlap: Previously computed overlap diagnostics for this propensity
            model (computed here if None)

    Returns:
        ATT estimate and standard error, the same estimate computed in
        mean-difference form, and overlap diagnostics

    Raises:
        EstimationError: From either nuisance model

    References:
        DRDID (Sant'Anna & Zhao, 2020), Journal of Econometrics, Vol. 219 (1)
    """
    X, D, delta_Y = prepare_data_for_estimation(fd)
    n = len(D)
    n_treated = int(D.sum())

    # 1. Estimate propensity score (logistic regression)
    if propensity is None:
        propensity = fit_propensity_model(X, D, config)
    ps = propensity.ps

    # 2. Estimate outcome regression for control group (least squares)
    if outcome_model is None:
        outcome_model = fit_outcome_model(X, D, delta_Y)
    out_delta = outcome_model.predictions

    # 3. Weights (Hajek normalization inside the estimator)
    weights = compute_ipw_weights(D, ps)
    if overlap is None:
        overlap = compute_overlap_diagnostics(D, ps, weights, config)

    # 4. Calculate DR estimator
    dr_att = dr_att_residual_form(weights, delta_Y, out_delta)
    dr_att_alt = dr_att_mean_difference_form(weights, delta_Y, out_delta)

    # 5. Influence function (R code drdid_panel)
    with np.errstate(divide="ignore", invalid="ignore"):
        w_treat = D
        w_cont = (1 - D) * ps / (1 - ps)
        dr_att_treat = w_treat * (delta_Y - out_delta)
        dr_att_cont = w_cont * (delta_Y - out_delta)
        mean_w_treat = np.mean(w_treat)
        mean_w_cont = np.mean(w_cont)
        eta_treat = np.mean(dr_att_treat) / mean_w_treat
        eta_cont = np.mean(dr_att_cont) / mean_w_cont

        asy_lin_rep_wols = ols_asymptotic_linear_rep(X, D, delta_Y, out_delta)
        asy_lin_rep_ps = logit_asymptotic_linear_rep(X, D, ps)

        # Treatment group: main term and outcome regression estimation effect
        inf_treat_1 = dr_att_treat - w_treat * eta_treat
        M1 = np.mean(w_treat[:, np.newaxis] * X, axis=0)
        inf_treat_2 = asy_lin_rep_wols @ M1
        inf_treat = (inf_treat_1 - inf_treat_2) / mean_w_treat

        # Control group: main term, propensity and outcome regression estimation effects
        inf_cont_1 = dr_att_cont - w_cont * eta_cont
        M2 = np.mean(
            w_cont[:, np.newaxis]
            * (delta_Y - out_delta - eta_cont)[:, np.newaxis]
            * X,
            axis=0,
        )
        inf_cont_2 = asy_lin_rep_ps @ M2
        M3 = np.mean(w_cont[:, np.newaxis] * X, axis=0)
        inf_cont_3 = asy_lin_rep_wols @ M3
        inf_control = (inf_cont_1 + inf_cont_2 - inf_cont_3) / mean_w_cont

        influence_func = inf_treat - inf_control

    return DRResult(
        att=ATTEstimateResult(
            estimator="DR-DID",
            estimate=dr_att,
            standard_error=influence_standard_error(influence_func),
            n_obs=n,
            n_treated=n_treated,
            n_control=n - n_treated,
        ),
        att_mean_difference_form=dr_att_alt,
        overlap=overlap,
    )
