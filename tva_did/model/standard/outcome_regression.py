"""
Outcome Regression Difference-in-Differences (OR-DID) Estimator

Based on R package DRDID reg_did_panel (Heckman, Ichimura and Todd, 1997;
Sant'Anna & Zhao, 2020).
"""

import numpy as np
from typing import Optional

from ...exceptions import EstimationError
from ...utils import (
    prepare_data_for_estimation,
    fit_outcome_model,
    ols_asymptotic_linear_rep,
    influence_standard_error,
)
from ..common.models import ATTEstimateResult, FirstDifferenceResult, OutcomeModelResult


def estimate_outcome_regression(
    fd: FirstDifferenceResult,
    outcome_model: Optional[OutcomeModelResult] = None,
) -> ATTEstimateResult:
    """Calculate the outcome regression DID estimator

    Fits delta_Y ~ 1 + X on untreated records, predicts the counterfactual
    change for every record and averages delta_Y - prediction over treated
    records.

    Args:
        fd: First-differenced table
        outcome_model: Previously fitted outcome model (fitted here if None)

    Returns:
        ATT estimate and influence-function standard error

    Raises:
        EstimationError: If there are no treated records, or the untreated
            subsample has fewer records than covariates + 1
    """
    X, D, delta_Y = prepare_data_for_estimation(fd)
    n = len(D)
    n_treated = int(D.sum())
    if n_treated == 0:
        raise EstimationError("Outcome regression DID needs treated records", n_obs=n)

    if outcome_model is None:
        outcome_model = fit_outcome_model(X, D, delta_Y)
    out_delta = outcome_model.predictions

    # Treatment group uses weight 1
    w_treat = D
    mean_w_treat = np.mean(w_treat)

    reg_att_treat = w_treat * delta_Y
    reg_att_cont = w_treat * out_delta
    eta_treat = np.mean(reg_att_treat) / mean_w_treat
    eta_cont = np.mean(reg_att_cont) / mean_w_treat
    reg_att = eta_treat - eta_cont

    # Influence function
    asy_lin_rep_ols = ols_asymptotic_linear_rep(X, D, delta_Y, out_delta)
    inf_treat = (reg_att_treat - w_treat * eta_treat) / mean_w_treat
    inf_cont_1 = reg_att_cont - w_treat * eta_cont
    M1 = np.mean(w_treat[:, np.newaxis] * X, axis=0)
    inf_cont_2 = asy_lin_rep_ols @ M1
    inf_control = (inf_cont_1 + inf_cont_2) / mean_w_treat
    influence_func = inf_treat - inf_control

    return ATTEstimateResult(
        estimator="Outcome regression",
        estimate=float(reg_att),
        standard_error=influence_standard_error(influence_func),
        n_obs=n,
        n_treated=n_treated,
        n_control=n - n_treated,
    )
