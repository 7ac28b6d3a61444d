"""
Inverse Probability Weighting (IPW) Estimator

Based on R package DRDID ipw_did_panel (Abadie, 2005) and std_ipw_did_panel
(Sant'Anna & Zhao, 2020). Both the Horvitz-Thompson and the Hajek-normalized
versions are computed and returned.
"""

import numpy as np
from typing import Optional

from ...settings import Config
from ...utils import (
    prepare_data_for_estimation,
    fit_propensity_model,
    compute_ipw_weights,
    compute_overlap_diagnostics,
    logit_asymptotic_linear_rep,
    influence_standard_error,
)
from ..common.models import (
    ATTEstimateResult,
    FirstDifferenceResult,
    OverlapDiagnostics,
    IPWResult,
    PropensityScoreResult,
)


def estimate_ipw(
    fd: FirstDifferenceResult,
    config: Config,
    propensity: Optional[PropensityScoreResult] = None,
    overlap: Optional[OverlapDiagnostics] = None,
) -> IPWResult:
    """Calculate Inverse Probability Weighting (IPW) DID estimators

    Horvitz-Thompson: mean(w1 * delta_Y) - mean(w0 * delta_Y)
    Hajek:            mean(w1/mean(w1) * delta_Y) - mean(w0/mean(w0) * delta_Y)

    Args:
        fd: First-differenced table
        config: Configuration object
        propensity: Previously fitted propensity model (fitted here if None)
        overlap: Previously computed overlap diagnostics for this propensity
            model (computed here if None)

    Returns:
        Both IPW estimates with influence-function standard errors, and
        overlap diagnostics

    Raises:
        EstimationError: If the logit fails (one group empty, non-convergence,
            perfect separation)

    References:
        Abadie (2005), Review of Economic Studies, Vol. 72 (1)
        Sant'Anna & Zhao (2020), Journal of Econometrics, Vol. 219 (1)
    """
    X, D, delta_Y = prepare_data_for_estimation(fd)
    n = len(D)
    n_treated = int(D.sum())

    if propensity is None:
        propensity = fit_propensity_model(X, D, config)
    ps = propensity.ps

    weights = compute_ipw_weights(D, ps)
    if overlap is None:
        overlap = compute_overlap_diagnostics(D, ps, weights, config)

    # Horvitz-Thompson
    w_treat = weights["w_treat"]
    w_cont = weights["w_cont"]
    ht_att = np.mean(w_treat * delta_Y) - np.mean(w_cont * delta_Y)

    # Hajek
    hajek_att = np.mean(weights["w_treat_hajek"] * delta_Y) - np.mean(
        weights["w_cont_hajek"] * delta_Y
    )

    asy_lin_rep_ps = logit_asymptotic_linear_rep(X, D, ps)

    # Influence function (Horvitz-Thompson): weights without the 1/P(D=1) factor
    with np.errstate(divide="ignore", invalid="ignore"):
        odds_cont = (1 - D) * ps / (1 - ps)
        mean_D = np.mean(D)
        att_lin1 = D * delta_Y - odds_cont * delta_Y
        mom_logit = np.mean((odds_cont * delta_Y)[:, np.newaxis] * X, axis=0)
        att_lin2 = asy_lin_rep_ps @ mom_logit
        ht_influence = (att_lin1 - att_lin2 - D * ht_att) / mean_D

        # Influence function (Hajek)
        mean_w_cont = np.mean(odds_cont)
        eta_treat = np.mean(D * delta_Y) / mean_D
        eta_cont = np.mean(odds_cont * delta_Y) / mean_w_cont
        inf_treat = (D * delta_Y - D * eta_treat) / mean_D
        inf_cont_1 = odds_cont * delta_Y - odds_cont * eta_cont
        M2 = np.mean(
            (odds_cont * (delta_Y - eta_cont))[:, np.newaxis] * X, axis=0
        )
        inf_cont_2 = asy_lin_rep_ps @ M2
        inf_control = (inf_cont_1 + inf_cont_2) / mean_w_cont
        hajek_influence = inf_treat - inf_control

    common = dict(n_obs=n, n_treated=n_treated, n_control=n - n_treated)
    return IPWResult(
        hajek=ATTEstimateResult(
            estimator="IPW (Hajek)",
            estimate=float(hajek_att),
            standard_error=influence_standard_error(hajek_influence),
            **common,
        ),
        horvitz_thompson=ATTEstimateResult(
            estimator="IPW (Horvitz-Thompson)",
            estimate=float(ht_att),
            standard_error=influence_standard_error(ht_influence),
            **common,
        ),
        overlap=overlap,
    )
