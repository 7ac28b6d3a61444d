"""
Module providing general-purpose utility functions

This module provides functionality shared by the estimators:
- First differencing of the county panel
- Design matrix construction
- Nuisance model fitting (outcome regression, propensity score)
- Inverse probability weights and overlap diagnostics
- Asymptotic linear representations for influence-function standard errors

Estimator-specific logic is located in model/standard.
"""

import warnings
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Tuple, Any
from sklearn.linear_model import LogisticRegression, LinearRegression

from .exceptions import DataIntegrityError, EstimationError, OverlapWarning
from .settings import Config
from .model.common.models import (
    FirstDifferenceResult,
    OutcomeModelResult,
    OverlapDiagnostics,
    PropensityScoreResult,
)

# Maximum number of county identifiers quoted in error messages
_MAX_REPORTED = 10


# =============================================================================
# Data preprocessing
# =============================================================================


def first_difference(
    panel: pd.DataFrame,
    config: Config,
    outcome: str,
    periods: Optional[Tuple[Any, Any]] = None,
) -> FirstDifferenceResult:
    """Pair each county's pre and post observations and difference the outcome

    Counties without a complete record (outcome, treatment and every covariate
    non-missing) in both periods are dropped and counted. The input panel is
    not modified.

    Args:
        panel: County x year panel
        config: Configuration object (column names, covariates, periods)
        outcome: Outcome column to difference
        periods: (pre, post) labels (uses config.period_columns if None)

    Returns:
        First-differenced table with one row per eligible county

    Raises:
        DataIntegrityError: If a (county, period) key is duplicated, or if
            treatment status or covariates differ between a county's two rows
        KeyError: If a required column is missing
    """
    pre, post = periods if periods is not None else config.period_columns
    county = config.county_column
    year = config.year_column
    treatment = config.treatment_column
    covariates = list(config.covariate_columns)

    columns = [county, year, treatment, outcome] + covariates
    if config.cluster_column not in columns:
        columns.append(config.cluster_column)
    missing = [col for col in columns if col not in panel.columns]
    if missing:
        raise KeyError(f"Panel is missing required columns: {missing}")

    sub = panel.loc[panel[year].isin([pre, post]), columns]
    check_unique_county_years(sub, config)

    complete = sub.dropna(subset=[outcome, treatment] + covariates)
    pre_rows = complete[complete[year] == pre].set_index(county)
    post_rows = complete[complete[year] == post].set_index(county)
    eligible = pre_rows.index.intersection(post_rows.index).sort_values()
    pre_rows = pre_rows.loc[eligible]
    post_rows = post_rows.loc[eligible]

    changed = pre_rows[treatment].to_numpy() != post_rows[treatment].to_numpy()
    if changed.any():
        bad = eligible[changed].tolist()
        raise DataIntegrityError(
            f"Treatment status differs between periods for {len(bad)} counties: "
            f"{bad[:_MAX_REPORTED]}",
            counties=bad,
        )

    pre_x = pre_rows[covariates].to_numpy(dtype=float)
    post_x = post_rows[covariates].to_numpy(dtype=float)
    varying = ~np.isclose(pre_x, post_x).all(axis=1)
    if varying.any():
        bad = eligible[varying].tolist()
        raise DataIntegrityError(
            f"Pre-treatment covariates differ between periods for {len(bad)} counties: "
            f"{bad[:_MAX_REPORTED]}",
            counties=bad,
        )

    treatment_values = pre_rows[treatment].to_numpy()
    if not np.isin(treatment_values, [0, 1]).all():
        raise ValueError(f"Treatment column '{treatment}' must be binary (0/1)")

    differenced = f"D_{outcome}"
    data = pd.DataFrame({county: eligible.to_numpy()})
    data[treatment] = treatment_values.astype(int)
    for col in covariates:
        data[col] = pre_rows[col].to_numpy(dtype=float)
    if config.cluster_column != county:
        data[config.cluster_column] = pre_rows[config.cluster_column].to_numpy()
    data[differenced] = (
        post_rows[outcome].to_numpy(dtype=float) - pre_rows[outcome].to_numpy(dtype=float)
    )

    eligible_set = set(eligible.tolist())
    dropped = [c for c in panel[county].unique().tolist() if c not in eligible_set]

    if config.verbose and dropped:
        print(
            f"First differencing {outcome} ({pre} -> {post}): dropped {len(dropped)} "
            f"counties without complete records in both periods"
        )

    return FirstDifferenceResult(
        data=data,
        outcome_column=outcome,
        differenced_column=differenced,
        treatment_column=treatment,
        covariate_columns=covariates,
        cluster_column=config.cluster_column,
        periods=(pre, post),
        n_counties=int(len(data)),
        n_dropped=int(len(dropped)),
        dropped_counties=dropped,
    )


def check_unique_county_years(panel: pd.DataFrame, config: Config) -> None:
    """Raise DataIntegrityError if any (county, year) key appears twice"""
    county = config.county_column
    duplicated = panel.duplicated(subset=[county, config.year_column], keep=False)
    if duplicated.any():
        bad = sorted(panel.loc[duplicated, county].unique().tolist())
        years = sorted(panel.loc[duplicated, config.year_column].unique().tolist())
        raise DataIntegrityError(
            f"Duplicate (county, period) records for {len(bad)} counties "
            f"in periods {years}: {bad[:_MAX_REPORTED]}",
            counties=bad,
        )


def prepare_data_for_estimation(
    fd: FirstDifferenceResult,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return design matrix (intercept first), treatment and outcome change"""
    df = fd.data
    X = build_design_matrix(df, fd.covariate_columns)
    D = df[fd.treatment_column].to_numpy(dtype=float)
    delta_Y = df[fd.differenced_column].to_numpy(dtype=float)
    return X, D, delta_Y


def build_design_matrix(df: pd.DataFrame, columns: List[str]) -> np.ndarray:
    """Stack an intercept column with the given covariate columns"""
    n = len(df)
    if not columns:
        return np.ones((n, 1))
    return np.column_stack([np.ones(n), df[list(columns)].to_numpy(dtype=float)])


# =============================================================================
# Nuisance models
# =============================================================================


def fit_outcome_model(
    X: np.ndarray, D: np.ndarray, delta_Y: np.ndarray
) -> OutcomeModelResult:
    """Regress the outcome change on covariates among untreated records

    The fitted model is predicted for every record, including treated ones;
    extrapolation outside the untreated covariate support is not flagged.
    Collinear columns (e.g. a constant covariate next to the intercept) are
    absorbed by the minimum-norm least squares solution, so predictions are
    deterministic.

    Raises:
        EstimationError: If there are fewer untreated records than parameters
    """
    control_mask = D == 0
    n_control = int(control_mask.sum())
    n_params = X.shape[1]
    if n_control < n_params:
        raise EstimationError(
            f"Outcome regression is underdetermined: {n_control} untreated records "
            f"for {n_params} parameters (covariates + intercept)",
            n_obs=n_control,
            n_params=n_params,
        )

    reg_model = LinearRegression(fit_intercept=False)
    reg_model.fit(X[control_mask], delta_Y[control_mask])
    predictions = reg_model.predict(X)

    return OutcomeModelResult(
        predictions=predictions,
        coefficients=np.asarray(reg_model.coef_, dtype=float),
        n_control=n_control,
        model=reg_model,
    )


def fit_propensity_model(
    X: np.ndarray, D: np.ndarray, config: Config
) -> PropensityScoreResult:
    """Estimate P(D=1|X) by unpenalized logistic regression on all records

    Raises:
        EstimationError: If one group is empty, the fit does not converge, or
            the fitted scores perfectly separate treated from untreated records
    """
    n = len(D)
    n_treated = int(D.sum())
    if n_treated == 0 or n_treated == n:
        raise EstimationError(
            f"Propensity model needs treated and untreated records "
            f"(treated={n_treated}, untreated={n - n_treated})",
            n_obs=n,
            n_params=X.shape[1],
        )

    ps_model = LogisticRegression(
        penalty=None, fit_intercept=False, max_iter=config.logistic_max_iter
    )
    ps_model.fit(X, D.astype(int))
    # lbfgs reports n_iter_ == max_iter when it stops without converging
    if ps_model.n_iter_[0] >= config.logistic_max_iter:
        raise EstimationError(
            f"Propensity score logit did not converge after "
            f"{config.logistic_max_iter} iterations (possible perfect separation)",
            n_obs=n,
            n_params=X.shape[1],
        )

    ps = ps_model.predict_proba(X)[:, 1]

    # Complete separation: every treated score exceeds every untreated score
    gap = ps[D == 1].min() - ps[D == 0].max()
    if gap > config.separation_tol:
        raise EstimationError(
            "Perfect separation in propensity score model: covariates "
            "completely predict treatment",
            n_obs=n,
            n_params=X.shape[1],
        )

    return PropensityScoreResult(
        ps=ps,
        coefficients=np.asarray(ps_model.coef_, dtype=float).ravel(),
        model=ps_model,
    )


# =============================================================================
# Weights and overlap
# =============================================================================


def compute_ipw_weights(D: np.ndarray, ps: np.ndarray) -> Dict[str, np.ndarray]:
    """Horvitz-Thompson and Hajek-normalized inverse probability weights

    w1 = D / P_n(D=1)
    w0 = (1 - D) * ps / (1 - ps) / P_n(D=1)

    Hajek weights divide each by its own sample mean. Weights are not
    clipped; a control unit with ps == 1 yields an infinite weight.

    Returns:
        Dictionary with keys w_treat, w_cont, w_treat_hajek, w_cont_hajek
    """
    p_treated = np.mean(D)
    with np.errstate(divide="ignore", invalid="ignore"):
        odds = np.where(D == 0, ps / (1 - ps), 0.0)
        w_treat = D / p_treated
        w_cont = (1 - D) * odds / p_treated
        w_treat_hajek = w_treat / np.mean(w_treat)
        w_cont_hajek = w_cont / np.mean(w_cont)

    return {
        "w_treat": w_treat,
        "w_cont": w_cont,
        "w_treat_hajek": w_treat_hajek,
        "w_cont_hajek": w_cont_hajek,
    }


def compute_overlap_diagnostics(
    D: np.ndarray,
    ps: np.ndarray,
    weights: Dict[str, np.ndarray],
    config: Config,
) -> OverlapDiagnostics:
    """Summarize propensity overlap and emit OverlapWarning when poor"""
    control_mask = D == 0
    w0 = weights["w_cont"][control_mask]
    w0_hajek = weights["w_cont_hajek"][control_mask]

    with np.errstate(divide="ignore", invalid="ignore"):
        total = np.sum(w0)
        max_share = float(np.max(w0) / total) if total > 0 else np.nan
        ess = float(total**2 / np.sum(w0**2)) if total > 0 else np.nan

    max_ps_control = float(ps[control_mask].max())
    max_weight = float(np.max(w0_hajek))
    poor = bool(
        max_ps_control >= config.overlap_ps_threshold
        or not np.isfinite(max_weight)
        or max_weight >= config.overlap_max_weight_threshold
    )

    diagnostics = OverlapDiagnostics(
        max_ps_control=max_ps_control,
        min_ps_treated=float(ps[D == 1].min()),
        max_weight_control=max_weight,
        max_weight_share_control=max_share,
        effective_n_control=ess,
        poor_overlap=poor,
    )

    if poor:
        warnings.warn(
            f"Poor covariate overlap: max untreated propensity score "
            f"{max_ps_control:.4f}, max normalized control weight {max_weight:.2f}, "
            f"effective control sample size {ess:.1f} of {int(control_mask.sum())}",
            OverlapWarning,
            stacklevel=3,
        )
    return diagnostics


# =============================================================================
# Influence function helpers
# =============================================================================


def _safe_inverse(matrix: np.ndarray) -> np.ndarray:
    """Inverse, falling back to the pseudo-inverse for ill-conditioned matrices"""
    if np.any(~np.isfinite(matrix)):
        return np.linalg.pinv(matrix)
    try:
        if np.linalg.cond(matrix) > 1e12:
            return np.linalg.pinv(matrix)
        return np.linalg.inv(matrix)
    except np.linalg.LinAlgError:
        return np.linalg.pinv(matrix)


def ols_asymptotic_linear_rep(
    X: np.ndarray, D: np.ndarray, delta_Y: np.ndarray, predictions: np.ndarray
) -> np.ndarray:
    """Asymptotic linear representation of the untreated-only OLS coefficients"""
    n = len(D)
    weights_ols = 1 - D
    wols_x = weights_ols[:, np.newaxis] * X
    wols_eX = weights_ols[:, np.newaxis] * (delta_Y - predictions)[:, np.newaxis] * X
    XpX_inv = _safe_inverse((wols_x.T @ X) / n)
    return wols_eX @ XpX_inv


def logit_asymptotic_linear_rep(
    X: np.ndarray, D: np.ndarray, ps: np.ndarray
) -> np.ndarray:
    """Asymptotic linear representation of the logit coefficients"""
    n = len(D)
    score_ps = (D - ps)[:, np.newaxis] * X
    W = ps * (1 - ps)
    Hessian_ps = _safe_inverse(X.T @ (W[:, np.newaxis] * X)) * n
    return score_ps @ Hessian_ps


def influence_standard_error(influence_func: np.ndarray) -> Optional[float]:
    """Standard error from an influence function (None if undefined)"""
    n = len(influence_func)
    if n < 2 or not np.all(np.isfinite(influence_func)):
        return None
    return float(np.std(influence_func, ddof=1) / np.sqrt(n))
