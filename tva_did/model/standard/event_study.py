"""
Event study estimator

y_it = alpha_i + lambda_t + sum_{t != ref} beta_t * (tva_i x 1{year = t}) + e_it

Coefficients and their covariance are returned in calendar order so that they
can be handed to a parallel-trends sensitivity routine.
"""

import numpy as np
import pandas as pd
from scipy.stats import chi2

from ...exceptions import EstimationError
from ...settings import Config
from ..common.models import EventStudyResult
from .twfe import prepare_panel, fit_fixed_effects_ols, count_treatment_groups


def _event_column(year: int) -> str:
    return f"tva_x_{year}"


def estimate_event_study(
    panel: pd.DataFrame, config: Config, outcome: str
) -> EventStudyResult:
    """Estimate year-specific treatment coefficients relative to the reference year

    Args:
        panel: County x year panel
        config: Configuration object (event_reference_year, first_post_year)
        outcome: Outcome column

    Returns:
        Ordered coefficients, their clustered covariance matrix, the pre/post
        split and a joint Wald test of the pre-period coefficients

    Raises:
        ValueError: If the reference year is not in the panel
        EstimationError: If treated or untreated counties are missing
    """
    df = prepare_panel(panel, config, outcome)
    years = sorted(int(y) for y in df[config.year_column].unique())
    reference = int(config.event_reference_year)
    if reference not in years:
        raise ValueError(
            f"Reference year {reference} not found in panel years {years}"
        )

    n_treated, n_control = count_treatment_groups(df, config)
    if n_treated == 0 or n_control == 0:
        raise EstimationError(
            f"Event study needs treated and untreated counties "
            f"(treated={n_treated}, untreated={n_control})",
            n_obs=len(df),
        )

    event_years = [y for y in years if y != reference]
    treated = df[config.treatment_column].astype(float)
    regressors = pd.DataFrame(
        {
            _event_column(y): treated * (df[config.year_column] == y).astype(float)
            for y in event_years
        }
    )
    model, n_clusters = fit_fixed_effects_ols(df, config, outcome, regressors)

    names = [_event_column(y) for y in event_years]
    ci = model.conf_int(alpha=1 - config.confidence_level).loc[names]
    coefs = pd.DataFrame(
        {
            "year": event_years,
            "beta": model.params[names].to_numpy(dtype=float),
            "se": model.bse[names].to_numpy(dtype=float),
            "p_value": model.pvalues[names].to_numpy(dtype=float),
            "ci_lower": ci.iloc[:, 0].to_numpy(dtype=float),
            "ci_upper": ci.iloc[:, 1].to_numpy(dtype=float),
        }
    )
    vcov = np.asarray(model.cov_params().loc[names, names], dtype=float)

    pre_years = [y for y in event_years if y < config.first_post_year]
    post_years = [y for y in event_years if y >= config.first_post_year]

    # Joint Wald test that all pre-period coefficients are zero
    pretrend_p = np.nan
    if pre_years:
        idx = [event_years.index(y) for y in pre_years]
        b = coefs["beta"].to_numpy()[idx]
        V = vcov[np.ix_(idx, idx)]
        stat = float(b @ np.linalg.pinv(V) @ b)
        pretrend_p = float(chi2.sf(stat, df=len(idx)))

    if config.verbose:
        print(f"Event study {outcome} (reference year {reference}):")
        for _, row in coefs.iterrows():
            print(f"  {int(row['year'])}: {row['beta']:.4f} (se={row['se']:.4f})")
        if pre_years:
            print(f"  Pre-trend joint test p-value: {pretrend_p:.4f}")

    return EventStudyResult(
        coefs=coefs,
        vcov=vcov,
        reference_year=reference,
        pre_years=pre_years,
        post_years=post_years,
        pretrend_p_value=pretrend_p,
        n_obs=int(model.nobs),
        n_clusters=n_clusters,
    )
