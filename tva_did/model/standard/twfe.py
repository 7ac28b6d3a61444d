"""
Two-Way Fixed Effects (TWFE) Estimator

Panel regression on the county x year table:
y_it = alpha_i + lambda_t + tau * (tva_i x post_t) + e_it
with county and year dummies and standard errors clustered on the cluster column.
"""

import numpy as np
import pandas as pd
import statsmodels.api as sm
from typing import Tuple

from ...exceptions import EstimationError
from ...settings import Config
from ...utils import check_unique_county_years
from ..common.models import ATTEstimateResult, TWFEResult


def prepare_panel(panel: pd.DataFrame, config: Config, outcome: str) -> pd.DataFrame:
    """Keep complete rows for the regression and reset the index

    Raises:
        DataIntegrityError: If a (county, year) key is duplicated
    """
    columns = [config.county_column, config.year_column, config.treatment_column, outcome]
    if config.cluster_column not in columns:
        columns.append(config.cluster_column)
    df = panel[columns].dropna().reset_index(drop=True)
    check_unique_county_years(df, config)
    return df


def fit_fixed_effects_ols(
    df: pd.DataFrame,
    config: Config,
    outcome: str,
    regressors: pd.DataFrame,
) -> Tuple[object, int]:
    """OLS of outcome on regressors plus county and year dummies, clustered SEs

    Returns:
        Fitted statsmodels results and the number of clusters

    Raises:
        EstimationError: If there are fewer than two clusters or no residual
            degrees of freedom
    """
    county_fe = pd.get_dummies(
        df[config.county_column], prefix="county", drop_first=True, dtype=float
    )
    year_fe = pd.get_dummies(
        df[config.year_column], prefix="year", drop_first=True, dtype=float
    )
    exog = pd.concat([regressors, county_fe, year_fe], axis=1)
    exog.insert(0, "const", 1.0)

    groups = pd.factorize(df[config.cluster_column])[0]
    n_clusters = int(len(np.unique(groups)))
    if n_clusters < 2:
        raise EstimationError(
            f"Clustered standard errors need at least 2 clusters, got {n_clusters}",
            n_obs=len(df),
        )
    if len(df) <= exog.shape[1]:
        raise EstimationError(
            f"Fixed effects regression is underdetermined: {len(df)} observations "
            f"for {exog.shape[1]} parameters",
            n_obs=len(df),
            n_params=exog.shape[1],
        )

    model = sm.OLS(df[outcome].astype(float), exog).fit(
        cov_type="cluster", cov_kwds={"groups": groups}
    )
    return model, n_clusters


def count_treatment_groups(df: pd.DataFrame, config: Config) -> Tuple[int, int]:
    """Number of distinct treated and untreated counties"""
    treated = df.loc[df[config.treatment_column] == 1, config.county_column].nunique()
    control = df.loc[df[config.treatment_column] == 0, config.county_column].nunique()
    return int(treated), int(control)


def estimate_twfe(panel: pd.DataFrame, config: Config, outcome: str) -> TWFEResult:
    """Calculate Two-Way Fixed Effects (TWFE) estimator

    Args:
        panel: County x year panel
        config: Configuration object
        outcome: Outcome column

    Returns:
        ATT estimate, clustered standard error and p-value

    Raises:
        EstimationError: If the treatment x post term is not identified
    """
    df = prepare_panel(panel, config, outcome)
    post = (df[config.year_column] >= config.first_post_year).astype(float)
    treat_post = df[config.treatment_column].astype(float) * post

    n_treated, n_control = count_treatment_groups(df, config)
    if n_treated == 0 or n_control == 0 or post.nunique() < 2:
        raise EstimationError(
            "TWFE needs treated and untreated counties observed before and after "
            f"{config.first_post_year} (treated={n_treated}, untreated={n_control})",
            n_obs=len(df),
        )

    regressors = pd.DataFrame({"tva_post": treat_post})
    model, n_clusters = fit_fixed_effects_ols(df, config, outcome, regressors)

    if config.verbose:
        print(
            f"TWFE {outcome}: tau={model.params['tva_post']:.4f} "
            f"(se={model.bse['tva_post']:.4f}, clusters={n_clusters})"
        )

    return TWFEResult(
        att=ATTEstimateResult(
            estimator="TWFE",
            estimate=float(model.params["tva_post"]),
            standard_error=float(model.bse["tva_post"]),
            n_obs=int(model.nobs),
            n_treated=n_treated,
            n_control=n_control,
        ),
        p_value=float(model.pvalues["tva_post"]),
        n_clusters=n_clusters,
    )
