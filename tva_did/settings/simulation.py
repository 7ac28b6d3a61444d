"""
Synthetic county-year panel with the TVA schema

The data generation process mirrors the structure of the census panel:
time-invariant 1920/1930 employment-share covariates, county treatment
assigned through a logit model of those covariates, county and year effects,
covariate-specific trends and a dynamic treatment effect after the program
starts.
"""

import numpy as np
import pandas as pd
from scipy.special import expit, logit
from typing import Dict, Optional, Sequence, Tuple

from .config import Config

CENSUS_YEARS = (1920, 1930, 1940, 1950, 1960)


def _generate_covariates(n_counties: int, rng: np.random.Generator) -> Dict[str, np.ndarray]:
    """Generate 1920 and 1930 agriculture / manufacturing employment shares"""
    agriculture_1920 = rng.uniform(0.2, 0.8, size=n_counties)
    agriculture_1930 = np.clip(
        agriculture_1920 + rng.normal(0, 0.05, size=n_counties), 0.01, 0.99
    )
    manufacturing_1920 = rng.uniform(0.02, 0.3, size=n_counties)
    manufacturing_1930 = np.clip(
        manufacturing_1920 + rng.normal(0, 0.03, size=n_counties), 0.005, 0.6
    )
    return {
        "agriculture_share_1920": agriculture_1920,
        "agriculture_share_1930": agriculture_1930,
        "manufacturing_share_1920": manufacturing_1920,
        "manufacturing_share_1930": manufacturing_1930,
    }


def _generate_treatment(
    covariates: Dict[str, np.ndarray],
    treated_share: float,
    treatment_covariate_coef: float,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """Generate TVA assignment from a logit model of 1930 agriculture share

    Returns:
        Treatment indicator and true propensity score

    Raises:
        ValueError: If either group ends up with fewer than 2 counties
    """
    agriculture = covariates["agriculture_share_1930"]
    standardized = (agriculture - agriculture.mean()) / agriculture.std()
    prob_d = expit(logit(treated_share) + treatment_covariate_coef * standardized)
    tva = (rng.uniform(0, 1, size=len(prob_d)) < prob_d).astype(int)

    n_treated = int(tva.sum())
    n_control = len(tva) - n_treated
    if n_treated < 2 or n_control < 2:
        raise ValueError(
            f"Insufficient treatment assignment balance: "
            f"Treatment group={n_treated}, Control group={n_control}"
        )
    return tva, prob_d


def treatment_effect_path(
    years: Sequence[int], att: float, config: Config
) -> Dict[int, float]:
    """Dynamic effect: grows by ``att`` per decade after the reference year"""
    return {
        int(year): (
            att * (year - config.event_reference_year) / 10.0
            if year >= config.first_post_year
            else 0.0
        )
        for year in years
    }


def generate_tva_panel(
    n_counties: int = 1000,
    config: Optional[Config] = None,
    treated_share: float = 0.3,
    treatment_covariate_coef: float = 1.0,
    att_agriculture: float = -0.05,
    att_manufacturing: float = 0.04,
    trend_coef: float = 0.3,
    noise_std: float = 0.05,
    missing_covariate_share: float = 0.0,
    years: Sequence[int] = CENSUS_YEARS,
    seed: Optional[int] = None,
) -> Tuple[pd.DataFrame, Dict[str, object]]:
    """
    Generate a synthetic county x census-year panel

    Args:
        n_counties: Number of counties
        config: Configuration object (column names, periods)
        treated_share: Baseline probability of treatment
        treatment_covariate_coef: Logit coefficient on standardized 1930
            agriculture share (0 makes treatment independent of covariates)
        att_agriculture: Per-decade treatment effect on ln_agriculture
        att_manufacturing: Per-decade treatment effect on ln_manufacturing
        trend_coef: Strength of covariate-specific trends (breaks unconditional
            parallel trends when treatment depends on covariates)
        noise_std: Idiosyncratic error standard deviation
        missing_covariate_share: Share of counties whose covariates are set
            missing and flagged as incomplete
        years: Census years to generate
        seed: Random seed (uses config.random_seed if None)

    Returns:
        Panel dataframe and dictionary of true parameters
    """
    if config is None:
        config = Config()
    if seed is None:
        seed = config.random_seed
    rng = np.random.default_rng(seed)

    covariates = _generate_covariates(n_counties, rng)
    tva, true_ps = _generate_treatment(
        covariates, treated_share, treatment_covariate_coef, rng
    )

    agriculture_c = covariates["agriculture_share_1930"] - covariates[
        "agriculture_share_1930"
    ].mean()
    manufacturing_c = covariates["manufacturing_share_1930"] - covariates[
        "manufacturing_share_1930"
    ].mean()

    alpha_ag = np.log(covariates["agriculture_share_1920"]) + rng.normal(
        0, 0.1, size=n_counties
    )
    alpha_mf = np.log(covariates["manufacturing_share_1920"]) + rng.normal(
        0, 0.1, size=n_counties
    )

    effects_ag = treatment_effect_path(years, att_agriculture, config)
    effects_mf = treatment_effect_path(years, att_manufacturing, config)

    frames = []
    county_ids = np.arange(1, n_counties + 1)
    for year in years:
        s = (year - years[0]) / 10.0
        ln_agriculture = (
            alpha_ag
            - 0.08 * s
            + trend_coef * agriculture_c * s
            + effects_ag[year] * tva
            + rng.normal(0, noise_std, size=n_counties)
        )
        ln_manufacturing = (
            alpha_mf
            + 0.05 * s
            - trend_coef * agriculture_c * s
            + 0.5 * trend_coef * manufacturing_c * s
            + effects_mf[year] * tva
            + rng.normal(0, noise_std, size=n_counties)
        )
        frame = pd.DataFrame(
            {
                config.county_column: county_ids,
                config.year_column: year,
                config.treatment_column: tva,
                "ln_agriculture": ln_agriculture,
                "ln_manufacturing": ln_manufacturing,
            }
        )
        for name, values in covariates.items():
            frame[name] = values
        frames.append(frame)

    df = pd.concat(frames, ignore_index=True)

    complete = np.ones(n_counties, dtype=bool)
    if missing_covariate_share > 0:
        n_missing = int(round(missing_covariate_share * n_counties))
        missing_ids = rng.choice(county_ids, size=n_missing, replace=False)
        complete = ~np.isin(county_ids, missing_ids)
        mask = df[config.county_column].isin(missing_ids)
        df.loc[mask, "manufacturing_share_1920"] = np.nan

    if config.flag_column is not None:
        df[config.flag_column] = np.tile(complete, len(years))

    df = df.sort_values([config.county_column, config.year_column]).reset_index(drop=True)

    pre, post = config.period_columns
    true_params = {
        "att_first_difference": {
            "ln_agriculture": effects_ag.get(post, np.nan) - effects_ag.get(pre, np.nan),
            "ln_manufacturing": effects_mf.get(post, np.nan) - effects_mf.get(pre, np.nan),
        },
        "event_effects": {"ln_agriculture": effects_ag, "ln_manufacturing": effects_mf},
        "propensity": true_ps,
        "n_treated": int(tva.sum()),
    }
    return df, true_params
