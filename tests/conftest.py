"""
Pytest configuration file providing shared fixtures and helper functions.
"""
import numpy as np
import pandas as pd
import pytest

from tva_did.settings import Config, generate_tva_panel
from tva_did.utils import first_difference


def make_two_period_panel(x, d, dy, pre=1940, post=1960):
    """Build a two-year panel from covariates, treatment and outcome change.

    The outcome is 0 in the pre year and ``dy`` in the post year, so the
    first difference reproduces ``dy`` exactly.
    """
    x = np.asarray(x, dtype=float)
    if x.ndim == 1:
        x = x[:, np.newaxis]
    n = len(d)
    counties = np.arange(1, n + 1)
    frames = []
    for year, y in ((pre, np.zeros(n)), (post, np.asarray(dy, dtype=float))):
        frame = pd.DataFrame(
            {"county_code": counties, "year": year, "tva": np.asarray(d, dtype=int), "y": y}
        )
        for j in range(x.shape[1]):
            frame[f"x{j + 1}"] = x[:, j]
        frames.append(frame)
    return pd.concat(frames, ignore_index=True)


def make_config(n_covariates=1, **overrides):
    """Quiet config for panels built by make_two_period_panel."""
    params = dict(
        covariate_columns=[f"x{j + 1}" for j in range(n_covariates)],
        outcome_columns=["y"],
        flag_column=None,
        verbose=False,
    )
    params.update(overrides)
    return Config(**params)


def make_first_difference(x, d, dy, **config_overrides):
    """First-differenced table and its config from arrays."""
    x = np.asarray(x, dtype=float)
    n_covariates = 1 if x.ndim == 1 else x.shape[1]
    config = make_config(n_covariates, **config_overrides)
    panel = make_two_period_panel(x, d, dy)
    return first_difference(panel, config, "y"), config


@pytest.fixture
def quiet_config():
    """Default configuration without console output."""
    return Config(verbose=False)


@pytest.fixture
def synthetic_panel(quiet_config):
    """1000-county synthetic panel where treatment depends on covariates."""
    df, true_params = generate_tva_panel(n_counties=1000, config=quiet_config, seed=123)
    return df, true_params


@pytest.fixture
def independent_panel(quiet_config):
    """Large synthetic panel where treatment is independent of covariates."""
    df, true_params = generate_tva_panel(
        n_counties=5000,
        config=quiet_config,
        treatment_covariate_coef=0.0,
        seed=7,
    )
    return df, true_params


@pytest.fixture
def two_county_panel():
    """County A (tva=1): 1.0 -> 1.5; county B (tva=0): 2.0 -> 2.2."""
    return pd.DataFrame(
        {
            "county_code": ["A", "A", "B", "B"],
            "year": [1940, 1960, 1940, 1960],
            "tva": [1, 1, 0, 0],
            "y": [1.0, 1.5, 2.0, 2.2],
        }
    )


@pytest.fixture
def two_county_config():
    """Config for the two-county panel (no covariates)."""
    return Config(
        covariate_columns=[],
        outcome_columns=["y"],
        flag_column=None,
        verbose=False,
    )
