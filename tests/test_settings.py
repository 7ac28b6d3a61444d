"""
Tests for configuration, the data loader and the synthetic panel generator.
"""
import numpy as np
import pandas as pd
import pytest
from scipy.stats import norm

from tva_did.settings import (
    CENSUS_YEARS,
    Config,
    TVADataLoader,
    generate_tva_panel,
    get_config,
    load_tva_data,
    treatment_effect_path,
)


# =============================================================================
# Config
# =============================================================================


def test_default_config_schema():
    config = Config()
    assert config.county_column == "county_code"
    assert config.treatment_column == "tva"
    assert config.cluster_column == "county_code"
    assert config.period_columns == (1940, 1960)
    assert config.z_critical == pytest.approx(norm.ppf(0.975))


def test_period_columns_must_have_two_labels():
    with pytest.raises(ValueError):
        Config(period_columns=(1940, 1950, 1960))


def test_get_config_applies_overrides_and_rederives():
    config = get_config("default", {"confidence_level": 0.9, "period_columns": [1930, 1950]})
    assert config.z_critical == pytest.approx(norm.ppf(0.95))
    assert config.period_columns == (1930, 1950)


def test_get_config_ignores_unknown_keys(capsys):
    config = get_config("default", {"not_a_setting": 1})
    assert not hasattr(config, "not_a_setting")
    assert "not_a_setting" in capsys.readouterr().out


def test_simulation_config_is_quiet():
    assert get_config("simulation").verbose is False


# =============================================================================
# Synthetic panel
# =============================================================================


def test_generated_panel_schema(quiet_config):
    df, true_params = generate_tva_panel(n_counties=100, config=quiet_config, seed=1)

    assert len(df) == 100 * len(CENSUS_YEARS)
    assert sorted(df["year"].unique()) == list(CENSUS_YEARS)
    for col in quiet_config.covariate_columns + quiet_config.outcome_columns:
        assert col in df.columns
    assert df[quiet_config.flag_column].all()
    # Treatment and covariates are constant within county
    per_county = df.groupby("county_code")[["tva"] + quiet_config.covariate_columns].nunique()
    assert (per_county == 1).all().all()
    assert true_params["n_treated"] == df.loc[df["year"] == 1920, "tva"].sum()


def test_generated_panel_is_reproducible(quiet_config):
    first, _ = generate_tva_panel(n_counties=50, config=quiet_config, seed=4)
    second, _ = generate_tva_panel(n_counties=50, config=quiet_config, seed=4)
    pd.testing.assert_frame_equal(first, second)


def test_missing_covariate_share_sets_flag(quiet_config):
    df, _ = generate_tva_panel(
        n_counties=100, config=quiet_config, missing_covariate_share=0.2, seed=2
    )
    flagged = df.loc[~df["has_all_covariates"], "county_code"].unique()
    assert len(flagged) == 20
    assert df.loc[~df["has_all_covariates"], "manufacturing_share_1920"].isna().all()
    assert not df.loc[df["has_all_covariates"], "manufacturing_share_1920"].isna().any()


def test_treatment_effect_path_is_zero_before_program(quiet_config):
    path = treatment_effect_path(CENSUS_YEARS, -0.05, quiet_config)
    assert path[1920] == 0.0
    assert path[1930] == 0.0
    assert path[1940] == pytest.approx(-0.05)
    assert path[1960] == pytest.approx(-0.15)


# =============================================================================
# Loader
# =============================================================================


@pytest.fixture
def panel_csv(tmp_path, quiet_config):
    df, _ = generate_tva_panel(
        n_counties=40, config=quiet_config, missing_covariate_share=0.25, seed=8
    )
    path = tmp_path / "tva_panel.csv"
    df.to_csv(path, index=False)
    return str(path), df


def test_loader_applies_data_quality_flag(panel_csv, quiet_config):
    path, original = panel_csv
    loader = TVADataLoader(path, quiet_config)
    df = loader.prepare_analysis_data()

    assert len(df) == int(original["has_all_covariates"].sum())
    assert df["has_all_covariates"].all()
    assert df["county_code"].nunique() == 30
    # The raw data kept by the loader is untouched
    assert len(loader.data) == len(original)


def test_loader_summary(panel_csv, quiet_config):
    path, original = panel_csv
    summary = load_tva_data(path, quiet_config).get_data_summary()

    assert summary["counties"] == 40
    assert summary["years"] == list(CENSUS_YEARS)
    assert summary["missing_covariate_rows"] == 10 * len(CENSUS_YEARS)


def test_loader_rejects_unknown_extension(tmp_path, quiet_config):
    path = tmp_path / "panel.xlsx"
    path.write_text("")
    with pytest.raises(ValueError):
        TVADataLoader(str(path), quiet_config).load_data()


def test_loader_missing_columns_raise(tmp_path, quiet_config):
    path = tmp_path / "panel.csv"
    pd.DataFrame({"county_code": [1], "year": [1940]}).to_csv(path, index=False)
    with pytest.raises(KeyError):
        TVADataLoader(str(path), quiet_config).load_data()
