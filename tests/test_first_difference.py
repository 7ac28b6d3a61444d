"""
Tests for first differencing of the county panel.
"""
import numpy as np
import pandas as pd
import pytest

from tva_did.exceptions import DataIntegrityError
from tva_did.utils import first_difference, check_unique_county_years

from conftest import make_config, make_two_period_panel


@pytest.fixture
def small_panel():
    return make_two_period_panel(
        x=[0.1, 0.2, 0.3, 0.4],
        d=[1, 1, 0, 0],
        dy=[0.5, 0.7, 0.1, 0.3],
    )


def test_differenced_column_and_values(small_panel):
    config = make_config()
    fd = first_difference(small_panel, config, "y")

    assert fd.differenced_column == "D_y"
    assert fd.n_counties == 4
    assert fd.n_dropped == 0
    assert fd.periods == (1940, 1960)
    np.testing.assert_allclose(fd.data["D_y"].to_numpy(), [0.5, 0.7, 0.1, 0.3])
    assert fd.data["tva"].tolist() == [1, 1, 0, 0]
    assert list(fd.data["county_code"]) == [1, 2, 3, 4]


def test_input_panel_is_not_modified(small_panel):
    config = make_config()
    before = small_panel.copy()
    first_difference(small_panel, config, "y")
    pd.testing.assert_frame_equal(small_panel, before)


def test_duplicate_county_period_raises(small_panel):
    config = make_config()
    duplicated = pd.concat([small_panel, small_panel.iloc[[0]]], ignore_index=True)

    with pytest.raises(DataIntegrityError) as excinfo:
        first_difference(duplicated, config, "y")
    assert excinfo.value.counties == [1]


def test_duplicates_outside_periods_are_ignored(small_panel):
    config = make_config()
    extra = small_panel.iloc[[0, 0]].copy()
    extra["year"] = 1920
    panel = pd.concat([small_panel, extra], ignore_index=True)

    fd = first_difference(panel, config, "y")
    assert fd.n_counties == 4


def test_incomplete_counties_are_dropped_and_counted(small_panel):
    config = make_config()
    panel = small_panel.copy()
    # County 2 loses its post-period outcome, county 4 a covariate
    panel.loc[(panel["county_code"] == 2) & (panel["year"] == 1960), "y"] = np.nan
    panel.loc[(panel["county_code"] == 4) & (panel["year"] == 1940), "x1"] = np.nan
    # County 5 is only observed outside the differencing periods
    panel = pd.concat(
        [
            panel,
            pd.DataFrame({"county_code": [5], "year": [1920], "tva": [0], "y": [1.0], "x1": [0.5]}),
        ],
        ignore_index=True,
    )

    fd = first_difference(panel, config, "y")

    assert fd.n_counties == 2
    assert fd.n_dropped == 3
    assert sorted(fd.dropped_counties) == [2, 4, 5]
    assert list(fd.data["county_code"]) == [1, 3]


def test_treatment_change_between_periods_raises(small_panel):
    config = make_config()
    panel = small_panel.copy()
    panel.loc[(panel["county_code"] == 3) & (panel["year"] == 1960), "tva"] = 1

    with pytest.raises(DataIntegrityError) as excinfo:
        first_difference(panel, config, "y")
    assert excinfo.value.counties == [3]


def test_covariate_change_between_periods_raises(small_panel):
    config = make_config()
    panel = small_panel.copy()
    panel.loc[(panel["county_code"] == 1) & (panel["year"] == 1960), "x1"] = 0.9

    with pytest.raises(DataIntegrityError):
        first_difference(panel, config, "y")


def test_non_binary_treatment_raises(small_panel):
    config = make_config()
    panel = small_panel.copy()
    panel.loc[panel["county_code"] == 1, "tva"] = 2

    with pytest.raises(ValueError):
        first_difference(panel, config, "y")


def test_missing_column_raises(small_panel):
    config = make_config(n_covariates=2)
    with pytest.raises(KeyError):
        first_difference(small_panel, config, "y")


def test_explicit_periods_override_config():
    panel = make_two_period_panel(x=[0.1, 0.2], d=[1, 0], dy=[1.0, 0.0], pre=1930, post=1950)
    config = make_config()

    fd = first_difference(panel, config, "y", periods=(1930, 1950))
    assert fd.periods == (1930, 1950)
    np.testing.assert_allclose(fd.data["D_y"].to_numpy(), [1.0, 0.0])


def test_check_unique_county_years_accepts_clean_panel(small_panel):
    check_unique_county_years(small_panel, make_config())


def test_synthetic_panel_flagged_counties_dropped(quiet_config):
    from tva_did.settings import generate_tva_panel

    df, _ = generate_tva_panel(
        n_counties=200, config=quiet_config, missing_covariate_share=0.1, seed=3
    )
    fd = first_difference(df, quiet_config, "ln_agriculture")

    assert fd.n_dropped == 20
    assert fd.n_counties == 180
    assert not fd.data[quiet_config.covariate_columns].isna().any().any()
