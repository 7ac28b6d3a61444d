"""
Tests for the first-difference estimators: plain DID, outcome regression,
IPW (Horvitz-Thompson and Hajek) and DR-DID.
"""
import warnings

import numpy as np
import pytest

from tva_did.exceptions import EstimationError, OverlapWarning
from tva_did.model.standard import (
    estimate_did,
    estimate_outcome_regression,
    estimate_ipw,
    estimate_dr_did,
    dr_att_residual_form,
    dr_att_mean_difference_form,
)
from tva_did.utils import (
    compute_ipw_weights,
    first_difference,
    fit_propensity_model,
    prepare_data_for_estimation,
)

from conftest import make_first_difference


# =============================================================================
# End-to-end two-county case
# =============================================================================


def test_two_county_did_equals_hand_computed_value(two_county_panel, two_county_config):
    fd = first_difference(two_county_panel, two_county_config, "y")
    result = estimate_did(fd)

    assert result.estimate == pytest.approx(0.3, abs=1e-12)
    assert result.n_treated == 1
    assert result.n_control == 1
    # Two observations leave no residual degrees of freedom
    assert result.standard_error is None


def test_two_county_adjusted_estimators_match_without_covariates(
    two_county_panel, two_county_config
):
    fd = first_difference(two_county_panel, two_county_config, "y")

    assert estimate_outcome_regression(fd).estimate == pytest.approx(0.3, abs=1e-10)
    ipw = estimate_ipw(fd, two_county_config)
    assert ipw.horvitz_thompson.estimate == pytest.approx(0.3, abs=1e-8)
    assert ipw.hajek.estimate == pytest.approx(0.3, abs=1e-8)
    assert estimate_dr_did(fd, two_county_config).att.estimate == pytest.approx(0.3, abs=1e-8)


# =============================================================================
# Doubly robust estimator
# =============================================================================


def test_dr_residual_and_mean_difference_forms_agree(synthetic_panel, quiet_config):
    df, _ = synthetic_panel
    fd = first_difference(df, quiet_config, "ln_manufacturing")
    result = estimate_dr_did(fd, quiet_config)

    assert result.att_mean_difference_form == pytest.approx(result.att.estimate, rel=1e-9)
    assert result.att.standard_error is not None
    assert result.att.standard_error > 0


def test_dr_forms_agree_for_arbitrary_weights():
    rng = np.random.default_rng(0)
    n = 300
    D = (rng.uniform(size=n) < 0.4).astype(float)
    ps = rng.uniform(0.05, 0.95, size=n)
    delta_Y = rng.normal(size=n)
    out_delta = rng.normal(size=n)
    weights = compute_ipw_weights(D, ps)

    residual = dr_att_residual_form(weights, delta_Y, out_delta)
    mean_difference = dr_att_mean_difference_form(weights, delta_Y, out_delta)
    assert mean_difference == pytest.approx(residual, rel=1e-9)


# =============================================================================
# Weights
# =============================================================================


def test_hajek_weights_have_unit_mean():
    rng = np.random.default_rng(1)
    n = 500
    D = (rng.uniform(size=n) < 0.3).astype(float)
    ps = rng.uniform(0.01, 0.99, size=n)
    weights = compute_ipw_weights(D, ps)

    assert np.mean(weights["w_treat_hajek"]) == pytest.approx(1.0, abs=1e-12)
    assert np.mean(weights["w_cont_hajek"]) == pytest.approx(1.0, abs=1e-12)
    assert np.all(weights["w_cont"][D == 1] == 0)
    assert np.all(weights["w_treat"][D == 0] == 0)


def test_weights_are_not_clipped():
    D = np.array([1.0, 0.0, 0.0])
    ps = np.array([0.5, 0.5, 1.0])
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        weights = compute_ipw_weights(D, ps)
    assert np.isinf(weights["w_cont"][2])


def test_ipw_exposes_both_weighting_schemes(synthetic_panel, quiet_config):
    df, _ = synthetic_panel
    fd = first_difference(df, quiet_config, "ln_agriculture")
    result = estimate_ipw(fd, quiet_config)

    assert result.hajek.estimator == "IPW (Hajek)"
    assert result.horvitz_thompson.estimator == "IPW (Horvitz-Thompson)"
    assert np.isfinite(result.hajek.estimate)
    assert np.isfinite(result.horvitz_thompson.estimate)
    assert result.hajek.standard_error > 0
    assert result.horvitz_thompson.standard_error > 0


# =============================================================================
# Degeneracy when treatment is independent of covariates
# =============================================================================


def test_estimators_coincide_when_treatment_independent_of_covariates(
    independent_panel, quiet_config
):
    df, true_params = independent_panel
    fd = first_difference(df, quiet_config, "ln_agriculture")

    did = estimate_did(fd).estimate
    reg = estimate_outcome_regression(fd).estimate
    ipw = estimate_ipw(fd, quiet_config)

    assert reg == pytest.approx(did, abs=0.02)
    assert ipw.hajek.estimate == pytest.approx(did, abs=0.02)
    assert ipw.horvitz_thompson.estimate == pytest.approx(did, abs=0.02)
    assert did == pytest.approx(true_params["att_first_difference"]["ln_agriculture"], abs=0.03)


def test_adjustment_removes_confounding_bias(synthetic_panel, quiet_config):
    df, true_params = synthetic_panel
    fd = first_difference(df, quiet_config, "ln_agriculture")
    truth = true_params["att_first_difference"]["ln_agriculture"]

    did_bias = abs(estimate_did(fd).estimate - truth)
    dr_bias = abs(estimate_dr_did(fd, quiet_config).att.estimate - truth)
    assert dr_bias < did_bias


# =============================================================================
# Boundaries
# =============================================================================


def test_outcome_regression_without_untreated_units_raises():
    fd, _ = make_first_difference(x=[0.1, 0.2, 0.3], d=[1, 1, 1], dy=[1.0, 2.0, 3.0])
    with pytest.raises(EstimationError) as excinfo:
        estimate_outcome_regression(fd)
    assert excinfo.value.n_obs == 0


def test_outcome_regression_underdetermined_raises():
    x = np.column_stack([np.arange(4.0), np.arange(4.0) ** 2])
    fd, _ = make_first_difference(x=x, d=[1, 1, 0, 0], dy=[1.0, 2.0, 3.0, 4.0])
    with pytest.raises(EstimationError):
        estimate_outcome_regression(fd)


def test_did_without_treated_units_raises():
    fd, _ = make_first_difference(x=[0.1, 0.2], d=[0, 0], dy=[1.0, 2.0])
    with pytest.raises(EstimationError):
        estimate_did(fd)


def test_constant_covariate_is_absorbed_deterministically():
    rng = np.random.default_rng(2)
    n = 400
    x = rng.normal(size=n)
    d = (rng.uniform(size=n) < 1 / (1 + np.exp(-x))).astype(int)
    dy = 0.5 * x + 0.2 * d + rng.normal(0, 0.1, size=n)

    fd_plain, config_plain = make_first_difference(x=x, d=d, dy=dy)
    fd_const, config_const = make_first_difference(
        x=np.column_stack([x, np.ones(n)]), d=d, dy=dy
    )

    reg_plain = estimate_outcome_regression(fd_plain).estimate
    reg_const = estimate_outcome_regression(fd_const).estimate
    assert reg_const == pytest.approx(reg_plain, abs=1e-8)

    first = estimate_dr_did(fd_const, config_const).att.estimate
    second = estimate_dr_did(fd_const, config_const).att.estimate
    assert first == second
    assert np.isfinite(first)


# =============================================================================
# Propensity model diagnostics
# =============================================================================


def test_perfect_separation_raises():
    x = np.concatenate([np.linspace(0, 1, 20), np.linspace(2, 3, 20)])
    d = np.array([0] * 20 + [1] * 20)
    fd, config = make_first_difference(x=x, d=d, dy=np.zeros(40))
    X, D, _ = prepare_data_for_estimation(fd)

    with pytest.raises(EstimationError):
        fit_propensity_model(X, D, config)
    with pytest.raises(EstimationError):
        estimate_ipw(fd, config)


def test_poor_overlap_warns_but_still_estimates():
    rng = np.random.default_rng(3)
    x = np.concatenate([rng.normal(0, 0.5, 150), rng.normal(1.5, 0.5, 150)])
    d = np.array([0] * 150 + [1] * 150)
    dy = x + 0.5 * d + rng.normal(0, 0.1, 300)
    fd, config = make_first_difference(
        x=x, d=d, dy=dy, overlap_max_weight_threshold=2.0
    )

    with pytest.warns(OverlapWarning):
        result = estimate_ipw(fd, config)
    assert result.overlap.poor_overlap
    assert result.overlap.max_weight_control >= 2.0
    assert result.overlap.effective_n_control < 150
    assert np.isfinite(result.hajek.estimate)


def test_good_overlap_does_not_warn():
    rng = np.random.default_rng(4)
    n = 500
    x = rng.normal(size=n)
    d = (rng.uniform(size=n) < 0.5).astype(int)
    dy = x + rng.normal(0, 0.1, n)
    fd, config = make_first_difference(x=x, d=d, dy=dy)

    with warnings.catch_warnings():
        warnings.simplefilter("error", OverlapWarning)
        result = estimate_ipw(fd, config)
    assert not result.overlap.poor_overlap
    assert result.overlap.max_ps_control < config.overlap_ps_threshold
