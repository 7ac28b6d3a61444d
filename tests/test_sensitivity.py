"""
Tests for the inputs handed to the parallel-trends sensitivity routine.
"""
import numpy as np
import pandas as pd
import pytest

from tva_did.model.common.models import EventStudyResult
from tva_did.model.sensitivity import prepare_sensitivity_inputs, run_sensitivity


@pytest.fixture
def unsorted_event_study():
    """Event study whose coefficient rows are not in calendar order."""
    years = [1940, 1920, 1960]
    beta = np.array([0.4, 0.1, 0.6])
    vcov = np.array(
        [
            [0.04, 0.01, 0.02],
            [0.01, 0.09, 0.03],
            [0.02, 0.03, 0.16],
        ]
    )
    coefs = pd.DataFrame(
        {
            "year": years,
            "beta": beta,
            "se": np.sqrt(np.diag(vcov)),
            "p_value": [0.1, 0.5, 0.01],
            "ci_lower": beta - 0.5,
            "ci_upper": beta + 0.5,
        }
    )
    return EventStudyResult(
        coefs=coefs,
        vcov=vcov,
        reference_year=1930,
        pre_years=[1920],
        post_years=[1940, 1960],
        pretrend_p_value=0.5,
        n_obs=100,
        n_clusters=25,
    )


def recording_bounds(calls):
    """Fake sensitivity routine that records its arguments."""

    def bounds_fn(betahat, sigma, num_pre_periods, num_post_periods, m_values):
        calls.append((betahat, sigma, num_pre_periods, num_post_periods, m_values))
        center = betahat[num_pre_periods]
        return pd.DataFrame(
            {"lb": center - 0.1 - m_values, "ub": center + 0.1 + m_values, "method": "fake"}
        )

    return bounds_fn


def test_inputs_are_pre_then_post_in_calendar_order(unsorted_event_study):
    inputs = prepare_sensitivity_inputs(unsorted_event_study)

    assert inputs.num_pre_periods == 1
    assert inputs.num_post_periods == 2
    assert inputs.pre_years == [1920]
    assert inputs.post_years == [1940, 1960]
    np.testing.assert_allclose(inputs.betahat, [0.1, 0.4, 0.6])
    np.testing.assert_allclose(np.diag(inputs.sigma), [0.09, 0.04, 0.16])
    # Covariance between 1920 and 1960 follows its coefficients
    assert inputs.sigma[0, 2] == pytest.approx(0.03)
    assert inputs.sigma[1, 2] == pytest.approx(0.02)


def test_no_pre_period_raises(unsorted_event_study):
    event_study = unsorted_event_study.model_copy(update={"pre_years": []})
    with pytest.raises(ValueError):
        prepare_sensitivity_inputs(event_study)


def test_run_sensitivity_reports_width_per_m(unsorted_event_study, quiet_config):
    calls = []
    inputs = prepare_sensitivity_inputs(unsorted_event_study)
    result = run_sensitivity(
        inputs, recording_bounds(calls), m_values=[0.0, 1.0], config=quiet_config
    )

    assert len(calls) == 1
    _, _, num_pre, num_post, m_values = calls[0]
    assert (num_pre, num_post) == (1, 2)
    np.testing.assert_allclose(m_values, [0.0, 1.0])

    assert list(result.bounds.columns) == ["M", "lb", "ub", "width"]
    np.testing.assert_allclose(result.bounds["width"], [0.2, 2.2])
    assert result.extra["method"] == ["fake", "fake"]

    lo, hi = result.original_ci
    assert lo < 0.4 < hi
    assert (hi - lo) / 2 == pytest.approx(quiet_config.z_critical * 0.2)


def test_default_m_values_come_from_config(unsorted_event_study, quiet_config):
    calls = []
    inputs = prepare_sensitivity_inputs(unsorted_event_study)
    result = run_sensitivity(inputs, recording_bounds(calls), config=quiet_config)
    assert len(result.bounds) == len(quiet_config.sensitivity_m_values)


def test_negative_m_raises(unsorted_event_study, quiet_config):
    inputs = prepare_sensitivity_inputs(unsorted_event_study)
    with pytest.raises(ValueError):
        run_sensitivity(inputs, recording_bounds([]), m_values=[-1.0], config=quiet_config)


def test_malformed_routine_output_raises(unsorted_event_study, quiet_config):
    inputs = prepare_sensitivity_inputs(unsorted_event_study)

    def missing_ub(betahat, sigma, num_pre, num_post, m_values):
        return pd.DataFrame({"lb": np.zeros(len(m_values))})

    def wrong_length(betahat, sigma, num_pre, num_post, m_values):
        return pd.DataFrame({"lb": [0.0], "ub": [1.0]})

    with pytest.raises(ValueError):
        run_sensitivity(inputs, missing_ub, m_values=[0.0, 1.0], config=quiet_config)
    with pytest.raises(ValueError):
        run_sensitivity(inputs, wrong_length, m_values=[0.0, 1.0], config=quiet_config)


def test_event_study_from_synthetic_panel_feeds_sensitivity(quiet_config):
    from tva_did.model.standard import estimate_event_study
    from tva_did.settings import generate_tva_panel

    df, _ = generate_tva_panel(n_counties=200, config=quiet_config, seed=9)
    event_study = estimate_event_study(df, quiet_config, "ln_manufacturing")
    inputs = prepare_sensitivity_inputs(event_study)

    assert inputs.betahat.shape == (4,)
    assert inputs.sigma.shape == (4, 4)
    assert inputs.num_pre_periods == 1
    assert inputs.num_post_periods == 3
