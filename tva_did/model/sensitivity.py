"""
Sensitivity of event-study conclusions to parallel-trends violations

The bound search itself (e.g. HonestDiD relative-magnitude or smoothness
restrictions, Rambachan & Roth 2023) lives in an external routine. This module
prepares correctly time-ordered inputs for it and summarizes what it returns.

The external routine is any callable with signature

    bounds_fn(betahat, sigma, num_pre_periods, num_post_periods, m_values)

returning a DataFrame (or mapping of columns) with lower and upper bounds for
each M, in the same order as ``m_values``.
"""

import numpy as np
import pandas as pd
from typing import Callable, Optional, Sequence

from ..settings import Config
from .common.models import EventStudyResult, SensitivityInputs, SensitivityResult


BoundsFunction = Callable[[np.ndarray, np.ndarray, int, int, np.ndarray], pd.DataFrame]


def prepare_sensitivity_inputs(event_study: EventStudyResult) -> SensitivityInputs:
    """Extract pre-then-post ordered coefficients and covariance

    Raises:
        ValueError: If there is no pre or no post period, or the covariance
            matrix does not match the coefficient vector
    """
    coefs = event_study.coefs
    years = [int(y) for y in coefs["year"]]
    pre_years = sorted(event_study.pre_years)
    post_years = sorted(event_study.post_years)
    if not pre_years or not post_years:
        raise ValueError(
            f"Sensitivity analysis needs pre and post periods, got pre={pre_years}, "
            f"post={post_years}"
        )

    order = [years.index(y) for y in pre_years + post_years]
    betahat = coefs["beta"].to_numpy(dtype=float)[order]
    sigma = np.asarray(event_study.vcov, dtype=float)
    if sigma.shape != (len(years), len(years)):
        raise ValueError(
            f"Covariance shape {sigma.shape} does not match {len(years)} coefficients"
        )
    sigma = sigma[np.ix_(order, order)]

    return SensitivityInputs(
        betahat=betahat,
        sigma=sigma,
        num_pre_periods=len(pre_years),
        num_post_periods=len(post_years),
        pre_years=pre_years,
        post_years=post_years,
    )


def _validate_inputs(inputs: SensitivityInputs) -> None:
    total = inputs.num_pre_periods + inputs.num_post_periods
    if inputs.betahat.size != total:
        raise ValueError(
            f"betahat length {inputs.betahat.size} != numPrePeriods + numPostPeriods "
            f"({inputs.num_pre_periods} + {inputs.num_post_periods} = {total})"
        )
    if inputs.sigma.shape != (total, total):
        raise ValueError(f"sigma shape {inputs.sigma.shape} != expected {(total, total)}")
    if not np.allclose(inputs.sigma, inputs.sigma.T):
        raise ValueError("sigma must be symmetric")


def run_sensitivity(
    inputs: SensitivityInputs,
    bounds_fn: BoundsFunction,
    m_values: Optional[Sequence[float]] = None,
    config: Optional[Config] = None,
) -> SensitivityResult:
    """Call the external bound routine and report confidence-interval widths

    Args:
        inputs: Time-ordered coefficients and covariance
        bounds_fn: External sensitivity routine
        m_values: Bound magnitudes (uses config.sensitivity_m_values if None)
        config: Configuration object

    Returns:
        Lower bound, upper bound and width for each M

    Raises:
        ValueError: On malformed inputs, negative M, or malformed output
    """
    if config is None:
        config = Config()
    if m_values is None:
        m_values = config.sensitivity_m_values
    m_values = np.asarray(m_values, dtype=float)
    if m_values.size == 0:
        raise ValueError("m_values must not be empty")
    if np.any(m_values < 0):
        raise ValueError(f"m_values must be non-negative; got {m_values.tolist()}")

    _validate_inputs(inputs)

    if config.verbose:
        print(
            f"Sensitivity analysis: {inputs.num_pre_periods} pre / "
            f"{inputs.num_post_periods} post periods, M grid {m_values.tolist()}"
        )

    raw = bounds_fn(
        inputs.betahat,
        inputs.sigma,
        inputs.num_pre_periods,
        inputs.num_post_periods,
        m_values,
    )
    bounds = pd.DataFrame(raw)
    colmap = {str(c).lower(): c for c in bounds.columns}
    lb_col = colmap.get("lb")
    ub_col = colmap.get("ub")
    if lb_col is None or ub_col is None:
        raise ValueError(
            f"Sensitivity routine output must have lb and ub columns, got {list(bounds.columns)}"
        )
    if len(bounds) != m_values.size:
        raise ValueError(
            f"Sensitivity routine returned {len(bounds)} rows for {m_values.size} M values"
        )

    lb = bounds[lb_col].to_numpy(dtype=float)
    ub = bounds[ub_col].to_numpy(dtype=float)
    summary = pd.DataFrame({"M": m_values, "lb": lb, "ub": ub, "width": ub - lb})

    # Conventional CI for the first post-period coefficient, for comparison
    idx = inputs.num_pre_periods
    half = config.z_critical * np.sqrt(inputs.sigma[idx, idx])
    original_ci = (
        float(inputs.betahat[idx] - half),
        float(inputs.betahat[idx] + half),
    )

    extra = {
        str(c): bounds[c].tolist()
        for c in bounds.columns
        if c not in (lb_col, ub_col)
    }
    return SensitivityResult(bounds=summary, original_ci=original_ci, extra=extra)
