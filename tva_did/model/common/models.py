"""
Common Pydantic models for estimator results

Estimators with the same purpose use common models.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional, Tuple
import numpy as np
import pandas as pd


_NUMPY_CONFIG = ConfigDict(
    arbitrary_types_allowed=True,
    json_encoders={
        np.ndarray: lambda v: v.tolist(),
        np.float64: float,
        np.float32: float,
    },
)


class ATTEstimateResult(BaseModel):
    """ATT estimator results

    Stores ATT (Average Treatment on Treated) estimate and standard error.
    ``standard_error`` is None when no variance estimate is available.
    """

    estimator: str = Field(description="Estimator name")
    estimate: float = Field(description="ATT estimate")
    standard_error: Optional[float] = Field(
        default=None, description="Standard error (non-negative)"
    )
    n_obs: int = Field(ge=0, description="Number of first-differenced records")
    n_treated: int = Field(ge=0, description="Number of treated records")
    n_control: int = Field(ge=0, description="Number of untreated records")

    @field_validator("standard_error")
    @classmethod
    def validate_standard_error(cls, v):
        """Reject negative standard errors (NaN is allowed, handled by caller)"""
        if v is not None and np.isfinite(v) and v < 0:
            raise ValueError(f"standard_error must be non-negative, got {v}")
        return v

    def conf_int(self, z_critical: float = 1.959963984540054) -> Tuple[float, float]:
        """Normal-approximation confidence interval"""
        if self.standard_error is None:
            return (np.nan, np.nan)
        half_width = z_critical * self.standard_error
        return (self.estimate - half_width, self.estimate + half_width)

    model_config = _NUMPY_CONFIG


class OverlapDiagnostics(BaseModel):
    """Propensity score overlap diagnostics

    Weights are reported exactly as used by the estimator (never clipped).
    """

    max_ps_control: float = Field(description="Largest fitted propensity among untreated units")
    min_ps_treated: float = Field(description="Smallest fitted propensity among treated units")
    max_weight_control: float = Field(
        description="Largest Hajek-normalized control weight w0 / mean(w0)"
    )
    max_weight_share_control: float = Field(
        description="Largest single control weight as a share of total control weight"
    )
    effective_n_control: float = Field(
        description="Kish effective sample size of the weighted control group"
    )
    poor_overlap: bool = Field(description="True when a diagnostic threshold was exceeded")

    model_config = _NUMPY_CONFIG


class IPWResult(BaseModel):
    """Inverse probability weighting results

    Both weighting schemes are always reported so that the caller chooses.
    """

    hajek: ATTEstimateResult = Field(description="Hajek-normalized IPW ATT")
    horvitz_thompson: ATTEstimateResult = Field(description="Horvitz-Thompson IPW ATT")
    overlap: OverlapDiagnostics

    model_config = _NUMPY_CONFIG


class DRResult(BaseModel):
    """Doubly robust DID results"""

    att: ATTEstimateResult
    att_mean_difference_form: float = Field(
        description="Same estimate computed as difference of weighted outcome means "
        "minus difference of weighted prediction means"
    )
    overlap: OverlapDiagnostics

    model_config = _NUMPY_CONFIG


class FirstDifferenceResult(BaseModel):
    """One first-differenced record per eligible county"""

    data: pd.DataFrame = Field(description="County-level first-differenced table")
    outcome_column: str
    differenced_column: str
    treatment_column: str
    covariate_columns: List[str]
    cluster_column: str
    periods: Tuple[Any, Any]
    n_counties: int = Field(ge=0)
    n_dropped: int = Field(ge=0, description="Counties dropped for missing periods/covariates")
    dropped_counties: List[Any] = Field(default_factory=list)

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


class PropensityScoreResult(BaseModel):
    """Fitted propensity model"""

    ps: np.ndarray = Field(description="Fitted P(D=1|X) for every record")
    coefficients: np.ndarray = Field(description="Logit coefficients (intercept first)")
    model: Any = Field(description="Fitted model object")

    model_config = _NUMPY_CONFIG


class OutcomeModelResult(BaseModel):
    """Outcome regression fitted on untreated records"""

    predictions: np.ndarray = Field(description="Predicted counterfactual change for every record")
    coefficients: np.ndarray = Field(description="OLS coefficients (intercept first)")
    n_control: int = Field(ge=0)
    model: Any = Field(description="Fitted model object")

    model_config = _NUMPY_CONFIG


class GroupMeansResult(BaseModel):
    """Mean outcome by treatment group and year, and the 2x2 DID"""

    means: pd.DataFrame = Field(description="Rows: years, columns: control / treated / difference")
    did: float = Field(description="DID computed from the four (group, period) cell means")
    periods: Tuple[Any, Any]

    model_config = ConfigDict(arbitrary_types_allowed=True)


class TWFEResult(BaseModel):
    """Two-way fixed effects results"""

    att: ATTEstimateResult
    p_value: float
    n_clusters: int

    model_config = _NUMPY_CONFIG


class EventStudyResult(BaseModel):
    """Event study coefficients ordered by year (reference year excluded)"""

    coefs: pd.DataFrame = Field(description="Columns: year, beta, se, p_value, ci_lower, ci_upper")
    vcov: np.ndarray = Field(description="Covariance of event coefficients, same order as coefs")
    reference_year: int
    pre_years: List[int]
    post_years: List[int]
    pretrend_p_value: float = Field(description="Joint Wald test that pre-period coefficients are zero")
    n_obs: int
    n_clusters: int

    model_config = _NUMPY_CONFIG


class SensitivityInputs(BaseModel):
    """Time-ordered inputs for a parallel-trends sensitivity routine"""

    betahat: np.ndarray
    sigma: np.ndarray
    num_pre_periods: int = Field(ge=1)
    num_post_periods: int = Field(ge=1)
    pre_years: List[int]
    post_years: List[int]

    model_config = _NUMPY_CONFIG


class SensitivityResult(BaseModel):
    """Confidence interval per bound magnitude M"""

    bounds: pd.DataFrame = Field(description="Columns: M, lb, ub, width")
    original_ci: Optional[Tuple[float, float]] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)
