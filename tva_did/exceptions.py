"""
Exception and warning classes

Errors abort the estimator call that raised them. OverlapWarning is
informational only and is emitted through the standard warnings module so it
can be filtered with ``warnings.filterwarnings``.
"""

from typing import Any, List, Optional


class TVADIDError(Exception):
    """Base class for all errors raised by the tva_did package"""


class DataIntegrityError(TVADIDError):
    """Duplicate or inconsistent period records for a county

    Args:
        message: Error message
        counties: Offending county identifiers (possibly truncated by caller)
    """

    def __init__(self, message: str, counties: Optional[List[Any]] = None):
        super().__init__(message)
        self.counties = list(counties) if counties is not None else []


class EstimationError(TVADIDError):
    """Nuisance model could not be fitted

    Raised for rank-deficient regressions (too few observations), logistic
    fits that fail to converge, and perfect separation.

    Args:
        message: Error message
        n_obs: Number of observations in the subsample that was fitted
        n_params: Number of parameters in the model
    """

    def __init__(
        self,
        message: str,
        n_obs: Optional[int] = None,
        n_params: Optional[int] = None,
    ):
        super().__init__(message)
        self.n_obs = n_obs
        self.n_params = n_params


class OverlapWarning(UserWarning):
    """Extreme propensity scores or inverse probability weights

    Signals poor covariate overlap between treated and untreated counties.
    Computation continues; weights are never clipped.
    """
