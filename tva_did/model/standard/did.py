"""
Unconditional first-difference DID estimator

ATT = mean(delta_Y | D=1) - mean(delta_Y | D=0)
"""

import numpy as np
import pandas as pd
import statsmodels.api as sm

from ...exceptions import EstimationError
from ...utils import prepare_data_for_estimation
from ..common.models import ATTEstimateResult, FirstDifferenceResult


def estimate_did(fd: FirstDifferenceResult) -> ATTEstimateResult:
    """Calculate the plain first-difference DID estimator

    The point estimate is the difference in mean outcome changes. The standard
    error comes from the equivalent regression delta_Y = a + tau * D + e with
    standard errors clustered on the cluster column; it is None when that
    regression has no residual degrees of freedom or fewer than two clusters.

    Args:
        fd: First-differenced table

    Returns:
        ATT estimate and standard error

    Raises:
        EstimationError: If the treated or untreated group is empty
    """
    _, D, delta_Y = prepare_data_for_estimation(fd)
    n = len(D)
    n_treated = int(D.sum())
    n_control = n - n_treated
    if n_treated == 0 or n_control == 0:
        raise EstimationError(
            f"DID needs treated and untreated records (treated={n_treated}, "
            f"untreated={n_control})",
            n_obs=n,
        )

    att = np.mean(delta_Y[D == 1]) - np.mean(delta_Y[D == 0])

    groups = pd.factorize(fd.data[fd.cluster_column])[0]
    n_clusters = len(np.unique(groups))
    se = None
    if n > 2 and n_clusters > 1:
        exog = np.column_stack([np.ones(n), D])
        model = sm.OLS(delta_Y, exog).fit(
            cov_type="cluster", cov_kwds={"groups": groups}
        )
        se = float(model.bse[1])

    return ATTEstimateResult(
        estimator="DID",
        estimate=float(att),
        standard_error=se,
        n_obs=n,
        n_treated=n_treated,
        n_control=n_control,
    )
