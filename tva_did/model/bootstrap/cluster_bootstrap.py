"""
Cluster Bootstrap for Standard Error Estimation

Resamples clusters of the first-differenced table with replacement, re-runs
the estimators on each draw (nuisance models are refitted every time) and
reports the standard deviation of the bootstrap estimates.
"""

import dataclasses
import multiprocessing
import warnings
import numpy as np
import pandas as pd
from typing import Callable, Dict, List, Optional
from joblib import Parallel, delayed
from sklearn.exceptions import ConvergenceWarning
from tqdm import tqdm

from ...exceptions import TVADIDError, OverlapWarning
from ...settings import Config
from ..common.models import FirstDifferenceResult

EstimateFunction = Callable[[FirstDifferenceResult, Config], Dict[str, float]]


def _cluster_bootstrap_iteration(
    fd: FirstDifferenceResult,
    cluster_rows: Dict[object, np.ndarray],
    clusters: np.ndarray,
    estimate_fn: EstimateFunction,
    config: Config,
    iteration_seed: int,
) -> Optional[Dict[str, float]]:
    """Execute one bootstrap iteration

    Returns:
        Dictionary of estimates, or None when the draw could not be estimated
    """
    rng = np.random.default_rng(iteration_seed)
    drawn = rng.choice(clusters, size=len(clusters), replace=True)
    rows = np.concatenate([cluster_rows[c] for c in drawn])
    boot_data = fd.data.iloc[rows].reset_index(drop=True)
    boot_fd = fd.model_copy(update={"data": boot_data, "n_counties": len(boot_data)})

    try:
        return estimate_fn(boot_fd, config)
    except TVADIDError:
        return None


class ClusterBootstrap:
    """Cluster bootstrap class

    Generates bootstrap samples by cluster and estimates standard errors.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize ClusterBootstrap

        Args:
            config: Config object (uses default Config() if None)
        """
        if config is None:
            config = Config()
        self.config = config
        self.n_failed = 0
        self.n_failed_by_estimate: Dict[str, int] = {}

    def _generate_iteration_seeds(self, n_bootstrap: int) -> np.ndarray:
        """Generate independent seeds for each iteration"""
        rng_seed = np.random.default_rng(self.config.random_seed)
        return rng_seed.integers(0, 2**31, size=n_bootstrap)

    def _count_failures(
        self, bootstrap_estimates: List[Dict[str, float]], n_bootstrap: int
    ) -> None:
        """Count failed draws overall and per estimate

        A draw fails for an estimate when the estimate is absent or not
        finite; a draw that returned nothing fails for every estimate.
        """
        n_discarded = n_bootstrap - len(bootstrap_estimates)
        if not bootstrap_estimates:
            self.n_failed = n_bootstrap
            self.n_failed_by_estimate = {}
            return

        bootstrap_df = pd.DataFrame(bootstrap_estimates).astype(float)
        invalid = ~np.isfinite(bootstrap_df)
        self.n_failed = n_discarded + int(invalid.any(axis=1).sum())
        self.n_failed_by_estimate = {
            col: n_discarded + int(invalid[col].sum()) for col in bootstrap_df.columns
        }

    def _compute_standard_errors(
        self, bootstrap_estimates: List[Dict[str, float]], se_suffix: str = "_se"
    ) -> Dict[str, float]:
        """Calculate standard errors from bootstrap estimation results"""
        if not bootstrap_estimates:
            print("Error: No valid bootstrap samples")
            return {}

        bootstrap_df = pd.DataFrame(bootstrap_estimates)
        standard_errors = {}
        for col in bootstrap_df.columns:
            valid_values = bootstrap_df[col].replace([np.inf, -np.inf], np.nan).dropna()
            if len(valid_values) > 1:
                standard_errors[f"{col}{se_suffix}"] = float(valid_values.std())
        return standard_errors

    def estimate_standard_errors(
        self,
        fd: FirstDifferenceResult,
        estimate_fn: EstimateFunction,
        n_bootstrap: Optional[int] = None,
        n_jobs: Optional[int] = None,
    ) -> Dict[str, float]:
        """Run the cluster bootstrap

        Args:
            fd: First-differenced table
            estimate_fn: Function returning a dictionary of point estimates
            n_bootstrap: Number of draws (uses config.n_bootstrap if None)
            n_jobs: Number of parallel jobs (uses config.n_jobs, then half the
                CPU count, if None)

        Returns:
            Dictionary mapping "<estimate>_se" to the bootstrap standard error

        Failed draws are excluded per estimate and counted in ``n_failed``
        (draws with any failure) and ``n_failed_by_estimate``.
        """
        config = self.config
        if n_bootstrap is None:
            n_bootstrap = config.n_bootstrap
        if n_jobs is None:
            n_jobs = config.n_jobs
        if n_jobs is None:
            n_jobs = max(1, multiprocessing.cpu_count() // 2)

        cluster_rows = fd.data.groupby(fd.cluster_column).indices
        clusters = np.array(list(cluster_rows.keys()), dtype=object)
        seeds = self._generate_iteration_seeds(n_bootstrap)
        # Workers stay quiet; progress is shown by the bar below
        worker_config = dataclasses.replace(config, verbose=False)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", OverlapWarning)
            warnings.simplefilter("ignore", ConvergenceWarning)
            # Threading backend avoids pickling the dataframe for every draw
            iterations = Parallel(
                n_jobs=n_jobs, backend="threading", return_as="generator"
            )(
                delayed(_cluster_bootstrap_iteration)(
                    fd, cluster_rows, clusters, estimate_fn, worker_config, seed
                )
                for seed in seeds
            )
            results = list(
                tqdm(
                    iterations,
                    total=n_bootstrap,
                    desc=f"Cluster bootstrap ({fd.outcome_column})",
                    disable=not config.verbose,
                )
            )

        bootstrap_estimates = [r for r in results if r is not None]
        self._count_failures(bootstrap_estimates, n_bootstrap)
        if self.n_failed and config.verbose:
            tqdm.write(
                f"Warning: {self.n_failed} of {n_bootstrap} bootstrap draws failed and were excluded"
            )
            for key, count in self.n_failed_by_estimate.items():
                if count:
                    tqdm.write(f"  {key}: {count} failed draws")

        return self._compute_standard_errors(bootstrap_estimates)
