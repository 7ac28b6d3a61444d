"""
Module providing the analysis pipeline for the TVA county panel

Main features:
- TVAAnalysis: runs every estimator on each outcome column
  - Group means and the 2x2 DID computed from cell means
  - Two-way fixed effects and event-study regressions
  - First-difference DID, outcome regression, IPW and DR-DID
  - Inputs for the parallel-trends sensitivity analysis

Note:
- The panel is never modified; every step works on its own selection
- A failure in one step is recorded under "errors" and the remaining steps
  still run
"""

import numpy as np
import pandas as pd
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..exceptions import TVADIDError
from ..settings import Config
from ..utils import first_difference
from ..model.common.models import (
    EventStudyResult,
    FirstDifferenceResult,
    GroupMeansResult,
    SensitivityResult,
    TWFEResult,
)
from ..model.standard import estimate_twfe, estimate_event_study
from ..model.sensitivity import BoundsFunction, prepare_sensitivity_inputs, run_sensitivity
from .common import compute_all_estimators


class TVAAnalysis:
    """
    Analysis class for the TVA electrification panel

    Each ``estimate_*`` method handles one outcome; ``run`` loops over
    ``config.outcome_columns`` and collects everything into one dictionary.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize TVAAnalysis

        Args:
            config: Config object (uses default Config() if None)
        """
        if config is None:
            config = Config()
        self.config = config

    def group_means(
        self,
        panel: pd.DataFrame,
        outcome: str,
        periods: Optional[Tuple[Any, Any]] = None,
    ) -> GroupMeansResult:
        """Mean outcome by treatment group and year

        The DID is taken from the four (group, period) cell means:
        (treated_post - control_post) - (treated_pre - control_pre).

        Raises:
            ValueError: If a group or period has no observations
        """
        config = self.config
        pre, post = periods if periods is not None else config.period_columns
        df = panel[[config.year_column, config.treatment_column, outcome]].dropna()

        means = (
            df.groupby([config.year_column, config.treatment_column])[outcome]
            .mean()
            .unstack(config.treatment_column)
            .rename(columns={0: "control", 1: "treated"})
            .sort_index()
        )
        for col in ("control", "treated"):
            if col not in means.columns:
                raise ValueError(f"No {col} observations for {outcome}")
        means = means[["control", "treated"]].copy()
        means["difference"] = means["treated"] - means["control"]
        means.columns.name = None

        cells = means.loc[means.index.isin([pre, post]), "difference"].dropna()
        if pre not in cells.index or post not in cells.index:
            raise ValueError(
                f"Both groups must be observed in periods {pre} and {post} for {outcome}"
            )
        did = float(cells.loc[post] - cells.loc[pre])

        if config.verbose:
            print(f"Group means for {outcome}:")
            print(means.round(4).to_string())
            print(f"  2x2 DID ({pre} -> {post}): {did:.4f}")

        return GroupMeansResult(means=means, did=did, periods=(pre, post))

    def first_difference(self, panel: pd.DataFrame, outcome: str) -> FirstDifferenceResult:
        """First-difference the panel over config.period_columns"""
        fd = first_difference(panel, self.config, outcome)
        if self.config.verbose:
            pre, post = fd.periods
            print(
                f"First difference {outcome} ({pre} -> {post}): {fd.n_counties} counties, "
                f"{fd.n_dropped} dropped"
            )
        return fd

    def estimate_first_difference_effects(
        self, panel: pd.DataFrame, outcome: str
    ) -> Dict[str, Any]:
        """DID, outcome regression, IPW and DR-DID on the first-differenced table"""
        fd = self.first_difference(panel, outcome)
        results = compute_all_estimators(fd, self.config)
        results["first_difference"] = fd

        if self.config.verbose:
            for key, est in results["estimates"].items():
                se = "n/a" if est.standard_error is None else f"{est.standard_error:.4f}"
                print(f"  {est.estimator}: {est.estimate:.4f} (se={se})")

        return results

    def estimate_twfe(self, panel: pd.DataFrame, outcome: str) -> TWFEResult:
        return estimate_twfe(panel, self.config, outcome)

    def estimate_event_study(self, panel: pd.DataFrame, outcome: str) -> EventStudyResult:
        return estimate_event_study(panel, self.config, outcome)

    def sensitivity(
        self,
        event_study: EventStudyResult,
        bounds_fn: BoundsFunction,
        m_values: Optional[Sequence[float]] = None,
    ) -> SensitivityResult:
        """Run an external sensitivity routine on the event-study coefficients"""
        inputs = prepare_sensitivity_inputs(event_study)
        return run_sensitivity(inputs, bounds_fn, m_values=m_values, config=self.config)

    def run(
        self,
        panel: pd.DataFrame,
        outcomes: Optional[List[str]] = None,
        bounds_fn: Optional[BoundsFunction] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """Run the complete analysis for each outcome

        Args:
            panel: County x year panel
            outcomes: Outcome columns (uses config.outcome_columns if None)
            bounds_fn: External sensitivity routine (sensitivity is skipped if None)

        Returns:
            Dictionary keyed by outcome with entries group_means, twfe,
            event_study, sensitivity, first_difference, estimates, overlap,
            propensity, dr_mean_difference_form, se_method, bootstrap_failures
            and errors
        """
        if outcomes is None:
            outcomes = list(self.config.outcome_columns)

        all_results = {}
        for outcome in outcomes:
            if self.config.verbose:
                print(f"\n{'=' * 60}\nOutcome: {outcome}\n{'=' * 60}")

            result: Dict[str, Any] = {"errors": {}}

            steps = [
                ("group_means", self.group_means),
                ("twfe", self.estimate_twfe),
                ("event_study", self.estimate_event_study),
            ]
            for name, step in steps:
                try:
                    result[name] = step(panel, outcome)
                except (TVADIDError, ValueError) as e:
                    result[name] = None
                    result["errors"][name] = str(e)
                    if self.config.verbose:
                        print(f"Warning: {name} failed for {outcome}: {e}")

            result["sensitivity"] = None
            if bounds_fn is not None and result["event_study"] is not None:
                try:
                    result["sensitivity"] = self.sensitivity(result["event_study"], bounds_fn)
                except ValueError as e:
                    result["errors"]["sensitivity"] = str(e)
                    if self.config.verbose:
                        print(f"Warning: sensitivity failed for {outcome}: {e}")

            try:
                fd_results = self.estimate_first_difference_effects(panel, outcome)
            except TVADIDError as e:
                result["errors"]["first_difference"] = str(e)
                if self.config.verbose:
                    print(f"Warning: first differencing failed for {outcome}: {e}")
                fd_results = {
                    "first_difference": None,
                    "estimates": {},
                    "overlap": None,
                    "propensity": None,
                    "dr_mean_difference_form": np.nan,
                    "se_method": None,
                    "bootstrap_failures": None,
                    "errors": {},
                }
            result["errors"].update(fd_results.pop("errors"))
            result.update(fd_results)

            all_results[outcome] = result

        return all_results
