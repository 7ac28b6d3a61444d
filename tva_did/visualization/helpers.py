"""
Helper functions module

Flattens analysis results into tables for the report and CSV output.
"""

import numpy as np
import pandas as pd
from typing import Any, Dict, List

from ..settings import Config
from .config import VisualizationConfig


def _estimate_row(outcome: str, key: str, est, config: Config) -> Dict[str, Any]:
    lower, upper = est.conf_int(config.z_critical)
    return {
        "outcome": outcome,
        "key": key,
        "estimator": est.estimator,
        "estimate": est.estimate,
        "standard_error": np.nan if est.standard_error is None else est.standard_error,
        "ci_lower": lower,
        "ci_upper": upper,
        "n_obs": est.n_obs,
        "n_treated": est.n_treated,
        "n_control": est.n_control,
    }


def build_estimates_table(all_results: Dict[str, Dict[str, Any]], config: Config) -> pd.DataFrame:
    """
    One row per (outcome, estimator) with estimate, SE and confidence interval

    Args:
        all_results: Output of TVAAnalysis.run
        config: Configuration object (z_critical)

    Returns:
        pd.DataFrame: Estimates in display order; failed estimators are absent
    """
    rows: List[Dict[str, Any]] = []
    for outcome, result in all_results.items():
        twfe = result.get("twfe")
        if twfe is not None:
            rows.append(_estimate_row(outcome, "twfe", twfe.att, config))
        estimates = result.get("estimates", {})
        for key in VisualizationConfig.ESTIMATOR_ORDER:
            if key in estimates:
                rows.append(_estimate_row(outcome, key, estimates[key], config))

    columns = [
        "outcome",
        "key",
        "estimator",
        "estimate",
        "standard_error",
        "ci_lower",
        "ci_upper",
        "n_obs",
        "n_treated",
        "n_control",
    ]
    return pd.DataFrame(rows, columns=columns)


def format_markdown_table(df: pd.DataFrame, float_format: str = "{:.4f}") -> List[str]:
    """Render a dataframe as Markdown table lines"""
    header = "| " + " | ".join(str(c) for c in df.columns) + " |"
    separator = "|" + "|".join("---" for _ in df.columns) + "|"
    lines = [header, separator]
    for _, row in df.iterrows():
        cells = []
        for value in row:
            if isinstance(value, (float, np.floating)):
                cells.append("n/a" if np.isnan(value) else float_format.format(value))
            else:
                cells.append(str(value))
        lines.append("| " + " | ".join(cells) + " |")
    return lines
