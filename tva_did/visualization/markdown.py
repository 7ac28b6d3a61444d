"""
Markdown report generation module

Generates a Markdown report of the TVA analysis results.
"""

import os
import numpy as np
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..settings import Config
from .helpers import build_estimates_table, format_markdown_table


def _generate_header(data_source: Optional[str]) -> List[str]:
    """Generate Markdown report header"""
    content = [
        "# TVA Electrification DID Results Report",
        "",
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
    ]
    if data_source:
        content.extend([f"Data source: `{data_source}`", ""])
    return content


def _generate_config_section(config: Config) -> List[str]:
    """Generate analysis configuration section"""
    pre, post = config.period_columns
    return [
        "## Analysis Configuration",
        "",
        f"- **Outcomes**: {', '.join(config.outcome_columns)}",
        f"- **Covariates**: {', '.join(config.covariate_columns)}",
        f"- **First difference**: {pre} -> {post}",
        f"- **Event-study reference year**: {config.event_reference_year}",
        f"- **Clustered on**: `{config.cluster_column}`",
        f"- **Confidence level**: {config.confidence_level:.0%}",
        "",
    ]


def _generate_true_params_section(true_params: Dict[str, Any]) -> List[str]:
    """Generate true parameter values section (synthetic data only)"""
    content = [
        "## True Parameter Values",
        "",
        "The panel was generated synthetically; the first-difference ATT implied by the",
        "data generation process is listed for comparison.",
        "",
    ]
    for outcome, value in true_params.get("att_first_difference", {}).items():
        content.append(f"- **{outcome}**: {value:.4f}")
    content.append("")
    return content


def _generate_outcome_section(
    outcome: str,
    result: Dict[str, Any],
    table_lines: List[str],
    output_dir: str,
) -> List[str]:
    """Generate per-outcome results section"""
    content = [f"## Outcome: `{outcome}`", ""]

    group_means = result.get("group_means")
    if group_means is not None:
        pre, post = group_means.periods
        means = group_means.means.reset_index()
        content.extend(["### Group Means", ""])
        content.extend(format_markdown_table(means))
        content.extend(["", f"2x2 DID from cell means ({pre} -> {post}): {group_means.did:.4f}", ""])

    fd = result.get("first_difference")
    if fd is not None:
        content.extend(
            [
                "### Estimates",
                "",
                f"First-differenced sample: {fd.n_counties} counties "
                f"({fd.n_dropped} dropped for incomplete records). "
                f"Standard errors: {result.get('se_method')}.",
                "",
            ]
        )
        failures = result.get("bootstrap_failures") or {}
        failed = [f"{key}: {count}" for key, count in failures.items() if count]
        if failed:
            content.extend([f"Failed bootstrap draws (excluded): {', '.join(failed)}.", ""])
    content.extend(table_lines)
    content.append("")

    overlap = result.get("overlap")
    if overlap is not None:
        content.extend(
            [
                "### Propensity Score Overlap",
                "",
                f"- Largest control propensity score: {overlap.max_ps_control:.4f}",
                f"- Smallest treated propensity score: {overlap.min_ps_treated:.4f}",
                f"- Largest normalized control weight: {overlap.max_weight_control:.4f}",
                f"- Effective number of controls: {overlap.effective_n_control:.1f}",
                f"- Poor overlap flagged: {'yes' if overlap.poor_overlap else 'no'}",
                "",
            ]
        )

    event_study = result.get("event_study")
    if event_study is not None:
        content.extend(["### Event Study", ""])
        content.extend(format_markdown_table(event_study.coefs))
        content.append("")
        if np.isfinite(event_study.pretrend_p_value):
            content.extend(
                [f"Pre-trend joint test p-value: {event_study.pretrend_p_value:.4f}", ""]
            )

    sensitivity = result.get("sensitivity")
    if sensitivity is not None:
        content.extend(["### Sensitivity to Parallel-Trends Violations", ""])
        content.extend(format_markdown_table(sensitivity.bounds))
        content.append("")
        if sensitivity.original_ci is not None:
            lo, hi = sensitivity.original_ci
            content.extend([f"Conventional CI (first post period): [{lo:.4f}, {hi:.4f}]", ""])

    figures = [
        (f"group_means_{outcome}.png", "Group means"),
        (f"event_study_{outcome}.png", "Event study"),
        (f"overlap_{outcome}.png", "Propensity score overlap"),
    ]
    for filename, title in figures:
        if os.path.exists(os.path.join(output_dir, filename)):
            content.extend([f"![{title}](./{filename})", ""])

    if result.get("errors"):
        content.extend(["### Failed Steps", ""])
        for name, message in result["errors"].items():
            content.append(f"- **{name}**: {message}")
        content.append("")

    return content


def generate_results_markdown(
    all_results: Dict[str, Dict[str, Any]],
    output_dir: str,
    config: Optional[Config] = None,
    true_params: Optional[Dict[str, Any]] = None,
    data_source: Optional[str] = None,
    filename: str = "results.md",
) -> str:
    """
    Write the Markdown report

    Args:
        all_results: Output of TVAAnalysis.run
        output_dir: Directory for the report (figures are linked if present)
        config: Configuration object
        true_params: True parameters of a synthetic panel (optional)
        data_source: Path or description of the data (optional)
        filename: Report file name

    Returns:
        Path of the written report
    """
    if config is None:
        config = Config()
    os.makedirs(output_dir, exist_ok=True)

    table = build_estimates_table(all_results, config)
    display_columns = ["estimator", "estimate", "standard_error", "ci_lower", "ci_upper", "n_obs"]

    markdown_content = _generate_header(data_source)
    markdown_content.extend(_generate_config_section(config))
    if true_params:
        markdown_content.extend(_generate_true_params_section(true_params))

    for outcome, result in all_results.items():
        outcome_table = table.loc[table["outcome"] == outcome, display_columns]
        table_lines = format_markdown_table(outcome_table) if len(outcome_table) else []
        markdown_content.extend(
            _generate_outcome_section(outcome, result, table_lines, output_dir)
        )

    markdown_file = os.path.join(output_dir, filename)
    with open(markdown_file, "w", encoding="utf-8") as f:
        f.write("\n".join(markdown_content))

    return markdown_file
