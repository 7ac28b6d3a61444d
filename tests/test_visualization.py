"""
Tests for figures, result tables and the Markdown report.
"""
import os

import numpy as np
import pytest

from tva_did.run import TVAAnalysis
from tva_did.settings import generate_tva_panel
from tva_did.visualization import (
    build_estimates_table,
    create_event_study_plot,
    create_group_means_plot,
    create_propensity_overlap_plot,
    format_markdown_table,
    generate_results_markdown,
)


@pytest.fixture(scope="module")
def analysis_results():
    from tva_did.settings import Config

    config = Config(verbose=False, dpi=50)
    df, true_params = generate_tva_panel(n_counties=150, config=config, seed=31)
    results = TVAAnalysis(config).run(df)
    return results, true_params, config


def test_estimates_table_has_row_per_estimator(analysis_results):
    results, _, config = analysis_results
    table = build_estimates_table(results, config)

    assert set(table["outcome"]) == {"ln_agriculture", "ln_manufacturing"}
    per_outcome = table.groupby("outcome").size()
    assert (per_outcome == 6).all()
    assert list(table.loc[table["outcome"] == "ln_agriculture", "key"]) == [
        "twfe",
        "did",
        "outcome_regression",
        "ipw_hajek",
        "ipw_horvitz_thompson",
        "dr_did",
    ]
    assert (table["ci_lower"] < table["ci_upper"]).all()


def test_format_markdown_table_handles_missing_values():
    import pandas as pd

    lines = format_markdown_table(pd.DataFrame({"name": ["a"], "value": [np.nan]}))
    assert lines[0] == "| name | value |"
    assert lines[2] == "| a | n/a |"


def test_figures_are_written(analysis_results, tmp_path):
    results, _, config = analysis_results
    result = results["ln_agriculture"]
    fd = result["first_difference"]

    paths = {
        "event_study": str(tmp_path / "event_study.png"),
        "group_means": str(tmp_path / "group_means.png"),
        "overlap": str(tmp_path / "overlap.png"),
    }
    create_event_study_plot(result["event_study"], "ln_agriculture", paths["event_study"], config)
    create_group_means_plot(result["group_means"], "ln_agriculture", paths["group_means"], config)
    create_propensity_overlap_plot(
        result["propensity"].ps,
        fd.data[fd.treatment_column].to_numpy(),
        "ln_agriculture",
        paths["overlap"],
        config,
    )

    for path in paths.values():
        assert os.path.exists(path)


def test_markdown_report(analysis_results, tmp_path):
    results, true_params, config = analysis_results
    path = generate_results_markdown(
        results,
        str(tmp_path),
        config,
        true_params=true_params,
        data_source="synthetic",
        filename="report.md",
    )

    assert path == os.path.join(str(tmp_path), "report.md")
    with open(path, encoding="utf-8") as f:
        content = f.read()
    assert "# TVA Electrification DID Results Report" in content
    assert "## Outcome: `ln_agriculture`" in content
    assert "DR-DID" in content
    assert "IPW (Hajek)" in content
    assert "IPW (Horvitz-Thompson)" in content
    assert "Pre-trend joint test p-value" in content
    assert "## True Parameter Values" in content
