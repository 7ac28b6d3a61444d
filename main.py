import os
import argparse
from datetime import datetime
from typing import Any, Dict, Optional


def write_outputs(
    analysis_results: Dict[str, Dict[str, Any]],
    output_dir: str,
    config,
    true_params: Optional[Dict[str, Any]] = None,
    data_source: Optional[str] = None,
    skip_plots: bool = False,
) -> Dict[str, str]:
    """Write the estimates CSV, figures and the Markdown report

    Returns:
        Dictionary of written file paths
    """
    from tva_did.visualization import (
        build_estimates_table,
        create_event_study_plot,
        create_group_means_plot,
        create_propensity_overlap_plot,
        generate_results_markdown,
    )

    os.makedirs(output_dir, exist_ok=True)
    written = {}

    estimates_df = build_estimates_table(analysis_results, config)
    csv_path = os.path.join(output_dir, "tva_estimates.csv")
    estimates_df.to_csv(csv_path, index=False)
    written["estimates"] = csv_path
    print(f"✓ Saved estimates: {csv_path}")

    for outcome, result in analysis_results.items():
        event_study = result.get("event_study")
        if event_study is not None:
            path = os.path.join(output_dir, f"event_study_{outcome}.csv")
            event_study.coefs.to_csv(path, index=False)
            written[f"event_study_{outcome}"] = path

    if not skip_plots:
        print("\nGenerating figures...")
        for outcome, result in analysis_results.items():
            if result.get("group_means") is not None:
                create_group_means_plot(
                    result["group_means"],
                    outcome,
                    os.path.join(output_dir, f"group_means_{outcome}.png"),
                    config,
                )
            if result.get("event_study") is not None:
                create_event_study_plot(
                    result["event_study"],
                    outcome,
                    os.path.join(output_dir, f"event_study_{outcome}.png"),
                    config,
                )
            if result.get("propensity") is not None and result.get("first_difference") is not None:
                fd = result["first_difference"]
                create_propensity_overlap_plot(
                    result["propensity"].ps,
                    fd.data[fd.treatment_column].to_numpy(),
                    outcome,
                    os.path.join(output_dir, f"overlap_{outcome}.png"),
                    config,
                )
        print("✓ Figures generated")

    markdown_file = generate_results_markdown(
        analysis_results,
        output_dir,
        config,
        true_params=true_params,
        data_source=data_source,
        filename="tva_analysis_report.md",
    )
    written["report"] = markdown_file
    print(f"✓ Generated report: {markdown_file}")

    return written


def run_synthetic_mode(args, config):
    """Execute the analysis on a synthetic panel with known effects"""
    from tva_did.settings import generate_tva_panel

    print(f"Generating synthetic panel ({args.n_counties} counties)...")
    panel, true_params = generate_tva_panel(
        n_counties=args.n_counties,
        config=config,
        missing_covariate_share=0.05,
    )
    if config.flag_column is not None:
        panel = panel[panel[config.flag_column]].reset_index(drop=True)
    return panel, true_params, "synthetic"


def run_real_data_mode(args, config):
    """Execute the analysis on the TVA county panel"""
    from tva_did.settings import TVADataLoader

    loader = TVADataLoader(args.data, config)
    panel = loader.prepare_analysis_data()
    return panel, None, args.data


def main():
    """Main execution function"""
    parser = argparse.ArgumentParser(
        description="DID analysis of TVA electrification on county employment"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--data",
        type=str,
        help="TVA county panel (.csv or .dta)",
    )
    source.add_argument(
        "--synthetic",
        action="store_true",
        help="Run on a synthetic panel with known treatment effects",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="default",
        help="Configuration name (default, simulation)",
    )
    parser.add_argument(
        "--n_counties",
        type=int,
        default=1000,
        help="Number of counties in the synthetic panel",
    )
    parser.add_argument(
        "--outcomes",
        nargs="+",
        default=None,
        help="Outcome columns (default: ln_agriculture ln_manufacturing)",
    )
    parser.add_argument(
        "--use_bootstrap",
        action="store_true",
        help="Use cluster bootstrap standard errors for the first-difference estimators",
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        default="results",
        help="Output directory",
    )
    parser.add_argument(
        "--skip_plots",
        action="store_true",
        help="Do not generate figures",
    )
    args = parser.parse_args()

    from tva_did.settings import get_config, print_config_summary
    from tva_did.run import TVAAnalysis

    overrides = {}
    if args.use_bootstrap:
        overrides["use_bootstrap_se"] = True
    if args.outcomes:
        overrides["outcome_columns"] = list(args.outcomes)
    config = get_config(args.config, overrides)

    print("=" * 80)
    print("TVA Electrification: Difference-in-Differences Analysis")
    print("=" * 80)
    print(f"Execution time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print_config_summary(config)

    if args.synthetic:
        panel, true_params, data_source = run_synthetic_mode(args, config)
    else:
        panel, true_params, data_source = run_real_data_mode(args, config)

    analysis = TVAAnalysis(config)
    analysis_results = analysis.run(panel)

    write_outputs(
        analysis_results,
        args.output_dir,
        config,
        true_params=true_params,
        data_source=data_source,
        skip_plots=args.skip_plots,
    )

    n_failed = sum(len(r["errors"]) for r in analysis_results.values())
    print("\n" + "=" * 80)
    print(f"Analysis completed ({n_failed} failed steps)")
    print("=" * 80)


if __name__ == "__main__":
    main()
