"""
Basic visualization functions module

Provides the event-study, propensity overlap and group-means figures.
"""

import numpy as np
from typing import Optional

from ..settings import Config
from ..model.common.models import EventStudyResult, GroupMeansResult
from .config import VisualizationConfig, get_labels
from .utils import setup_plot_style, save_plot


def create_event_study_plot(
    event_study: EventStudyResult,
    outcome: str,
    save_path: Optional[str] = None,
    config: Optional[Config] = None,
):
    """
    Event-study coefficients with confidence intervals

    The reference year is drawn at zero and a dashed line separates pre and
    post periods.

    Args:
        event_study: Event-study estimation result
        outcome: Outcome name used in the title
        save_path: Save path (figure is discarded if None)
        config: Configuration object (figsize, dpi)
    """
    if config is None:
        config = Config()

    coefs = event_study.coefs.sort_values("year")
    years = np.append(coefs["year"].to_numpy(), event_study.reference_year)
    beta = np.append(coefs["beta"].to_numpy(), 0.0)
    lower = np.append(coefs["ci_lower"].to_numpy(), 0.0)
    upper = np.append(coefs["ci_upper"].to_numpy(), 0.0)
    order = np.argsort(years)
    years, beta, lower, upper = years[order], beta[order], lower[order], upper[order]

    fig, ax = setup_plot_style(config.figsize)
    ax.errorbar(
        years,
        beta,
        yerr=[beta - lower, upper - beta],
        fmt="o",
        color="black",
        ecolor="gray",
        capsize=4,
    )
    ax.axhline(0, color="black", linewidth=0.8)
    ax.axvline(
        (event_study.reference_year + config.first_post_year) / 2,
        color="tab:red",
        linestyle="--",
        linewidth=1,
    )
    ax.set_xticks(years)
    ax.set_xlabel(get_labels("event_study_x"), fontsize=12)
    ax.set_ylabel(get_labels("event_study_y"), fontsize=12)
    ax.set_title(get_labels("event_study_title", outcome=outcome), fontsize=14, fontweight="bold")

    if np.isfinite(event_study.pretrend_p_value):
        ax.text(
            0.02,
            0.98,
            f"Pre-trend joint test p = {event_study.pretrend_p_value:.3f}",
            transform=ax.transAxes,
            verticalalignment="top",
            fontsize=10,
            bbox=dict(boxstyle="round", facecolor="wheat", alpha=0.8),
        )

    fig.tight_layout()
    save_plot(save_path, "Event study plot", dpi=config.dpi)


def create_propensity_overlap_plot(
    ps: np.ndarray,
    D: np.ndarray,
    outcome: str,
    save_path: Optional[str] = None,
    config: Optional[Config] = None,
):
    """
    Histogram of fitted propensity scores by treatment group

    Args:
        ps: Fitted propensity scores
        D: Treatment indicator
        outcome: Outcome name used in the title
        save_path: Save path (figure is discarded if None)
        config: Configuration object (figsize, dpi, overlap_ps_threshold)
    """
    if config is None:
        config = Config()

    ps = np.asarray(ps, dtype=float)
    D = np.asarray(D, dtype=float)
    bins = np.linspace(0, 1, 31)
    colors = VisualizationConfig.GROUP_COLORS

    fig, ax = setup_plot_style(config.figsize)
    ax.hist(
        ps[D == 1],
        bins=bins,
        density=True,
        alpha=0.5,
        color=colors["treated"],
        label=get_labels("treated_label"),
    )
    ax.hist(
        ps[D == 0],
        bins=bins,
        density=True,
        alpha=0.5,
        color=colors["control"],
        label=get_labels("control_label"),
    )
    ax.axvline(config.overlap_ps_threshold, color="black", linestyle=":", linewidth=1)
    ax.set_xlabel(get_labels("overlap_x"), fontsize=12)
    ax.set_ylabel(get_labels("overlap_y"), fontsize=12)
    ax.set_title(get_labels("overlap_title", outcome=outcome), fontsize=14, fontweight="bold")
    ax.legend()

    fig.tight_layout()
    save_plot(save_path, "Overlap plot", dpi=config.dpi)


def create_group_means_plot(
    group_means: GroupMeansResult,
    outcome: str,
    save_path: Optional[str] = None,
    config: Optional[Config] = None,
):
    """
    Mean outcome by census year for treated and control counties

    Args:
        group_means: Group means result
        outcome: Outcome name used in the title and axis label
        save_path: Save path (figure is discarded if None)
        config: Configuration object (figsize, dpi, first_post_year)
    """
    if config is None:
        config = Config()

    means = group_means.means
    colors = VisualizationConfig.GROUP_COLORS

    fig, ax = setup_plot_style(config.figsize)
    ax.plot(
        means.index,
        means["treated"],
        marker="o",
        color=colors["treated"],
        label=get_labels("treated_label"),
    )
    ax.plot(
        means.index,
        means["control"],
        marker="s",
        color=colors["control"],
        label=get_labels("control_label"),
    )
    ax.axvline(config.first_post_year, color="gray", linestyle="--", linewidth=1)
    ax.set_xticks(list(means.index))
    ax.set_xlabel(get_labels("group_means_x"), fontsize=12)
    ax.set_ylabel(get_labels("group_means_y", outcome=outcome), fontsize=12)
    ax.set_title(get_labels("group_means_title", outcome=outcome), fontsize=14, fontweight="bold")
    ax.legend()

    fig.tight_layout()
    save_plot(save_path, "Group means plot", dpi=config.dpi)
