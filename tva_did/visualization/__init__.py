"""
Visualization and report generation module

Produces figures for the TVA analysis and the Markdown report.
"""

# Configuration and constants
from .config import VisualizationConfig, get_labels

# Common utilities
from .utils import setup_plot_style, save_plot

# Tables
from .helpers import build_estimates_table, format_markdown_table

# Markdown generation
from .markdown import generate_results_markdown

# Figures
from .plots import (
    create_event_study_plot,
    create_propensity_overlap_plot,
    create_group_means_plot,
)

__all__ = [
    # Configuration and constants
    "VisualizationConfig",
    "get_labels",
    # Common utilities
    "setup_plot_style",
    "save_plot",
    # Tables
    "build_estimates_table",
    "format_markdown_table",
    # Markdown generation
    "generate_results_markdown",
    # Figures
    "create_event_study_plot",
    "create_propensity_overlap_plot",
    "create_group_means_plot",
]
