"""
Common visualization utilities module

Provides common functionality for plot styles and saving figures.
"""

import os
import matplotlib
import matplotlib.pyplot as plt
from typing import Optional, Tuple

# Non-interactive backend so figures can be written on headless machines
matplotlib.use("Agg")


def setup_plot_style(figsize: Tuple[int, int] = (10, 6)):
    """Common function to set basic plot style

    Returns:
        The new figure and axes
    """
    fig, ax = plt.subplots(figsize=figsize)
    ax.grid(linestyle="--", alpha=0.5)
    return fig, ax


def save_plot(save_path: Optional[str], plot_type: str = "Figure", dpi: int = 300) -> None:
    """Common function to save plot"""
    if save_path:
        try:
            # Create directory if it doesn't exist
            dir_path = os.path.dirname(save_path)
            if dir_path:
                os.makedirs(dir_path, exist_ok=True)

            plt.savefig(save_path, dpi=dpi, bbox_inches="tight")

            if not os.path.exists(save_path):
                print(f"Warning: {plot_type} file was not created: {save_path}")
        except OSError as e:
            print(f"Error saving {plot_type.lower()} to {save_path}: {e}")
            raise
    else:
        print(f"Warning: save_path is None, {plot_type.lower()} will not be saved")
    plt.close()
