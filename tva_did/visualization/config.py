"""
Visualization configuration and constants module

Manages estimator labels, colors and figure titles.
"""

from ..run.common import ESTIMATOR_COLUMNS


class VisualizationConfig:
    """Constants class for visualization configuration"""

    # Estimator display order in tables and reports
    ESTIMATOR_ORDER = list(ESTIMATOR_COLUMNS.values())

    # Colors for treated / control groups
    GROUP_COLORS = {"treated": "tab:red", "control": "tab:blue"}

    LABELS = {
        "event_study_x": "Census Year",
        "event_study_y": "Coefficient (TVA x Year)",
        "event_study_title": "Event Study: {outcome}",
        "overlap_x": "Estimated Propensity Score",
        "overlap_y": "Density",
        "overlap_title": "Propensity Score Overlap: {outcome}",
        "group_means_x": "Census Year",
        "group_means_y": "Mean {outcome}",
        "group_means_title": "Group Means: {outcome}",
        "treated_label": "TVA Counties (tva=1)",
        "control_label": "Non-TVA Counties (tva=0)",
    }


def get_labels(key: str, **kwargs) -> str:
    """Common function to get English labels"""
    label = VisualizationConfig.LABELS.get(key, key)
    if kwargs:
        return label.format(**kwargs)
    return label
