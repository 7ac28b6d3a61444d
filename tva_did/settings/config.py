"""
Analysis settings and parameter management

This module centrally manages the column schema, estimator settings and
inference options, allowing users to easily change settings.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple
from scipy.stats import norm


DEFAULT_COVARIATES = [
    "agriculture_share_1920",
    "agriculture_share_1930",
    "manufacturing_share_1920",
    "manufacturing_share_1930",
]


@dataclass
class Config:
    """Unified configuration class"""

    # === Data Schema ===
    county_column: str = "county_code"
    year_column: str = "year"
    treatment_column: str = "tva"
    # Rows where this flag is False are dropped by the loader (None disables the filter)
    flag_column: Optional[str] = "has_all_covariates"
    outcome_columns: List[str] = field(
        default_factory=lambda: ["ln_agriculture", "ln_manufacturing"]
    )
    covariate_columns: List[str] = field(
        default_factory=lambda: list(DEFAULT_COVARIATES)
    )
    cluster_column: str = "county_code"
    # (pre, post) census years used for first differencing
    period_columns: Tuple[int, int] = (1940, 1960)

    # === Event Study Settings ===
    event_reference_year: int = 1930
    first_post_year: int = 1940

    # === Estimator Settings ===
    logistic_max_iter: int = 1000
    # Treated/control propensity scores farther apart than this are treated as perfect separation
    separation_tol: float = 1e-8
    overlap_ps_threshold: float = 0.99
    # Largest Hajek-normalized control weight tolerated before warning. The
    # weight is about odds(ps) / P(D=1), so 50 flags a control with ps near
    # 0.94 when 30% of counties are treated
    overlap_max_weight_threshold: float = 50.0

    # === Inference Settings ===
    confidence_level: float = 0.95
    use_bootstrap_se: bool = False
    n_bootstrap: int = 199
    random_seed: int = 42
    n_jobs: Optional[int] = None

    # === Sensitivity Analysis Settings ===
    sensitivity_m_values: List[float] = field(
        default_factory=lambda: [0.0, 0.5, 1.0, 1.5, 2.0]
    )

    # === Output Settings ===
    verbose: bool = True
    figsize: tuple = (10, 6)
    dpi: int = 300

    def __post_init__(self):
        """Post-initialization processing"""
        if len(self.period_columns) != 2:
            raise ValueError(
                f"period_columns must contain exactly two labels, got {self.period_columns}"
            )
        self.period_columns = tuple(self.period_columns)

        # Dynamically calculate z_critical based on confidence_level
        self.z_critical = norm.ppf(1 - (1 - self.confidence_level) / 2)


def get_config(
    config_name: str = "default", overrides: Optional[Dict[str, Any]] = None
) -> Config:
    """
    Return configuration based on configuration name (with override functionality)

    Args:
        config_name: Base configuration name ("default", "simulation")
            - "default": Settings for the TVA county panel
            - "simulation": Quiet settings for synthetic data experiments
        overrides: Dictionary of settings to override

    Returns:
        Configuration object
    """
    if config_name == "simulation":
        config = Config(verbose=False, n_bootstrap=499)
    else:
        config = Config()

    # Apply override processing
    if overrides:
        for key, value in overrides.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                print(f"Warning: Unknown config key '{key}' - skipping")
        # Re-derive dependent values
        config.__post_init__()

    return config
