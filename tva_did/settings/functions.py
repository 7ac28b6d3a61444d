"""
Common functions module

Provides common processing such as setting display.
"""

from typing import Optional
from .config import Config, get_config


def print_config_summary(config: Optional[Config] = None) -> None:
    """Display configuration summary"""
    if config is None:
        config = get_config("default")

    pre, post = config.period_columns
    print("=== Configuration Summary ===")
    print(f"Outcomes: {', '.join(config.outcome_columns)}")
    print(f"Covariates: {', '.join(config.covariate_columns)}")
    print(f"Periods (pre -> post): {pre} -> {post}")
    print(f"Event study reference year: {config.event_reference_year}")
    print(f"Cluster column: {config.cluster_column}")
    print(f"Bootstrap SE: {config.use_bootstrap_se} (B={config.n_bootstrap})")
    print(f"Random Seed: {config.random_seed}")
    print("=============================")
