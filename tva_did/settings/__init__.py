"""
Settings module for configuration and data generation

This module provides configuration management, the TVA panel loader and
synthetic data generation.
"""

# Config related
from .config import (
    Config,
    get_config,
    DEFAULT_COVARIATES,
)

# Common functions
from .functions import print_config_summary

# DGP for synthetic panels
from .simulation import (
    generate_tva_panel,
    treatment_effect_path,
    CENSUS_YEARS,
)

# Loader for real data
from .real_data_tva import (
    TVADataLoader,
    load_tva_data,
)

__all__ = [
    # Config
    "Config",
    "get_config",
    "DEFAULT_COVARIATES",
    # Functions
    "print_config_summary",
    # Simulation
    "generate_tva_panel",
    "treatment_effect_path",
    "CENSUS_YEARS",
    # Real data
    "TVADataLoader",
    "load_tva_data",
]
