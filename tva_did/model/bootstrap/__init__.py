"""
Bootstrap methods for standard error estimation

This module provides the cluster bootstrap over the first-differenced table.
"""

from .cluster_bootstrap import ClusterBootstrap

__all__ = [
    "ClusterBootstrap",
]
