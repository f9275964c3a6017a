"""
Core shared types and utilities for mixture analysis.

This module provides foundational components used across multiple submodules,
decoupling the mixture estimation engine from data loading and the simulated
data layer.
"""

from mixture_analysis.core.data_models import ObservationMatrix
from mixture_analysis.core.utils import get_rng, spawn_rngs

__all__ = [
    "ObservationMatrix",
    "get_rng",
    "spawn_rngs",
]
