"""
Simulated data for multivariate normal mixtures.

This module draws labelled samples from known mixtures for recovery
experiments and tests.

It is NOT intended for production inference.
"""

from mixture_analysis.simulation.config import (
    ComponentConfig,
    SimulationConfig,
)
from mixture_analysis.simulation.generators import (
    SimulatedMixture,
    generate_mixture_data,
)
from mixture_analysis.simulation.parameters import load_config
from mixture_analysis.simulation.presets import (
    get_available_presets,
    get_preset,
)

__all__ = [
    "ComponentConfig",
    "SimulatedMixture",
    "SimulationConfig",
    "generate_mixture_data",
    "get_available_presets",
    "get_preset",
    "load_config",
]
