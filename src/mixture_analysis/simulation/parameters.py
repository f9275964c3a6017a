"""
Simulation config loading from YAML files using OmegaConf.

The SimulationConfig dataclass is the schema; a YAML file fills in the
mandatory values and overrides the defaults.
"""

from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from omegaconf import OmegaConf

from mixture_analysis.simulation.config import SimulationConfig


def load_config(yaml_path: Path) -> SimulationConfig:
    """Load and validate a simulation config from YAML.

    Args:
        yaml_path: Path to YAML config file

    Returns:
        Validated SimulationConfig

    Raises:
        ValueError: If weights, shapes or covariances are invalid
        FileNotFoundError: If yaml_path doesn't exist
    """
    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    # Create schema from dataclass
    schema = OmegaConf.structured(SimulationConfig)
    user_config = OmegaConf.load(yaml_path)
    config = OmegaConf.merge(schema, user_config)

    # Convert to typed dataclass
    result = OmegaConf.to_object(config)
    assert isinstance(result, SimulationConfig)

    return result


def component_arrays(
    config: SimulationConfig,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Weights (K,), means (K, D) and covariances (K, D, D) as arrays."""
    weights = np.array([c.weight for c in config.components], np.float64)
    means = np.array([c.mean for c in config.components], np.float64)
    covariances = np.array(
        [c.covariance for c in config.components], np.float64
    )
    return weights, means, covariances
