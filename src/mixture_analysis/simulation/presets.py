"""
Preset mixture profiles for common latent profile scenarios.

These presets provide known-truth datasets for checking parameter recovery
and model selection.
"""

from pathlib import Path

from mixture_analysis.simulation.config import SimulationConfig
from mixture_analysis.simulation.parameters import load_config

PARAMS_DIR = Path(__file__).parent / "params"


def get_available_presets() -> list[str]:
    return sorted(x.stem for x in PARAMS_DIR.glob("*.yaml"))


def get_preset(name: str) -> SimulationConfig:
    """Get a preset configuration by name."""
    config_path = PARAMS_DIR / f"{name}.yaml"
    if not config_path.exists():
        available_presets = get_available_presets()
        raise ValueError(
            f"Unknown preset: {name}. Available presets: {available_presets}"
        )
    return load_config(config_path)
