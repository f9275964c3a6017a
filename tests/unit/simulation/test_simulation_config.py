from pathlib import Path

import pytest

from mixture_analysis.simulation.config import (
    ComponentConfig,
    SimulationConfig,
)
from mixture_analysis.simulation.parameters import load_config
from mixture_analysis.simulation.presets import (
    PARAMS_DIR,
    get_available_presets,
    get_preset,
)

########################################################
# Configuration loading
########################################################


def test_configuration_presets_load() -> None:
    """Make sure that all the preset configuration files load."""

    for config_path in PARAMS_DIR.glob("*.yaml"):
        preset = load_config(config_path)
        assert preset is not None


def test_get_preset_two_profiles() -> None:
    preset = get_preset("two_profiles")

    assert preset.n_groups == 2
    assert preset.n_dimensions == 2
    assert isinstance(preset.components[0], ComponentConfig)
    assert preset.column_names == ["x1", "x2"]


def test_available_presets() -> None:
    assert {"two_profiles", "three_profiles"} <= set(get_available_presets())


def test_get_preset_unknown_raises() -> None:
    with pytest.raises(ValueError, match="Unknown preset"):
        get_preset("nonexistent_preset")


def test_load_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_yaml_with_bad_weights_raises(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(
        "n_observations: 10\n"
        "random_seed: 1\n"
        "components:\n"
        "  - weight: 0.5\n"
        "    mean: [0.0]\n"
        "    covariance: [[1.0]]\n"
        "  - weight: 0.2\n"
        "    mean: [1.0]\n"
        "    covariance: [[1.0]]\n"
    )
    with pytest.raises(ValueError, match="sum to 1"):
        load_config(path)


########################################################
# Validation
########################################################


class TestComponentConfig:
    def test_valid(self) -> None:
        c = ComponentConfig(
            weight=0.5, mean=[0.0, 1.0], covariance=[[1, 0], [0, 1]]
        )
        assert c.weight == 0.5

    def test_weight_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="weight"):
            ComponentConfig(weight=1.5, mean=[0.0], covariance=[[1.0]])

    def test_shape_mismatch(self) -> None:
        with pytest.raises(ValueError, match="2x2"):
            ComponentConfig(weight=1.0, mean=[0.0, 0.0], covariance=[[1.0]])

    def test_asymmetric(self) -> None:
        with pytest.raises(ValueError, match="symmetric"):
            ComponentConfig(
                weight=1.0,
                mean=[0.0, 0.0],
                covariance=[[1.0, 0.5], [0.0, 1.0]],
            )

    def test_not_psd(self) -> None:
        with pytest.raises(ValueError, match="positive semi-definite"):
            ComponentConfig(
                weight=1.0,
                mean=[0.0, 0.0],
                covariance=[[1.0, 2.0], [2.0, 1.0]],
            )


class TestSimulationConfig:
    def test_dimension_mismatch(self) -> None:
        with pytest.raises(ValueError, match="same dimension"):
            SimulationConfig(
                n_observations=10,
                components=[
                    ComponentConfig(0.5, [0.0], [[1.0]]),
                    ComponentConfig(0.5, [0.0, 0.0], [[1.0, 0.0], [0.0, 1.0]]),
                ],
                random_seed=1,
            )

    def test_no_observations(self) -> None:
        with pytest.raises(ValueError, match="at least 1 observation"):
            SimulationConfig(
                n_observations=0,
                components=[ComponentConfig(1.0, [0.0], [[1.0]])],
                random_seed=1,
            )

    def test_column_names_length(self) -> None:
        with pytest.raises(ValueError, match="column_names"):
            SimulationConfig(
                n_observations=5,
                components=[ComponentConfig(1.0, [0.0], [[1.0]])],
                random_seed=1,
                column_names=["a", "b"],
            )
