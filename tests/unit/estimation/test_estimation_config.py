import pytest

from mixture_analysis.estimation.config import (
    DEFAULT_EM_TOLERANCE,
    DEFAULT_MAX_EM_ITERATIONS,
    DEFAULT_RANDOM_STARTS,
    EMConfig,
    MixtureConfig,
    ModelConstraints,
    default_config,
)
from mixture_analysis.estimation.exceptions import ConfigurationError


class TestModelConstraints:
    def test_defaults_are_fully_constrained(self) -> None:
        c = ModelConstraints()
        assert c.same_variance_within
        assert c.same_covariance_within
        assert c.local_independence
        assert c.same_covariance_between

    def test_unconstrained(self) -> None:
        c = ModelConstraints.unconstrained()
        assert not any(
            [
                c.same_variance_within,
                c.same_covariance_within,
                c.local_independence,
                c.same_covariance_between,
            ]
        )


class TestEMConfig:
    def test_defaults(self) -> None:
        config = EMConfig()
        assert config.max_iterations == DEFAULT_MAX_EM_ITERATIONS
        assert config.tolerance == DEFAULT_EM_TOLERANCE
        assert config.n_random_starts == DEFAULT_RANDOM_STARTS
        assert config.timeout_seconds is None
        assert not config.halt_on_singular

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"max_iterations": 0}, "max_iterations must be positive"),
            ({"tolerance": 0.0}, "tolerance must be positive"),
            ({"tolerance": float("nan")}, "tolerance must be positive"),
            ({"n_random_starts": 0}, "n_random_starts must be >= 1"),
            ({"start_tolerance": -1.0}, "start_tolerance must be >= 0"),
            ({"n_workers": 0}, "n_workers must be >= 1"),
            ({"timeout_seconds": 0.0}, "timeout_seconds must be positive"),
        ],
    )
    def test_invalid_values_raise(
        self, kwargs: dict[str, float], message: str
    ) -> None:
        with pytest.raises(ConfigurationError, match=message):
            EMConfig(**kwargs)  # type: ignore[arg-type]

    def test_configuration_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            EMConfig(max_iterations=-5)


class TestMixtureConfig:
    def test_model_version_from_pyproject(self) -> None:
        config = default_config()
        assert isinstance(config.model_version, str)
        assert config.model_version != ""

    def test_nested_defaults(self) -> None:
        config = MixtureConfig()
        assert config.constraints == ModelConstraints()
        assert config.em == EMConfig()
