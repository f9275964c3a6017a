class ConfigurationError(ValueError):
    """Raised when a model is constructed or configured with invalid values."""


class SingularCovarianceError(Exception):
    """
    Raised when a covariance matrix cannot be factorized.

    Attributes:
        group: Index of the affected mixture component, if known.
        iteration: EM iteration at which the failure occurred (0 for
            evaluations before the first M-step), if known.
    """

    def __init__(
        self,
        message: str = "Singular Matrix",
        group: int | None = None,
        iteration: int | None = None,
    ) -> None:
        self.group = group
        self.iteration = iteration
        super().__init__(message)
