"""
Structured fit status.

A fit reports exactly one status, a tagged variant discriminated on ``kind``:

- Ok: nothing went wrong.
- SingularCovariance: a covariance matrix could not be factorized. Carries
  the group and EM iteration of the most recent failure.
- NonConverged: the iteration budget ran out before the tolerance was met.
- Cancelled / TimedOut: the EM loop was stopped from outside.

``status_message`` maps a status back to the legacy free-text channel
("OK" or "Singular Matrix") used in delimited reports.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

SINGULAR_MATRIX_MESSAGE = "Singular Matrix"
OK_MESSAGE = "OK"


class Ok(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["ok"] = "ok"


class SingularCovariance(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["singular_covariance"] = "singular_covariance"
    group: int
    iteration: int


class NonConverged(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["non_converged"] = "non_converged"
    iterations: int


class Cancelled(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["cancelled"] = "cancelled"
    iterations: int


class TimedOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["timed_out"] = "timed_out"
    iterations: int
    timeout_seconds: float


FitStatus = Annotated[
    Ok | SingularCovariance | NonConverged | Cancelled | TimedOut,
    Field(discriminator="kind"),
]


def status_message(status: FitStatus) -> str:
    """Legacy free-text rendering of a status."""
    if isinstance(status, SingularCovariance):
        return SINGULAR_MATRIX_MESSAGE
    return OK_MESSAGE
