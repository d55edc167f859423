"""
Error taxonomy for the generative classification engine.

Every engine failure derives from GenerativeModelError (a ValueError), so
callers can catch one type or branch on the specific kind. `attempt` turns a
raised engine error into a discriminated Outcome value.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional


def plain_label(label):
    """NumPy scalar labels (from np.unique) as the matching Python value."""
    return label.item() if hasattr(label, 'item') else label


class GenerativeModelError(ValueError):
    """Base class for all engine errors."""

    kind = "GenerativeModelError"


class InsufficientDataError(GenerativeModelError):
    """Too few samples in a class to estimate a non-degenerate covariance."""

    kind = "InsufficientData"

    def __init__(self, label, n_samples: int, n_required: int):
        self.label = plain_label(label)
        self.n_samples = n_samples
        self.n_required = n_required
        target = "dataset" if label is None else f"class {self.label!r}"
        super().__init__(
            f"Insufficient samples for {target}: "
            f"got {n_samples}, need at least {n_required}"
        )


class SingularCovarianceError(GenerativeModelError):
    """Covariance matrix is not positive-definite."""

    kind = "SingularCovariance"

    def __init__(self, message: str = "Covariance matrix is not positive-definite", label=None):
        self.label = plain_label(label)
        if label is not None:
            message = f"{message} (class {self.label!r})"
        super().__init__(message)


class DimensionMismatchError(GenerativeModelError):
    """Feature vector length disagrees with the model dimension."""

    kind = "DimensionMismatch"

    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(f"Expected {expected} features, got {got}")


class InvalidPriorError(GenerativeModelError):
    """Prior override outside [0, 1] or not summing to 1."""

    kind = "InvalidPrior"


class UndefinedPosteriorError(GenerativeModelError):
    """All class-conditional densities are zero for a query point."""

    kind = "UndefinedPosterior"

    def __init__(self, rows=None):
        self.rows = rows
        message = "Posterior undefined: every class-conditional density is zero"
        if rows is not None:
            message += f" for query rows {list(rows)}"
        super().__init__(message)


class NotFittedError(GenerativeModelError):
    """Estimator used before fit()."""

    kind = "NotFitted"


@dataclass(frozen=True)
class Outcome:
    """Result of an engine call: either a value or an engine error."""
    value: Any = None
    error: Optional[GenerativeModelError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[str]:
        return None if self.error is None else self.error.kind

    def unwrap(self):
        """Return the value, re-raising the captured error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value


def attempt(fn: Callable, *args, **kwargs) -> Outcome:
    """
    Call fn and capture engine errors in an Outcome.

    Only GenerativeModelError is captured; programming errors propagate.

    Example
    -------
    >>> outcome = attempt(classifier.fit, X, y)
    >>> if not outcome.ok:
    ...     print(outcome.kind)
    """
    try:
        return Outcome(value=fn(*args, **kwargs))
    except GenerativeModelError as e:
        return Outcome(error=e)
