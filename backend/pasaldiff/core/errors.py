"""Error taxonomy shared by the segmenter, diff engine and conflict detector."""

from __future__ import annotations

from typing import Any


class PasalDiffError(Exception):
    """Base class for all typed failures surfaced to callers."""

    code = "error"
    retryable = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.context:
            payload["context"] = self.context
        return payload


class InvalidInput(PasalDiffError):
    """Malformed or too-short input. The caller must fix the input."""

    code = "invalid_input"


class EmptyInput(InvalidInput):
    """One side of a comparison has no clauses, so nothing can be compared."""

    code = "empty_input"


class NotFound(PasalDiffError):
    """A referenced document, version or run does not exist."""

    code = "not_found"


class NotComparable(PasalDiffError):
    """A version has not finished segmentation yet."""

    code = "not_comparable"
    retryable = True


class DependencyUnavailable(PasalDiffError):
    """The embedding service or corpus index failed after bounded retries."""

    code = "dependency_unavailable"
    retryable = True


class DependencyRejected(PasalDiffError):
    """The embedding service refused the request outright, e.g. bad credentials."""

    code = "dependency_rejected"


class IntegrityViolation(PasalDiffError):
    """Stored or returned data breaks an invariant. Never coerced."""

    code = "integrity_violation"


__all__ = [
    "PasalDiffError",
    "InvalidInput",
    "EmptyInput",
    "NotFound",
    "NotComparable",
    "DependencyUnavailable",
    "DependencyRejected",
    "IntegrityViolation",
]
