"""Bounded retry with exponential backoff for outbound calls."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from pasaldiff.core.errors import DependencyUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_with_backoff(
    func: Callable[[], T],
    *,
    max_attempts: int = 3,
    delay: float = 0.5,
    backoff_multiplier: float = 2.0,
    retry_on: tuple[type[BaseException], ...] = (DependencyUnavailable,),
    operation: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds or ``max_attempts`` is exhausted.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates immediately. When every attempt fails the last error is
    re-raised as :class:`DependencyUnavailable` (unchanged if it already is
    one) so callers always see a typed, retryable failure.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return func()
        except retry_on as exc:
            last_error = exc
            if attempt < max_attempts:
                wait_time = delay * (backoff_multiplier ** (attempt - 1))
                logger.warning(
                    "%s attempt %d/%d failed: %s. Retrying in %.2fs",
                    operation,
                    attempt,
                    max_attempts,
                    exc,
                    wait_time,
                )
                sleep(wait_time)
            else:
                logger.error("%s failed after %d attempts: %s", operation, max_attempts, exc)

    if isinstance(last_error, DependencyUnavailable):
        raise last_error
    raise DependencyUnavailable(
        f"{operation} failed after {max_attempts} attempts: {last_error}",
        attempts=max_attempts,
    ) from last_error


__all__ = ["retry_with_backoff"]
