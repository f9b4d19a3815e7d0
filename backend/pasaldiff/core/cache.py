"""Caller-owned result cache with pluggable eviction."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Protocol, TypeVar

T = TypeVar("T")


class EvictionPolicy(Protocol):
    def is_expired(self, stored_at: float, now: float) -> bool:
        ...


@dataclass(slots=True)
class TTLEviction:
    """Expire entries ``ttl_seconds`` after they were stored."""

    ttl_seconds: float

    def is_expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at >= self.ttl_seconds


class NoEviction:
    def is_expired(self, stored_at: float, now: float) -> bool:
        return False


@dataclass
class _Entry(Generic[T]):
    value: T
    stored_at: float


class ResultCache(Generic[T]):
    """Thread-safe key/value cache for derived results.

    Expired entries are dropped lazily on read and by :meth:`purge`.
    """

    def __init__(
        self,
        policy: EvictionPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or NoEviction()
        self._clock = clock
        self._entries: dict[str, _Entry[T]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> T | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.policy.is_expired(entry.stored_at, self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def put(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = _Entry(value=value, stored_at=self._clock())

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self.policy.is_expired(entry.stored_at, now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["EvictionPolicy", "TTLEviction", "NoEviction", "ResultCache"]
