"""ID and fingerprint helpers."""

from __future__ import annotations

import hashlib
import uuid

import orjson


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 string with optional prefix."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base


def fingerprint(*parts: object) -> str:
    """Stable sha256 over JSON-serialisable parts, used for cache keys."""
    payload = orjson.dumps(list(parts), option=orjson.OPT_SORT_KEYS, default=str)
    return hashlib.sha256(payload).hexdigest()
