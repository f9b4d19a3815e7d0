"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

SEGMENT_DURATION = Histogram(
    "pasaldiff_segment_duration_seconds",
    "Clause segmentation duration",
    registry=REGISTRY,
)

DIFF_DURATION = Histogram(
    "pasaldiff_diff_duration_seconds",
    "Clause alignment and diff duration",
    registry=REGISTRY,
)

CONFLICT_DURATION = Histogram(
    "pasaldiff_conflict_duration_seconds",
    "Conflict detection duration",
    registry=REGISTRY,
)

CHANGES_DETECTED = Counter(
    "pasaldiff_changes_total",
    "Clause changes reported by the diff engine",
    labelnames=("kind",),
    registry=REGISTRY,
)

CONFLICTS_FLAGGED = Counter(
    "pasaldiff_conflicts_total",
    "Conflict flags raised",
    labelnames=("severity",),
    registry=REGISTRY,
)

EMBEDDING_REQUESTS = Counter(
    "pasaldiff_embedding_requests_total",
    "Embedding batch requests",
    labelnames=("backend", "status"),
    registry=REGISTRY,
)

CORPUS_SIZE = Gauge(
    "pasaldiff_corpus_clauses",
    "Number of clauses held by the corpus index",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "SEGMENT_DURATION",
    "DIFF_DURATION",
    "CONFLICT_DURATION",
    "CHANGES_DETECTED",
    "CONFLICTS_FLAGGED",
    "EMBEDDING_REQUESTS",
    "CORPUS_SIZE",
    "metrics_response",
]
