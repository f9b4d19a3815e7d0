"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pasaldiff.models.entities import ClauseType


@dataclass(slots=True)
class ClauseSegment:
    """Clause produced by the segmenter prior to persistence."""

    clause_ref: str
    clause_type: ClauseType
    text: str
    page_from: int
    page_to: int
    sequence_order: int
    clause_path: tuple[str, ...]


@dataclass(slots=True)
class Citation:
    """A formal reference to another legal instrument found in text."""

    type: str
    number: str
    year: int
    text: str
    start: int
    end: int
    title: str

    @property
    def identity(self) -> tuple[str, str, int]:
        return (self.type, self.number, self.year)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "number": self.number,
            "year": self.year,
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "title": self.title,
        }


@dataclass(slots=True)
class ValidationReport:
    is_valid: bool
    confidence: int
    issues: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    marker_counts: dict[str, int] = field(default_factory=dict)
    citations: int = 0


@dataclass(slots=True)
class SegmentationStats:
    """Shape of a segmentation: clause counts, lengths and a 0-100 quality score."""

    clause_count: int = 0
    total_words: int = 0
    avg_clause_words: int = 0
    clauses_with_refs: int = 0
    clause_types: dict[str, int] = field(default_factory=dict)
    quality_score: int = 0


@dataclass(slots=True)
class SegmentationMetadata:
    total_pages: int
    text_length: int
    duration_ms: int
    method: str = "structural"
    elucidation_skipped: bool = False
    preamble_chars: int = 0
    stats: SegmentationStats = field(default_factory=SegmentationStats)


@dataclass(slots=True)
class SegmentationResult:
    clauses: list[ClauseSegment]
    metadata: SegmentationMetadata
    validation: ValidationReport


@dataclass(slots=True)
class IngestOutcome:
    """Outcome for a single ingested version."""

    version_id: str
    status: str
    clauses: int = 0
    embeddings: int = 0
    indexed: bool = False
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version_id": self.version_id,
            "status": self.status,
            "clauses": self.clauses,
            "embeddings": self.embeddings,
            "indexed": self.indexed,
            "detail": self.detail,
        }


__all__ = [
    "ClauseSegment",
    "Citation",
    "ValidationReport",
    "SegmentationStats",
    "SegmentationMetadata",
    "SegmentationResult",
    "IngestOutcome",
]
