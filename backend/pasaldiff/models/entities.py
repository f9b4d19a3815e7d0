"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DocumentKind(str, Enum):
    LAW = "law"
    REGULATION = "regulation"
    DRAFT = "draft"
    UPLOADED = "uploaded"


# Only official instruments are eligible as conflict corpus entries.
CORPUS_KINDS = frozenset({DocumentKind.LAW, DocumentKind.REGULATION})


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    PARSING = "parsing"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


_STATUS_ORDER = [
    ProcessingStatus.PENDING,
    ProcessingStatus.DOWNLOADING,
    ProcessingStatus.EXTRACTING,
    ProcessingStatus.PARSING,
    ProcessingStatus.ANALYZING,
    ProcessingStatus.COMPLETED,
]


def can_transition(current: ProcessingStatus, target: ProcessingStatus) -> bool:
    """Statuses only move forward; ``failed`` is reachable from any non-terminal state."""
    if current.is_terminal:
        return False
    if target is ProcessingStatus.FAILED:
        return True
    return _STATUS_ORDER.index(target) > _STATUS_ORDER.index(current)


class ClauseType(str, Enum):
    BAB = "bab"
    BAGIAN = "bagian"
    PARAGRAF = "paragraf"
    PASAL = "pasal"
    AYAT = "ayat"
    HURUF = "huruf"
    ANGKA = "angka"

    @property
    def depth(self) -> int:
        return _CLAUSE_DEPTH[self]


_CLAUSE_DEPTH = {clause_type: depth for depth, clause_type in enumerate(ClauseType)}


@dataclass(slots=True)
class Document:
    id: str
    title: str
    kind: DocumentKind
    jurisdiction: str | None
    language: str
    created_at: int


@dataclass(slots=True)
class DocumentVersion:
    id: str
    document_id: str
    version_label: str
    page_count: int
    processing_status: ProcessingStatus
    created_at: int


@dataclass(slots=True)
class Clause:
    id: str
    version_id: str
    clause_ref: str | None
    clause_type: ClauseType
    text: str
    page_from: int
    page_to: int
    sequence_order: int
    clause_path: tuple[str, ...] = field(default_factory=tuple)


@dataclass(slots=True)
class ClauseEmbedding:
    """A vector explicitly paired with the clause it was computed for."""

    clause_id: str
    vector: list[float]
    model: str = ""

    @property
    def dim(self) -> int:
        return len(self.vector)


__all__ = [
    "DocumentKind",
    "CORPUS_KINDS",
    "ProcessingStatus",
    "can_transition",
    "ClauseType",
    "Document",
    "DocumentVersion",
    "Clause",
    "ClauseEmbedding",
]
