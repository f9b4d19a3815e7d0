"""Semantic conflict detection against the corpus of enacted law."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, Sequence

from pasaldiff.core.config import Settings
from pasaldiff.core.errors import IntegrityViolation, NotComparable
from pasaldiff.core.metrics import CONFLICT_DURATION, CONFLICTS_FLAGGED
from pasaldiff.core.retry import retry_with_backoff
from pasaldiff.db.store import LegalStore
from pasaldiff.ingest.citations import extract_citations
from pasaldiff.ingest.embeddings import EmbeddingProvider, embed_clauses
from pasaldiff.models.entities import Clause, ClauseEmbedding, ProcessingStatus
from pasaldiff.retrieval.vector_index import CorpusHit
from pasaldiff.utils.text import content_tokens, excerpt, jaccard
from pasaldiff.utils.time import elapsed_ms

logger = logging.getLogger(__name__)

ConflictType = Literal["contradiction", "overlap", "gap", "inconsistency"]
Severity = Literal["high", "medium", "low"]
RiskLevel = Literal["critical", "high", "medium", "low"]

OVERLAP_JACCARD = 0.5
GAP_JACCARD = 0.25
HIGH_SEVERITY_ABOVE = 0.8
MEDIUM_SEVERITY_ABOVE = 0.6

_PROHIBIT_RE = re.compile(
    r"\b(?:dilarang|tidak\s+boleh|tidak\s+dapat|tidak\s+diperkenankan|tidak\s+diizinkan)\b", re.IGNORECASE
)
_EXEMPT_RE = re.compile(
    r"\b(?:tidak\s+wajib|tidak\s+diwajibkan|dikecualikan|dibebaskan|kecuali)\b", re.IGNORECASE
)
_OBLIGE_RE = re.compile(r"\b(?:wajib|harus|diwajibkan|diharuskan|berkewajiban)\b", re.IGNORECASE)
_PERMIT_RE = re.compile(r"\b(?:berhak|dapat|boleh|diizinkan|diperbolehkan|diperkenankan)\b", re.IGNORECASE)

_OPPOSING = (
    frozenset({"permit", "prohibit"}),
    frozenset({"oblige", "prohibit"}),
    frozenset({"oblige", "exempt"}),
)


class SupportsQuery(Protocol):
    def query(
        self,
        vector: Sequence[float],
        exclude_document_id: str | None = None,
        top_k: int = 10,
    ) -> list[CorpusHit]:
        ...


@dataclass(slots=True)
class ConflictFlag:
    source_clause_id: str
    source_clause_ref: str | None
    source_sequence_order: int
    conflicting_document_id: str
    conflicting_clause_id: str
    conflicting_law_title: str
    conflicting_law_ref: str | None
    overlap_score: float
    conflict_type: ConflictType
    source_excerpt: str
    conflicting_excerpt: str
    confidence_score: float
    severity: Severity
    explanation: str
    citation: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_clause_id": self.source_clause_id,
            "source_clause_ref": self.source_clause_ref,
            "source_sequence_order": self.source_sequence_order,
            "conflicting_document_id": self.conflicting_document_id,
            "conflicting_clause_id": self.conflicting_clause_id,
            "conflicting_law_title": self.conflicting_law_title,
            "conflicting_law_ref": self.conflicting_law_ref,
            "overlap_score": self.overlap_score,
            "conflict_type": self.conflict_type,
            "source_excerpt": self.source_excerpt,
            "conflicting_excerpt": self.conflicting_excerpt,
            "confidence_score": self.confidence_score,
            "severity": self.severity,
            "explanation": self.explanation,
            "citation": self.citation,
        }


@dataclass(slots=True)
class ConflictResult:
    conflicts: list[ConflictFlag]
    risk_assessment: RiskLevel
    overall_compatibility_score: float
    threshold: float
    clauses_checked: int
    processing_time_ms: int
    severity_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "conflicts": [flag.to_dict() for flag in self.conflicts],
            "risk_assessment": self.risk_assessment,
            "overall_compatibility_score": self.overall_compatibility_score,
            "threshold": self.threshold,
            "clauses_checked": self.clauses_checked,
            "processing_time_ms": self.processing_time_ms,
            "severity_counts": dict(self.severity_counts),
        }


def polarity(text: str) -> set[str]:
    """Deontic markers present in ``text``: permit, prohibit, oblige, exempt."""
    found: set[str] = set()
    remainder = text or ""
    if _PROHIBIT_RE.search(remainder):
        found.add("prohibit")
        remainder = _PROHIBIT_RE.sub(" ", remainder)
    if _EXEMPT_RE.search(remainder):
        found.add("exempt")
        remainder = _EXEMPT_RE.sub(" ", remainder)
    if _OBLIGE_RE.search(remainder):
        found.add("oblige")
    if _PERMIT_RE.search(remainder):
        found.add("permit")
    return found


def _opposes(left: set[str], right: set[str]) -> bool:
    # Markers both sides share cancel out.
    only_left = left - right
    only_right = right - left
    for pair in _OPPOSING:
        a, b = tuple(pair)
        if (a in only_left and b in only_right) or (b in only_left and a in only_right):
            return True
    return False


def classify_conflict(source_text: str, other_text: str) -> tuple[ConflictType, float]:
    """Conflict type plus the content-token Jaccard it was judged on."""
    source_tokens = content_tokens(source_text)
    other_tokens = content_tokens(other_text)
    shared = source_tokens & other_tokens
    overlap = jaccard(source_tokens, other_tokens)
    if shared and _opposes(polarity(source_text), polarity(other_text)):
        return "contradiction", overlap
    if overlap >= OVERLAP_JACCARD:
        return "overlap", overlap
    if shared and overlap < GAP_JACCARD:
        return "gap", overlap
    return "inconsistency", overlap


def severity_for(score: float) -> Severity:
    if score > HIGH_SEVERITY_ABOVE:
        return "high"
    if score > MEDIUM_SEVERITY_ABOVE:
        return "medium"
    return "low"


def assess_risk(flags: Sequence[ConflictFlag]) -> RiskLevel:
    high = sum(1 for flag in flags if flag.severity == "high")
    if high > 5:
        return "critical"
    if high > 2:
        return "high"
    if flags:
        return "medium"
    return "low"


def _explain(conflict_type: ConflictType, law_title: str, law_ref: str | None) -> str:
    target = f"{law_ref} of {law_title}" if law_ref else law_title
    if conflict_type == "contradiction":
        return f"Opposing obligation or permission on the same subject as {target}"
    if conflict_type == "overlap":
        return f"Regulates substantially the same matter as {target}"
    if conflict_type == "gap":
        return f"Touches the subject of {target} without covering it"
    return f"Semantically close to {target} with differing wording"


class ConflictDetector:
    """Rank corpus clauses that may conflict with a version's clauses."""

    def __init__(self, index: SupportsQuery, settings: Settings) -> None:
        self.index = index
        self.settings = settings

    def detect(
        self,
        clauses: Sequence[Clause],
        embeddings: Sequence[ClauseEmbedding],
        source_document_id: str,
        threshold: float | None = None,
    ) -> ConflictResult:
        started = time.perf_counter()
        threshold = self.settings.conflict_threshold if threshold is None else threshold
        vectors = {embedding.clause_id: embedding.vector for embedding in embeddings}
        clause_ids = {clause.id for clause in clauses}
        unknown = set(vectors) - clause_ids
        if unknown:
            raise IntegrityViolation("embeddings reference unknown clauses", clause_ids=sorted(unknown))

        flags: list[ConflictFlag] = []
        for clause in clauses:
            vector = vectors.get(clause.id)
            if vector is None:
                raise IntegrityViolation("clause has no embedding", clause_id=clause.id)
            hits = retry_with_backoff(
                lambda vector=vector: self.index.query(
                    vector,
                    exclude_document_id=source_document_id,
                    top_k=self.settings.conflict_top_k,
                ),
                max_attempts=self.settings.retry_max_attempts,
                delay=self.settings.retry_delay_seconds,
                backoff_multiplier=self.settings.retry_backoff_multiplier,
                operation="corpus query",
            )
            flags.extend(self._flags_for_clause(clause, hits, source_document_id, threshold))

        flags.sort(key=lambda flag: (-flag.overlap_score, flag.source_sequence_order, flag.conflicting_document_id))
        severity_counts = {"high": 0, "medium": 0, "low": 0}
        for flag in flags:
            severity_counts[flag.severity] += 1
            CONFLICTS_FLAGGED.labels(severity=flag.severity).inc()

        duration_ms = elapsed_ms(started)
        CONFLICT_DURATION.observe(duration_ms / 1000.0)
        logger.info(
            "Conflict detection finished",
            extra={"ctx_clauses": len(clauses), "ctx_conflicts": len(flags), "ctx_duration_ms": duration_ms},
        )
        return ConflictResult(
            conflicts=flags,
            risk_assessment=assess_risk(flags),
            overall_compatibility_score=round(max(0.0, 1.0 - 0.1 * len(flags)), 4),
            threshold=threshold,
            clauses_checked=len(clauses),
            processing_time_ms=duration_ms,
            severity_counts=severity_counts,
        )

    def _flags_for_clause(
        self,
        clause: Clause,
        hits: Sequence[CorpusHit],
        source_document_id: str,
        threshold: float,
    ) -> list[ConflictFlag]:
        best: dict[str, CorpusHit] = {}
        for hit in hits:
            if hit.document_id == source_document_id or hit.score < threshold:
                continue
            current = best.get(hit.document_id)
            if current is None or hit.score > current.score:
                best[hit.document_id] = hit

        flags = []
        for hit in best.values():
            conflict_type, overlap = classify_conflict(clause.text, hit.text)
            score = round(hit.score, 4)
            citations = extract_citations(hit.law_title) or extract_citations(hit.text)
            flags.append(
                ConflictFlag(
                    source_clause_id=clause.id,
                    source_clause_ref=clause.clause_ref,
                    source_sequence_order=clause.sequence_order,
                    conflicting_document_id=hit.document_id,
                    conflicting_clause_id=hit.clause_id,
                    conflicting_law_title=hit.law_title,
                    conflicting_law_ref=hit.law_ref,
                    overlap_score=score,
                    conflict_type=conflict_type,
                    source_excerpt=excerpt(clause.text),
                    conflicting_excerpt=excerpt(hit.text),
                    confidence_score=round(min(1.0, hit.score + 0.1 * overlap), 4),
                    severity=severity_for(score),
                    explanation=_explain(conflict_type, hit.law_title, hit.law_ref),
                    citation=citations[0].to_dict() if citations else None,
                )
            )
        return flags


class ConflictService:
    """Run conflict detection for a stored version."""

    def __init__(
        self,
        store: LegalStore,
        settings: Settings,
        index: SupportsQuery,
        embedding_provider: EmbeddingProvider,
    ) -> None:
        self.store = store
        self.settings = settings
        self.embedding_provider = embedding_provider
        self.detector = ConflictDetector(index, settings)

    def detect_for_version(
        self,
        version_id: str,
        threshold: float | None = None,
        persist: bool = True,
    ) -> tuple[ConflictResult, str | None]:
        version = self.store.get_version(version_id)
        if version.processing_status is not ProcessingStatus.COMPLETED:
            raise NotComparable(
                f"version {version_id} is {version.processing_status.value}, not completed",
                version_id=version_id,
                status=version.processing_status.value,
            )
        clauses = self.store.get_clauses(version_id)
        embeddings = self.store.get_embeddings(version_id)
        embedded = {embedding.clause_id for embedding in embeddings}
        missing = [clause for clause in clauses if clause.id not in embedded]
        if missing:
            fresh = embed_clauses(missing, self.embedding_provider, self.settings)
            self.store.write_embeddings(fresh)
            embeddings = [*embeddings, *fresh]

        result = self.detector.detect(clauses, embeddings, version.document_id, threshold=threshold)
        run_id = None
        if persist:
            run_id = self.store.save_conflict_run(version_id, result.threshold, result.to_dict(), len(result.conflicts))
        return result, run_id


__all__ = [
    "ConflictFlag",
    "ConflictResult",
    "ConflictDetector",
    "ConflictService",
    "classify_conflict",
    "polarity",
    "severity_for",
    "assess_risk",
]
