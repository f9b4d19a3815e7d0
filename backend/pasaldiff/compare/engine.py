"""Clause alignment and change classification between two versions."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

from pasaldiff.compare.anchoring import anchor_keys, display_ref
from pasaldiff.compare.significance import (
    SignificanceLevel,
    assess,
    explain_addition,
    explain_deletion,
    explain_modification,
    explain_move,
    level_for_block,
    level_for_similarity,
)
from pasaldiff.compare.similarity import text_similarity
from pasaldiff.compare.wordiff import WordChange, changed_text, word_changes
from pasaldiff.core.errors import EmptyInput, InvalidInput
from pasaldiff.core.metrics import CHANGES_DETECTED, DIFF_DURATION
from pasaldiff.models.entities import Clause
from pasaldiff.utils.time import elapsed_ms

logger = logging.getLogger(__name__)

ALGORITHM_VERSION = "anchor-similarity-1"

ChangeKind = Literal["added", "deleted", "modified", "moved"]

_KIND_RANK = {"deleted": 0, "modified": 1, "moved": 2, "added": 3}


@dataclass(slots=True)
class DiffOptions:
    unchanged_threshold: float = 0.95
    same_clause_floor: float = 0.3
    include_cosmetic: bool = True
    word_changes: bool = True

    def __post_init__(self) -> None:
        if not 0.0 <= self.same_clause_floor < self.unchanged_threshold <= 1.0:
            raise InvalidInput(
                "require 0 <= same_clause_floor < unchanged_threshold <= 1",
                same_clause_floor=self.same_clause_floor,
                unchanged_threshold=self.unchanged_threshold,
            )


@dataclass(slots=True)
class ClauseChange:
    change_kind: ChangeKind
    old_text: str | None
    new_text: str | None
    clause_ref: str | None
    significance_level: SignificanceLevel
    sequence_order: int
    explanation: str
    anchor_key: str
    similarity_score: float | None = None
    word_changes: list[WordChange] | None = None
    from_clause_id: str | None = None
    to_clause_id: str | None = None
    page_from: int | None = None
    page_to: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "change_kind": self.change_kind,
            "old_text": self.old_text,
            "new_text": self.new_text,
            "clause_ref": self.clause_ref,
            "similarity_score": self.similarity_score,
            "significance_level": self.significance_level,
            "sequence_order": self.sequence_order,
            "word_changes": [change.to_dict() for change in self.word_changes] if self.word_changes is not None else None,
            "explanation": self.explanation,
            "anchor_key": self.anchor_key,
            "from_clause_id": self.from_clause_id,
            "to_clause_id": self.to_clause_id,
            "page_from": self.page_from,
            "page_to": self.page_to,
        }


@dataclass(slots=True)
class DiffSummary:
    total_changes: int = 0
    additions: int = 0
    deletions: int = 0
    modifications: int = 0
    moves: int = 0
    significance: dict[str, int] = field(default_factory=lambda: {"major": 0, "minor": 0, "cosmetic": 0})

    @classmethod
    def from_changes(cls, changes: Sequence[ClauseChange]) -> "DiffSummary":
        summary = cls(total_changes=len(changes))
        for change in changes:
            if change.change_kind == "added":
                summary.additions += 1
            elif change.change_kind == "deleted":
                summary.deletions += 1
            elif change.change_kind == "modified":
                summary.modifications += 1
            else:
                summary.moves += 1
            summary.significance[change.significance_level] += 1
        return summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_changes": self.total_changes,
            "additions": self.additions,
            "deletions": self.deletions,
            "modifications": self.modifications,
            "moves": self.moves,
            "significance": dict(self.significance),
        }


@dataclass(slots=True)
class DiffResult:
    changes: list[ClauseChange]
    summary: DiffSummary
    confidence_score: float
    processing_time_ms: int
    algorithm_version: str = ALGORITHM_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "changes": [change.to_dict() for change in self.changes],
            "summary": self.summary.to_dict(),
            "confidence_score": self.confidence_score,
            "processing_time_ms": self.processing_time_ms,
            "algorithm_version": self.algorithm_version,
        }


@dataclass(slots=True)
class _Keyed:
    clause: Clause
    key: str


def compare_clauses(
    from_clauses: Sequence[Clause],
    to_clauses: Sequence[Clause],
    options: DiffOptions | None = None,
) -> DiffResult:
    """Align two clause lists of one document and classify what changed.

    Clauses are paired on anchor keys first; paired texts at or above
    ``unchanged_threshold`` are dropped, those above ``same_clause_floor``
    are modifications, and the rest split into a deletion plus an
    addition. Unpaired deletions and additions that are near-identical are
    then merged into moves.
    """
    if not from_clauses or not to_clauses:
        raise EmptyInput(
            "both versions need at least one clause to compare",
            from_clauses=len(from_clauses),
            to_clauses=len(to_clauses),
        )
    options = options or DiffOptions()
    started = time.perf_counter()

    from_keyed = [_Keyed(clause, key) for clause, key in zip(from_clauses, anchor_keys(from_clauses))]
    to_keyed = [_Keyed(clause, key) for clause, key in zip(to_clauses, anchor_keys(to_clauses))]
    to_by_key = {item.key: item for item in to_keyed}
    from_keys = {item.key for item in from_keyed}

    changes: list[ClauseChange] = []
    deletions: list[_Keyed] = []
    additions: list[_Keyed] = [item for item in to_keyed if item.key not in from_keys]
    kept_pairs = 0

    for old in from_keyed:
        new = to_by_key.get(old.key)
        if new is None:
            deletions.append(old)
            continue
        similarity = text_similarity(old.clause.text, new.clause.text)
        if similarity >= options.unchanged_threshold:
            kept_pairs += 1
        elif similarity >= options.same_clause_floor:
            kept_pairs += 1
            changes.append(_modified(old, new, similarity, options))
        else:
            deletions.append(old)
            additions.append(new)

    moved_from, moved_to = set(), set()
    for similarity, old, new in _move_candidates(deletions, additions, options):
        if id(old) in moved_from or id(new) in moved_to:
            continue
        moved_from.add(id(old))
        moved_to.add(id(new))
        changes.append(_moved(old, new, similarity, options))

    changes.extend(_deleted(old) for old in deletions if id(old) not in moved_from)
    changes.extend(_added(new) for new in additions if id(new) not in moved_to)

    if not options.include_cosmetic:
        changes = [change for change in changes if change.significance_level != "cosmetic"]
    changes.sort(key=lambda change: (change.sequence_order, _KIND_RANK[change.change_kind], change.anchor_key))

    anchored_ratio = 2 * kept_pairs / (len(from_clauses) + len(to_clauses))
    confidence = round(0.4 + 0.6 * anchored_ratio, 4)
    duration_ms = elapsed_ms(started)

    DIFF_DURATION.observe(duration_ms / 1000.0)
    for change in changes:
        CHANGES_DETECTED.labels(kind=change.change_kind).inc()
    logger.info(
        "Compared clause lists",
        extra={
            "ctx_from": len(from_clauses),
            "ctx_to": len(to_clauses),
            "ctx_changes": len(changes),
            "ctx_duration_ms": duration_ms,
        },
    )
    return DiffResult(
        changes=changes,
        summary=DiffSummary.from_changes(changes),
        confidence_score=confidence,
        processing_time_ms=duration_ms,
    )


def _move_candidates(
    deletions: Sequence[_Keyed],
    additions: Sequence[_Keyed],
    options: DiffOptions,
) -> list[tuple[float, _Keyed, _Keyed]]:
    candidates = []
    for old in deletions:
        for new in additions:
            similarity = text_similarity(old.clause.text, new.clause.text)
            if similarity >= options.unchanged_threshold and similarity > options.same_clause_floor:
                candidates.append((similarity, old, new))
    candidates.sort(key=lambda item: (-item[0], item[1].clause.sequence_order, item[2].clause.sequence_order))
    return candidates


def _modified(old: _Keyed, new: _Keyed, similarity: float, options: DiffOptions) -> ClauseChange:
    spans = word_changes(old.clause.text, new.clause.text)
    removed = " ".join(span.text for span in spans if span.kind == "removed")
    added = " ".join(span.text for span in spans if span.kind == "added")
    level = assess(level_for_similarity(similarity), changed_text(spans))
    return ClauseChange(
        change_kind="modified",
        old_text=old.clause.text,
        new_text=new.clause.text,
        clause_ref=display_ref(new.clause),
        similarity_score=round(similarity, 4),
        significance_level=level,
        sequence_order=new.clause.sequence_order,
        word_changes=spans if options.word_changes else None,
        explanation=explain_modification(removed, added),
        anchor_key=new.key,
        from_clause_id=old.clause.id,
        to_clause_id=new.clause.id,
        page_from=new.clause.page_from,
        page_to=new.clause.page_to,
    )


def _moved(old: _Keyed, new: _Keyed, similarity: float, options: DiffOptions) -> ClauseChange:
    spans = word_changes(old.clause.text, new.clause.text)
    return ClauseChange(
        change_kind="moved",
        old_text=old.clause.text,
        new_text=new.clause.text,
        clause_ref=display_ref(new.clause),
        similarity_score=round(similarity, 4),
        significance_level=assess(level_for_similarity(similarity), changed_text(spans)),
        sequence_order=new.clause.sequence_order,
        word_changes=spans if options.word_changes else None,
        explanation=explain_move(
            display_ref(old.clause),
            display_ref(new.clause),
            old.clause.sequence_order,
            new.clause.sequence_order,
        ),
        anchor_key=new.key,
        from_clause_id=old.clause.id,
        to_clause_id=new.clause.id,
        page_from=new.clause.page_from,
        page_to=new.clause.page_to,
    )


def _deleted(old: _Keyed) -> ClauseChange:
    ref = display_ref(old.clause)
    return ClauseChange(
        change_kind="deleted",
        old_text=old.clause.text,
        new_text=None,
        clause_ref=ref,
        significance_level=assess(level_for_block(old.clause.clause_type, old.clause.text), old.clause.text),
        sequence_order=old.clause.sequence_order,
        explanation=explain_deletion(ref, old.clause.clause_type),
        anchor_key=old.key,
        from_clause_id=old.clause.id,
        page_from=old.clause.page_from,
        page_to=old.clause.page_to,
    )


def _added(new: _Keyed) -> ClauseChange:
    ref = display_ref(new.clause)
    return ClauseChange(
        change_kind="added",
        old_text=None,
        new_text=new.clause.text,
        clause_ref=ref,
        significance_level=assess(level_for_block(new.clause.clause_type, new.clause.text), new.clause.text),
        sequence_order=new.clause.sequence_order,
        explanation=explain_addition(ref, new.clause.clause_type),
        anchor_key=new.key,
        to_clause_id=new.clause.id,
        page_from=new.clause.page_from,
        page_to=new.clause.page_to,
    )


__all__ = [
    "ALGORITHM_VERSION",
    "DiffOptions",
    "ClauseChange",
    "DiffSummary",
    "DiffResult",
    "compare_clauses",
]
