"""Rule-based significance levels and explanations for clause changes."""

from __future__ import annotations

from typing import Literal

from pasaldiff.compare.similarity import has_legal_keyword
from pasaldiff.models.entities import ClauseType
from pasaldiff.utils.text import excerpt

SignificanceLevel = Literal["major", "minor", "cosmetic"]

MAJOR_BELOW = 0.6
MINOR_BELOW = 0.85
SHORT_ITEM_WORDS = 5
MEDIUM_ITEM_WORDS = 20

_LEVELS: tuple[SignificanceLevel, ...] = ("cosmetic", "minor", "major")
_LIST_ITEMS = frozenset({ClauseType.HURUF, ClauseType.ANGKA})


def level_for_similarity(similarity: float) -> SignificanceLevel:
    if similarity < MAJOR_BELOW:
        return "major"
    if similarity < MINOR_BELOW:
        return "minor"
    return "cosmetic"


def level_for_block(clause_type: ClauseType, text: str) -> SignificanceLevel:
    """Level of a wholly added or deleted clause."""
    if clause_type in _LIST_ITEMS:
        words = len(text.split())
        if words <= SHORT_ITEM_WORDS:
            return "cosmetic"
        if words <= MEDIUM_ITEM_WORDS:
            return "minor"
    return "major"


def escalate(level: SignificanceLevel) -> SignificanceLevel:
    return _LEVELS[min(len(_LEVELS) - 1, _LEVELS.index(level) + 1)]


def assess(base: SignificanceLevel, changed_span: str) -> SignificanceLevel:
    """Raise ``base`` one level when the changed words carry legal force."""
    if changed_span and has_legal_keyword(changed_span):
        return escalate(base)
    return base


def explain_modification(removed: str, added: str) -> str:
    parts = []
    if removed:
        parts.append(f"Removed: {excerpt(removed, 80)}")
    if added:
        parts.append(f"Added: {excerpt(added, 80)}")
    return " | ".join(parts) if parts else "Whitespace or punctuation changed"


def explain_addition(ref: str | None, clause_type: ClauseType) -> str:
    return f"Added {ref}" if ref else f"Added new {clause_type.value}"


def explain_deletion(ref: str | None, clause_type: ClauseType) -> str:
    return f"Deleted {ref}" if ref else f"Deleted {clause_type.value}"


def explain_move(old_ref: str | None, new_ref: str | None, old_position: int, new_position: int) -> str:
    if old_ref and new_ref and old_ref != new_ref:
        return f"Moved from {old_ref} to {new_ref}"
    return f"Moved from position {old_position} to {new_position}"


__all__ = [
    "SignificanceLevel",
    "level_for_similarity",
    "level_for_block",
    "escalate",
    "assess",
    "explain_modification",
    "explain_addition",
    "explain_deletion",
    "explain_move",
]
