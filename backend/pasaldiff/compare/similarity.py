"""Clause text similarity and legal-keyword detection."""

from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

from pasaldiff.utils.text import comparable

JACCARD_WEIGHT = 0.7
EDIT_WEIGHT = 0.3

# Obligation, prohibition, permission and sanction markers.
LEGAL_KEYWORD_RE = re.compile(
    r"\b(?:wajib|harus|diwajibkan|berkewajiban|dilarang|tidak\s+boleh|tidak\s+dapat|"
    r"berhak|dapat|boleh|diizinkan|kecuali|dikecualikan|dipidana|pidana|sanksi|denda)\b",
    re.IGNORECASE,
)


def text_similarity(a: str, b: str) -> float:
    """Blend of token Jaccard and normalised edit similarity in [0, 1]."""
    left = comparable(a)
    right = comparable(b)
    if left == right:
        return 1.0
    if not left or not right:
        return 0.0
    left_tokens = set(left.split())
    right_tokens = set(right.split())
    jaccard = len(left_tokens & right_tokens) / len(left_tokens | right_tokens)
    edit = Levenshtein.normalized_similarity(left, right)
    return JACCARD_WEIGHT * jaccard + EDIT_WEIGHT * edit


def has_legal_keyword(text: str) -> bool:
    return bool(LEGAL_KEYWORD_RE.search(text or ""))


__all__ = ["text_similarity", "has_legal_keyword", "LEGAL_KEYWORD_RE"]
