"""Clause alignment and diff components."""

from .engine import ALGORITHM_VERSION, ClauseChange, DiffOptions, DiffResult, DiffSummary, compare_clauses
from .service import ComparisonOutcome, ComparisonService
from .similarity import text_similarity
from .wordiff import WordChange, word_changes

__all__ = [
    "ALGORITHM_VERSION",
    "ClauseChange",
    "DiffOptions",
    "DiffResult",
    "DiffSummary",
    "compare_clauses",
    "ComparisonOutcome",
    "ComparisonService",
    "text_similarity",
    "WordChange",
    "word_changes",
]
