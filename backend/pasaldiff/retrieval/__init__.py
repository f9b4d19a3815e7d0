"""Corpus retrieval and conflict detection components."""

from .vector_index import CorpusEntry, CorpusHit, CorpusIndex
from .conflicts import ConflictDetector, ConflictFlag, ConflictResult, ConflictService

__all__ = [
    "CorpusEntry",
    "CorpusHit",
    "CorpusIndex",
    "ConflictDetector",
    "ConflictFlag",
    "ConflictResult",
    "ConflictService",
]
