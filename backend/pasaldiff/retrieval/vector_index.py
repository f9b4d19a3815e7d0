"""In-memory corpus index over clause embeddings of enacted law."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Sequence

from pasaldiff.core.errors import IntegrityViolation
from pasaldiff.core.metrics import CORPUS_SIZE
from pasaldiff.db.store import LegalStore
from pasaldiff.ingest.embeddings import cosine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CorpusEntry:
    clause_id: str
    document_id: str
    law_title: str
    law_ref: str | None
    text: str
    vector: list[float]


@dataclass(slots=True)
class CorpusHit:
    clause_id: str
    document_id: str
    law_title: str
    law_ref: str | None
    text: str
    score: float


class CorpusIndex:
    """Simple cosine-similarity index keyed by clause id."""

    def __init__(self, dim: int | None = None) -> None:
        self.dim = dim
        self._entries: dict[str, CorpusEntry] = {}
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        return len(self._entries)

    def upsert(self, entries: Iterable[CorpusEntry]) -> int:
        with self._lock:
            checked, self.dim = _checked(entries, self.dim)
            self._entries.update(checked)
        CORPUS_SIZE.set(self.size)
        return len(checked)

    def remove_document(self, document_id: str) -> int:
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if entry.document_id == document_id]
            for key in doomed:
                del self._entries[key]
        CORPUS_SIZE.set(self.size)
        return len(doomed)

    def query(
        self,
        vector: Sequence[float],
        exclude_document_id: str | None = None,
        top_k: int = 10,
    ) -> list[CorpusHit]:
        """Return up to ``top_k`` hits ranked by cosine score, best first."""
        with self._lock:
            entries = list(self._entries.values())
        if not entries:
            return []
        if self.dim is not None and len(vector) != self.dim:
            raise IntegrityViolation("query vector dimension mismatch", expected=self.dim, received=len(vector))
        scored = [
            (cosine(entry.vector, vector), entry)
            for entry in entries
            if exclude_document_id is None or entry.document_id != exclude_document_id
        ]
        scored.sort(key=lambda item: (-item[0], item[1].clause_id))
        return [
            CorpusHit(
                clause_id=entry.clause_id,
                document_id=entry.document_id,
                law_title=entry.law_title,
                law_ref=entry.law_ref,
                text=entry.text,
                score=score,
            )
            for score, entry in scored[:top_k]
        ]

    def rebuild(self, store: LegalStore) -> int:
        """Reload every embedded clause of completed law and regulation versions."""
        fresh, dim = _checked(
            CorpusEntry(
                clause_id=row.clause_id,
                document_id=row.document_id,
                law_title=row.law_title,
                law_ref=row.law_ref,
                text=row.text,
                vector=row.vector,
            )
            for row in store.iter_corpus_rows()
        )
        # Queries see either the old corpus or the new one.
        with self._lock:
            self._entries = fresh
            self.dim = dim
        CORPUS_SIZE.set(self.size)
        count = len(fresh)
        logger.info("Corpus index rebuilt with %d clauses", count)
        return count



def _checked(entries: Iterable[CorpusEntry], dim: int | None) -> tuple[dict[str, CorpusEntry], int | None]:
    """Key entries by clause id, fixing the dimension on the first vector seen."""
    checked: dict[str, CorpusEntry] = {}
    for entry in entries:
        if dim is None:
            dim = len(entry.vector)
        if len(entry.vector) != dim:
            raise IntegrityViolation(
                "corpus vector dimension mismatch",
                clause_id=entry.clause_id,
                expected=dim,
                received=len(entry.vector),
            )
        checked[entry.clause_id] = entry
    return checked, dim


__all__ = ["CorpusIndex", "CorpusEntry", "CorpusHit"]
