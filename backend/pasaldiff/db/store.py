"""Persistence for documents, versions, clauses, embeddings and analysis runs."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import orjson

from pasaldiff.core.errors import IntegrityViolation, NotFound
from pasaldiff.db.sqlite import SQLiteDatabase
from pasaldiff.ingest.embeddings import as_bytes, from_bytes
from pasaldiff.ingest.types import ClauseSegment
from pasaldiff.models.entities import (
    CORPUS_KINDS,
    Clause,
    ClauseEmbedding,
    ClauseType,
    Document,
    DocumentKind,
    DocumentVersion,
    ProcessingStatus,
    can_transition,
)
from pasaldiff.utils.ids import new_id
from pasaldiff.utils.time import now_ms

logger = logging.getLogger(__name__)

_CLAUSE_COLUMNS = "id, version_id, clause_ref, clause_type, text, page_from, page_to, sequence_order, clause_path"


@dataclass(slots=True)
class CorpusRow:
    clause_id: str
    document_id: str
    law_title: str
    law_ref: str | None
    text: str
    vector: list[float]


@dataclass(slots=True)
class RunRecord:
    id: str
    payload: dict[str, Any]
    created_at: int


class LegalStore:
    """Typed access to the SQLite schema.

    Clauses and embeddings are write-once; run payloads are stored as
    orjson blobs so recomputed results can be compared byte for byte.
    """

    def __init__(self, database: SQLiteDatabase) -> None:
        self.db = database

    # Documents ---------------------------------------------------------

    def create_document(
        self,
        title: str,
        kind: DocumentKind | str,
        jurisdiction: str | None = None,
        language: str = "id",
    ) -> Document:
        document = Document(
            id=new_id("doc"),
            title=title,
            kind=DocumentKind(kind),
            jurisdiction=jurisdiction,
            language=language,
            created_at=now_ms(),
        )
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT INTO documents (id, title, kind, jurisdiction, language, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                [document.id, document.title, document.kind.value, jurisdiction, language, document.created_at],
            )
        return document

    def get_document(self, document_id: str) -> Document:
        row = self.db.query_one(
            "SELECT id, title, kind, jurisdiction, language, created_at FROM documents WHERE id = ?",
            [document_id],
        )
        if row is None:
            raise NotFound(f"document {document_id} not found", document_id=document_id)
        return Document(
            id=row["id"],
            title=row["title"],
            kind=DocumentKind(row["kind"]),
            jurisdiction=row["jurisdiction"],
            language=row["language"],
            created_at=row["created_at"],
        )

    # Versions ----------------------------------------------------------

    def create_version(self, document_id: str, version_label: str, page_count: int = 0) -> DocumentVersion:
        self.get_document(document_id)
        now = now_ms()
        version = DocumentVersion(
            id=new_id("ver"),
            document_id=document_id,
            version_label=version_label,
            page_count=page_count,
            processing_status=ProcessingStatus.PENDING,
            created_at=now,
        )
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO document_versions (
                  id, document_id, version_label, page_count, processing_status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [version.id, document_id, version_label, page_count, version.processing_status.value, now, now],
            )
        return version

    def get_version(self, version_id: str) -> DocumentVersion:
        row = self.db.query_one(
            """
            SELECT id, document_id, version_label, page_count, processing_status, created_at
            FROM document_versions WHERE id = ?
            """,
            [version_id],
        )
        if row is None:
            raise NotFound(f"version {version_id} not found", version_id=version_id)
        return _row_to_version(row)

    def list_versions(self, document_id: str) -> list[DocumentVersion]:
        rows = self.db.query(
            """
            SELECT id, document_id, version_label, page_count, processing_status, created_at
            FROM document_versions WHERE document_id = ? ORDER BY created_at, id
            """,
            [document_id],
        )
        return [_row_to_version(row) for row in rows]

    def set_status(self, version_id: str, status: ProcessingStatus, detail: str | None = None) -> DocumentVersion:
        version = self.get_version(version_id)
        if not can_transition(version.processing_status, status):
            raise IntegrityViolation(
                f"illegal status transition {version.processing_status.value} -> {status.value}",
                version_id=version_id,
            )
        with self.db.transaction() as cursor:
            cursor.execute(
                "UPDATE document_versions SET processing_status = ?, status_detail = ?, updated_at = ? WHERE id = ?",
                [status.value, detail, now_ms(), version_id],
            )
        version.processing_status = status
        logger.debug("Version %s moved to %s", version_id, status.value)
        return version

    # Clauses -----------------------------------------------------------

    def write_clauses(self, version_id: str, segments: Sequence[ClauseSegment]) -> list[Clause]:
        """Persist the segmentation output of a version exactly once."""
        clauses = [
            Clause(
                id=new_id("cls"),
                version_id=version_id,
                clause_ref=segment.clause_ref,
                clause_type=segment.clause_type,
                text=segment.text,
                page_from=segment.page_from,
                page_to=segment.page_to,
                sequence_order=segment.sequence_order,
                clause_path=segment.clause_path,
            )
            for segment in segments
        ]
        with self.db.transaction() as cursor:
            existing = cursor.execute("SELECT COUNT(*) AS count FROM clauses WHERE version_id = ?", [version_id]).fetchone()
            if existing["count"]:
                raise IntegrityViolation("clauses already written for version", version_id=version_id)
            try:
                cursor.executemany(
                    f"INSERT INTO clauses ({_CLAUSE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    [
                        (
                            clause.id,
                            clause.version_id,
                            clause.clause_ref,
                            clause.clause_type.value,
                            clause.text,
                            clause.page_from,
                            clause.page_to,
                            clause.sequence_order,
                            orjson.dumps(list(clause.clause_path)).decode("utf-8"),
                        )
                        for clause in clauses
                    ],
                )
            except sqlite3.IntegrityError as exc:
                raise IntegrityViolation(f"clause rows rejected: {exc}", version_id=version_id) from exc
        return clauses

    def get_clauses(self, version_id: str) -> list[Clause]:
        rows = self.db.query(
            f"SELECT {_CLAUSE_COLUMNS} FROM clauses WHERE version_id = ? ORDER BY sequence_order",
            [version_id],
        )
        return [_row_to_clause(row) for row in rows]

    # Embeddings --------------------------------------------------------

    def write_embeddings(self, embeddings: Sequence[ClauseEmbedding]) -> int:
        now = now_ms()
        with self.db.transaction() as cursor:
            try:
                cursor.executemany(
                    "INSERT INTO embeddings (clause_id, model, dim, vector, created_at) VALUES (?, ?, ?, ?, ?)",
                    [
                        (embedding.clause_id, embedding.model, embedding.dim, as_bytes(embedding.vector), now)
                        for embedding in embeddings
                    ],
                )
            except sqlite3.IntegrityError as exc:
                raise IntegrityViolation(f"embedding rows rejected: {exc}") from exc
        return len(embeddings)

    def get_embeddings(self, version_id: str) -> list[ClauseEmbedding]:
        rows = self.db.query(
            """
            SELECT e.clause_id, e.model, e.vector
            FROM embeddings e JOIN clauses c ON c.id = e.clause_id
            WHERE c.version_id = ?
            ORDER BY c.sequence_order
            """,
            [version_id],
        )
        return [
            ClauseEmbedding(clause_id=row["clause_id"], vector=from_bytes(row["vector"]), model=row["model"])
            for row in rows
        ]

    def iter_corpus_rows(self) -> Iterator[CorpusRow]:
        """Embedded clauses of completed law and regulation versions."""
        kinds = sorted(kind.value for kind in CORPUS_KINDS)
        rows = self.db.query(
            f"""
            SELECT c.id AS clause_id, d.id AS document_id, d.title AS law_title,
                   c.clause_ref, c.text, e.vector
            FROM clauses c
            JOIN document_versions v ON v.id = c.version_id
            JOIN documents d ON d.id = v.document_id
            JOIN embeddings e ON e.clause_id = c.id
            WHERE v.processing_status = ? AND d.kind IN ({",".join("?" for _ in kinds)})
            ORDER BY d.id, v.created_at, c.sequence_order
            """,
            [ProcessingStatus.COMPLETED.value, *kinds],
        )
        for row in rows:
            yield CorpusRow(
                clause_id=row["clause_id"],
                document_id=row["document_id"],
                law_title=row["law_title"],
                law_ref=row["clause_ref"],
                text=row["text"],
                vector=from_bytes(row["vector"]),
            )

    # Runs --------------------------------------------------------------

    def save_diff_run(
        self,
        version_from: str,
        version_to: str,
        payload: dict[str, Any],
        algorithm_version: str,
        change_count: int,
    ) -> str:
        run_id = new_id("diff")
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO diff_runs (id, version_from, version_to, algorithm_version, change_count, payload, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [run_id, version_from, version_to, algorithm_version, change_count, orjson.dumps(payload), now_ms()],
            )
        return run_id

    def latest_diff_run(self, version_from: str, version_to: str) -> RunRecord | None:
        row = self.db.query_one(
            """
            SELECT id, payload, created_at FROM diff_runs
            WHERE version_from = ? AND version_to = ?
            ORDER BY created_at DESC, rowid DESC LIMIT 1
            """,
            [version_from, version_to],
        )
        return _row_to_run(row) if row else None

    def save_conflict_run(self, version_id: str, threshold: float, payload: dict[str, Any], conflict_count: int) -> str:
        run_id = new_id("conf")
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO conflict_runs (id, version_id, threshold, conflict_count, payload, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [run_id, version_id, threshold, conflict_count, orjson.dumps(payload), now_ms()],
            )
        return run_id

    def latest_conflict_run(self, version_id: str) -> RunRecord | None:
        row = self.db.query_one(
            """
            SELECT id, payload, created_at FROM conflict_runs
            WHERE version_id = ? ORDER BY created_at DESC, rowid DESC LIMIT 1
            """,
            [version_id],
        )
        return _row_to_run(row) if row else None


def _row_to_version(row: sqlite3.Row) -> DocumentVersion:
    return DocumentVersion(
        id=row["id"],
        document_id=row["document_id"],
        version_label=row["version_label"],
        page_count=row["page_count"],
        processing_status=ProcessingStatus(row["processing_status"]),
        created_at=row["created_at"],
    )


def _row_to_clause(row: sqlite3.Row) -> Clause:
    return Clause(
        id=row["id"],
        version_id=row["version_id"],
        clause_ref=row["clause_ref"],
        clause_type=ClauseType(row["clause_type"]),
        text=row["text"],
        page_from=row["page_from"],
        page_to=row["page_to"],
        sequence_order=row["sequence_order"],
        clause_path=tuple(orjson.loads(row["clause_path"] or "[]")),
    )


def _row_to_run(row: sqlite3.Row) -> RunRecord:
    return RunRecord(id=row["id"], payload=orjson.loads(row["payload"]), created_at=row["created_at"])


__all__ = ["LegalStore", "CorpusRow", "RunRecord"]
