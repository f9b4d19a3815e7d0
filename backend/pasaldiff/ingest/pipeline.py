"""Ingest pipeline orchestration for one document version."""

from __future__ import annotations

from typing import Sequence

from pasaldiff.core.config import Settings
from pasaldiff.core.logging import get_logger
from pasaldiff.db.store import LegalStore
from pasaldiff.ingest.embeddings import EmbeddingProvider, embed_clauses
from pasaldiff.ingest.segmenter import segment_pages
from pasaldiff.ingest.types import IngestOutcome, SegmentationResult
from pasaldiff.models.entities import CORPUS_KINDS, ProcessingStatus
from pasaldiff.retrieval.vector_index import CorpusEntry, CorpusIndex

logger = get_logger(__name__)


class VersionIngestPipeline:
    """Coordinate segmentation, embeddings, persistence and corpus indexing."""

    def __init__(
        self,
        store: LegalStore,
        settings: Settings,
        embedding_provider: EmbeddingProvider,
        corpus_index: CorpusIndex | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.embedding_provider = embedding_provider
        self.corpus_index = corpus_index

    def ingest_version(
        self,
        document_id: str,
        version_label: str,
        pages: Sequence[str],
        total_pages: int | None = None,
    ) -> tuple[IngestOutcome, SegmentationResult]:
        document = self.store.get_document(document_id)
        version = self.store.create_version(document_id, version_label, page_count=total_pages or len(pages))
        outcome = IngestOutcome(version_id=version.id, status=ProcessingStatus.PENDING.value)
        try:
            self.store.set_status(version.id, ProcessingStatus.PARSING)
            segmentation = segment_pages(
                pages,
                total_pages=total_pages,
                min_length=self.settings.min_document_chars,
                validation_floor=self.settings.validation_floor,
            )
            clauses = self.store.write_clauses(version.id, segmentation.clauses)
            outcome.clauses = len(clauses)

            self.store.set_status(version.id, ProcessingStatus.ANALYZING)
            embeddings = embed_clauses(clauses, self.embedding_provider, self.settings)
            outcome.embeddings = self.store.write_embeddings(embeddings)

            if self.corpus_index is not None and document.kind in CORPUS_KINDS:
                by_id = {clause.id: clause for clause in clauses}
                self.corpus_index.upsert(
                    CorpusEntry(
                        clause_id=embedding.clause_id,
                        document_id=document.id,
                        law_title=document.title,
                        law_ref=by_id[embedding.clause_id].clause_ref,
                        text=by_id[embedding.clause_id].text,
                        vector=embedding.vector,
                    )
                    for embedding in embeddings
                )
                outcome.indexed = True

            self.store.set_status(version.id, ProcessingStatus.COMPLETED)
            outcome.status = ProcessingStatus.COMPLETED.value
        except Exception as exc:
            logger.exception("Ingest of version %s failed: %s", version.id, exc)
            self.store.set_status(version.id, ProcessingStatus.FAILED, detail=str(exc))
            raise
        logger.info(
            "Ingested version",
            extra={
                "ctx_version_id": version.id,
                "ctx_clauses": outcome.clauses,
                "ctx_indexed": outcome.indexed,
            },
        )
        return outcome, segmentation


__all__ = ["VersionIngestPipeline"]
