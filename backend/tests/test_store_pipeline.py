from __future__ import annotations

import pytest

from pasaldiff.compare import ComparisonService
from pasaldiff.core.errors import IntegrityViolation, InvalidInput, NotComparable, NotFound
from pasaldiff.db.store import CorpusRow
from pasaldiff.ingest.embeddings import HashedEmbeddingModel
from pasaldiff.ingest.pipeline import VersionIngestPipeline
from pasaldiff.ingest.types import ClauseSegment
from pasaldiff.models.entities import ClauseEmbedding, ClauseType, DocumentKind, ProcessingStatus, can_transition
from pasaldiff.retrieval import ConflictService, CorpusEntry, CorpusIndex


@pytest.fixture
def provider(settings):
    return HashedEmbeddingModel(dim=settings.embedding_dim)


@pytest.fixture
def index():
    return CorpusIndex()


@pytest.fixture
def pipeline(store, settings, provider, index):
    return VersionIngestPipeline(store, settings, provider, corpus_index=index)


def _revised(pages):
    return [
        pages[0],
        pages[1].replace("membayar upah tepat waktu", "membayar upah paling lambat tanggal lima setiap bulan"),
    ]


def test_status_transitions_only_move_forward():
    assert can_transition(ProcessingStatus.PENDING, ProcessingStatus.PARSING)
    assert can_transition(ProcessingStatus.PARSING, ProcessingStatus.FAILED)
    assert not can_transition(ProcessingStatus.ANALYZING, ProcessingStatus.PARSING)
    assert not can_transition(ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)
    assert not can_transition(ProcessingStatus.FAILED, ProcessingStatus.PARSING)


def test_store_documents_and_versions(store):
    document = store.create_document("RUU Ketenagakerjaan", DocumentKind.DRAFT)
    version = store.create_version(document.id, "Draf 1", page_count=3)

    assert store.get_document(document.id).kind is DocumentKind.DRAFT
    assert store.get_version(version.id).processing_status is ProcessingStatus.PENDING
    assert [item.id for item in store.list_versions(document.id)] == [version.id]

    store.set_status(version.id, ProcessingStatus.PARSING)
    with pytest.raises(IntegrityViolation):
        store.set_status(version.id, ProcessingStatus.PENDING)
    with pytest.raises(NotFound):
        store.get_document("doc-missing")
    with pytest.raises(NotFound):
        store.create_version("doc-missing", "Draf 1")


def test_clauses_are_write_once(store):
    document = store.create_document("UU Contoh", DocumentKind.LAW)
    version = store.create_version(document.id, "2024")
    segment = ClauseSegment(
        clause_ref="Pasal 1",
        clause_type=ClauseType.PASAL,
        text="Ketentuan umum.",
        page_from=1,
        page_to=1,
        sequence_order=1,
        clause_path=("BAB I", "Pasal 1"),
    )
    written = store.write_clauses(version.id, [segment])
    loaded = store.get_clauses(version.id)
    assert loaded == written
    assert loaded[0].clause_path == ("BAB I", "Pasal 1")

    with pytest.raises(IntegrityViolation):
        store.write_clauses(version.id, [segment])


def test_embeddings_are_unique_per_clause(store):
    document = store.create_document("UU Contoh", DocumentKind.LAW)
    version = store.create_version(document.id, "2024")
    segment = ClauseSegment("Pasal 1", ClauseType.PASAL, "Ketentuan umum.", 1, 1, 1, ("Pasal 1",))
    clause = store.write_clauses(version.id, [segment])[0]
    embedding = ClauseEmbedding(clause_id=clause.id, vector=[0.25, 0.75], model="test")

    assert store.write_embeddings([embedding]) == 1
    assert store.get_embeddings(version.id)[0].vector == [0.25, 0.75]
    with pytest.raises(IntegrityViolation):
        store.write_embeddings([embedding])


def test_ingest_law_version_completes_and_indexes(store, pipeline, index, law_pages):
    document = store.create_document("Undang-Undang Nomor 5 Tahun 2024", DocumentKind.LAW)
    outcome, segmentation = pipeline.ingest_version(document.id, "2024", law_pages)

    assert outcome.status == "completed"
    assert outcome.clauses == len(segmentation.clauses) == 9
    assert outcome.embeddings == 9
    assert outcome.indexed
    assert index.size == 9
    version = store.get_version(outcome.version_id)
    assert version.processing_status is ProcessingStatus.COMPLETED
    assert version.page_count == 2
    assert len(list(store.iter_corpus_rows())) == 9


def test_ingest_draft_is_not_indexed(store, pipeline, index, law_pages):
    document = store.create_document("RUU Ketenagakerjaan", DocumentKind.DRAFT)
    outcome, _ = pipeline.ingest_version(document.id, "Draf 1", law_pages)
    assert outcome.status == "completed"
    assert not outcome.indexed
    assert index.size == 0
    assert list(store.iter_corpus_rows()) == []


def test_failed_ingest_marks_version_failed(store, pipeline):
    document = store.create_document("RUU Kosong", DocumentKind.DRAFT)
    with pytest.raises(InvalidInput):
        pipeline.ingest_version(document.id, "Draf 1", ["Pasal 1"])
    versions = store.list_versions(document.id)
    assert [version.processing_status for version in versions] == [ProcessingStatus.FAILED]


def test_corpus_index_rebuild_and_queries(store, pipeline, law_pages):
    document = store.create_document("Undang-Undang Nomor 5 Tahun 2024", DocumentKind.LAW)
    pipeline.ingest_version(document.id, "2024", law_pages)

    rebuilt = CorpusIndex()
    assert rebuilt.rebuild(store) == 9
    assert rebuilt.dim == 384

    vector = store.get_embeddings(store.list_versions(document.id)[0].id)[-1].vector
    hits = rebuilt.query(vector, top_k=3)
    assert len(hits) == 3
    assert hits[0].score == pytest.approx(1.0, abs=1e-5)
    assert hits[0].law_ref == "Pasal 3"
    assert [hit.score for hit in hits] == sorted((hit.score for hit in hits), reverse=True)
    assert rebuilt.query(vector, exclude_document_id=document.id) == []

    assert rebuilt.remove_document(document.id) == 9
    assert rebuilt.size == 0


class QueryingCorpusStore:
    """Store stand-in that queries the index while rows are being read."""

    def __init__(self, index, rows):
        self.index = index
        self.rows = rows
        self.seen = []

    def iter_corpus_rows(self):
        for row in self.rows:
            self.seen.append([hit.clause_id for hit in self.index.query([1.0, 0.0])])
            yield row


def test_corpus_rebuild_keeps_old_entries_visible_until_swap():
    index = CorpusIndex()
    index.upsert([CorpusEntry("old-1", "d-old", "UU 1", "Pasal 1", "lama", [1.0, 0.0])])
    rows = [
        CorpusRow("new-1", "d-new", "UU 2", "Pasal 1", "baru", [1.0, 0.0]),
        CorpusRow("new-2", "d-new", "UU 2", "Pasal 2", "baru", [0.0, 1.0]),
    ]
    store = QueryingCorpusStore(index, rows)

    assert index.rebuild(store) == 2
    assert store.seen == [["old-1"], ["old-1"]]
    assert [hit.clause_id for hit in index.query([1.0, 0.0])] == ["new-1", "new-2"]


def test_failed_rebuild_leaves_corpus_untouched():
    index = CorpusIndex()
    index.upsert([CorpusEntry("old-1", "d-old", "UU 1", "Pasal 1", "lama", [1.0, 0.0])])
    rows = [
        CorpusRow("new-1", "d-new", "UU 2", "Pasal 1", "baru", [1.0, 0.0]),
        CorpusRow("new-2", "d-new", "UU 2", "Pasal 2", "baru", [0.0, 1.0, 0.0]),
    ]
    with pytest.raises(IntegrityViolation):
        index.rebuild(QueryingCorpusStore(index, rows))
    assert index.size == 1
    assert index.dim == 2


def test_corpus_index_rejects_mixed_dimensions():
    index = CorpusIndex(dim=2)
    entry = CorpusEntry("c1", "d1", "UU 1", "Pasal 1", "teks", [1.0, 0.0, 0.0])
    with pytest.raises(IntegrityViolation):
        index.upsert([entry])


def test_comparison_service_diffs_stored_versions(store, pipeline, settings, law_pages):
    document = store.create_document("RUU Ketenagakerjaan", DocumentKind.DRAFT)
    first, _ = pipeline.ingest_version(document.id, "Draf 1", law_pages)
    second, _ = pipeline.ingest_version(document.id, "Draf 2", _revised(law_pages))

    service = ComparisonService(store, settings)
    outcome = service.compare_versions(first.version_id, second.version_id)
    changes = outcome.result.changes
    assert [(change.change_kind, change.clause_ref) for change in changes] == [("modified", "Pasal 2 Ayat (2)")]
    assert (changes[0].page_from, changes[0].page_to) == (2, 2)
    assert outcome.run_id is not None
    stored = store.latest_diff_run(first.version_id, second.version_id)
    assert stored.id == outcome.run_id
    assert stored.payload["summary"]["modifications"] == 1

    again = service.compare_versions(first.version_id, second.version_id, persist=False)
    assert again.run_id is None
    assert [change.to_dict() for change in again.result.changes] == [change.to_dict() for change in changes]


def test_comparison_service_guards(store, pipeline, settings, law_pages):
    document = store.create_document("RUU Ketenagakerjaan", DocumentKind.DRAFT)
    done, _ = pipeline.ingest_version(document.id, "Draf 1", law_pages)
    pending = store.create_version(document.id, "Draf 2")
    service = ComparisonService(store, settings)

    with pytest.raises(InvalidInput):
        service.compare_versions(done.version_id, done.version_id)
    with pytest.raises(NotComparable) as excinfo:
        service.compare_versions(done.version_id, pending.id)
    assert excinfo.value.retryable
    with pytest.raises(NotFound):
        service.compare_versions(done.version_id, "ver-missing")


def test_conflict_service_checks_draft_against_law(store, pipeline, settings, provider, index, law_pages):
    law = store.create_document("Undang-Undang Nomor 5 Tahun 2024 tentang Ketenagakerjaan Daerah", DocumentKind.LAW)
    pipeline.ingest_version(law.id, "2024", law_pages)
    draft = store.create_document("RUU Perubahan", DocumentKind.DRAFT)
    draft_pages = [
        "BAB I\nKETENTUAN UMUM\nPasal 1\n"
        "Pemberi kerja dapat mempekerjakan anak di bawah umur pada malam hari.\n"
        "Pasal 2\nKetentuan mengenai jam kerja diatur dengan Peraturan Pemerintah."
    ]
    outcome, _ = pipeline.ingest_version(draft.id, "Draf 1", draft_pages)

    service = ConflictService(store, settings, index, provider)
    result, run_id = service.detect_for_version(outcome.version_id, threshold=0.5)

    assert run_id is not None
    assert any(
        flag.conflict_type == "contradiction" and flag.conflicting_law_ref == "Pasal 3" for flag in result.conflicts
    )
    assert all(flag.conflicting_document_id == law.id for flag in result.conflicts)
    assert result.clauses_checked == 3
    stored = store.latest_conflict_run(outcome.version_id)
    assert stored.payload["threshold"] == 0.5


def test_conflict_service_requires_completed_version(store, settings, provider, index):
    document = store.create_document("RUU Perubahan", DocumentKind.DRAFT)
    pending = store.create_version(document.id, "Draf 1")
    service = ConflictService(store, settings, index, provider)
    with pytest.raises(NotComparable):
        service.detect_for_version(pending.id)
