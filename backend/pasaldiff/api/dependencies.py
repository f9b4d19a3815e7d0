"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pasaldiff.compare.service import ComparisonService
from pasaldiff.core.cache import ResultCache, TTLEviction
from pasaldiff.core.config import Settings, get_settings
from pasaldiff.db.sqlite import SQLiteDatabase
from pasaldiff.db.store import LegalStore
from pasaldiff.ingest.embeddings import EmbeddingProvider, get_embedding_provider
from pasaldiff.ingest.pipeline import VersionIngestPipeline
from pasaldiff.retrieval import ConflictService, CorpusIndex

_DB: SQLiteDatabase | None = None
_STORE: LegalStore | None = None
_EMBEDDING_PROVIDER: EmbeddingProvider | None = None
_CORPUS_INDEX: CorpusIndex | None = None
_PIPELINE: VersionIngestPipeline | None = None
_COMPARISON_SERVICE: ComparisonService | None = None
_CONFLICT_SERVICE: ConflictService | None = None
_RESULT_CACHE: ResultCache[Any] | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        db = SQLiteDatabase(get_app_settings().db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_store() -> LegalStore:
    global _STORE
    if _STORE is None:
        _STORE = LegalStore(get_database())
    return _STORE


def get_embedding_provider_dep() -> EmbeddingProvider:
    global _EMBEDDING_PROVIDER
    if _EMBEDDING_PROVIDER is None:
        _EMBEDDING_PROVIDER = get_embedding_provider(get_app_settings())
    return _EMBEDDING_PROVIDER


def get_corpus_index() -> CorpusIndex:
    global _CORPUS_INDEX
    if _CORPUS_INDEX is None:
        index = CorpusIndex(dim=get_app_settings().embedding_dim)
        index.rebuild(get_store())
        _CORPUS_INDEX = index
    return _CORPUS_INDEX


def get_ingest_pipeline() -> VersionIngestPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = VersionIngestPipeline(
            store=get_store(),
            settings=get_app_settings(),
            embedding_provider=get_embedding_provider_dep(),
            corpus_index=get_corpus_index(),
        )
    return _PIPELINE


def get_comparison_service() -> ComparisonService:
    global _COMPARISON_SERVICE
    if _COMPARISON_SERVICE is None:
        _COMPARISON_SERVICE = ComparisonService(get_store(), get_app_settings())
    return _COMPARISON_SERVICE


def get_conflict_service() -> ConflictService:
    global _CONFLICT_SERVICE
    if _CONFLICT_SERVICE is None:
        _CONFLICT_SERVICE = ConflictService(
            store=get_store(),
            settings=get_app_settings(),
            index=get_corpus_index(),
            embedding_provider=get_embedding_provider_dep(),
        )
    return _CONFLICT_SERVICE


def get_result_cache() -> ResultCache[Any]:
    global _RESULT_CACHE
    if _RESULT_CACHE is None:
        _RESULT_CACHE = ResultCache(TTLEviction(get_app_settings().cache_ttl_seconds))
    return _RESULT_CACHE


def reset_dependencies() -> None:
    """Drop every singleton; used when settings change (tests, reloads)."""
    global _DB, _STORE, _EMBEDDING_PROVIDER, _CORPUS_INDEX, _PIPELINE
    global _COMPARISON_SERVICE, _CONFLICT_SERVICE, _RESULT_CACHE
    if _DB is not None:
        _DB.close()
    _DB = _STORE = _EMBEDDING_PROVIDER = _CORPUS_INDEX = _PIPELINE = None
    _COMPARISON_SERVICE = _CONFLICT_SERVICE = _RESULT_CACHE = None
    get_app_settings.cache_clear()


__all__ = [
    "get_app_settings",
    "get_database",
    "get_store",
    "get_embedding_provider_dep",
    "get_corpus_index",
    "get_ingest_pipeline",
    "get_comparison_service",
    "get_conflict_service",
    "get_result_cache",
    "reset_dependencies",
]
