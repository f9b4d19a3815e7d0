"""Administrative routes for pasal-diff."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pasaldiff.api.dependencies import get_corpus_index, get_result_cache, get_store
from pasaldiff.core.cache import ResultCache
from pasaldiff.core.metrics import metrics_response
from pasaldiff.db.store import LegalStore
from pasaldiff.retrieval import CorpusIndex

router = APIRouter()


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


@router.post("/corpus/rebuild", summary="Reload the corpus index from stored law and regulation versions")
async def rebuild_corpus(
    index: CorpusIndex = Depends(get_corpus_index),
    store: LegalStore = Depends(get_store),
    cache: ResultCache = Depends(get_result_cache),
) -> dict[str, int]:
    count = index.rebuild(store)
    cache.clear()
    return {"clauses": count}


@router.post("/cache/purge", summary="Drop expired cached results")
async def purge_cache(cache: ResultCache = Depends(get_result_cache)) -> dict[str, int]:
    return {"purged": cache.purge(), "remaining": len(cache)}
