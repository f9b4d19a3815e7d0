"""Segmentation, citation, comparison and conflict routes."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends

from pasaldiff.api.dependencies import (
    get_app_settings,
    get_comparison_service,
    get_conflict_service,
    get_corpus_index,
    get_result_cache,
)
from pasaldiff.compare.engine import DiffOptions
from pasaldiff.compare.service import ComparisonService
from pasaldiff.core.cache import ResultCache
from pasaldiff.core.config import Settings
from pasaldiff.ingest.citations import dedupe_citations, extract_citations
from pasaldiff.ingest.segmenter import segment_pages
from pasaldiff.ingest.validation import validate_legal_document
from pasaldiff.models.dto import (
    AnalyzeRequest,
    CitationModel,
    CitationRequest,
    CitationResponse,
    ClauseModel,
    ComparisonResponse,
    ConflictRequest,
    ConflictResponse,
    DiffRequest,
    SegmentationMetadataModel,
    SegmentationResponse,
    SegmentRequest,
    ServiceResult,
    TextRequest,
    ValidationModel,
)
from pasaldiff.retrieval import ConflictService, CorpusIndex
from pasaldiff.utils.ids import fingerprint

router = APIRouter()


def run_segmentation(request: SegmentRequest, settings: Settings, cache: ResultCache[Any]) -> SegmentationResponse:
    key = fingerprint("segmentation", request.pages, request.total_pages, settings.min_document_chars)
    cached = cache.get(key)
    if cached is not None:
        return cached
    result = segment_pages(
        request.pages,
        total_pages=request.total_pages,
        min_length=settings.min_document_chars,
        validation_floor=settings.validation_floor,
    )
    response = SegmentationResponse(
        clauses=[ClauseModel.model_validate(clause) for clause in result.clauses],
        metadata=SegmentationMetadataModel.model_validate(result.metadata),
        validation=ValidationModel.model_validate(result.validation),
    )
    cache.put(key, response)
    return response


def run_comparison(request: DiffRequest, service: ComparisonService, cache: ResultCache[Any]) -> ComparisonResponse:
    key = fingerprint(
        "comparison",
        request.version_from,
        request.version_to,
        request.options.model_dump() if request.options else None,
    )
    if not request.persist:
        cached = cache.get(key)
        if cached is not None:
            return cached
    options = service.default_options()
    if request.options is not None:
        options = DiffOptions(
            unchanged_threshold=request.options.unchanged_threshold or options.unchanged_threshold,
            same_clause_floor=(
                request.options.same_clause_floor
                if request.options.same_clause_floor is not None
                else options.same_clause_floor
            ),
            include_cosmetic=request.options.include_cosmetic,
            word_changes=request.options.word_changes,
        )
    outcome = service.compare_versions(request.version_from, request.version_to, options, persist=request.persist)
    response = ComparisonResponse(
        version_from=outcome.version_from,
        version_to=outcome.version_to,
        run_id=outcome.run_id,
        **outcome.result.to_dict(),
    )
    cache.put(key, response)
    return response


def run_conflicts(
    request: ConflictRequest,
    service: ConflictService,
    index: CorpusIndex,
    cache: ResultCache[Any],
) -> ConflictResponse:
    key = fingerprint("conflict", request.version_id, request.threshold, index.size)
    if not request.persist:
        cached = cache.get(key)
        if cached is not None:
            return cached
    result, run_id = service.detect_for_version(request.version_id, threshold=request.threshold, persist=request.persist)
    response = ConflictResponse(version_id=request.version_id, run_id=run_id, **result.to_dict())
    cache.put(key, response)
    return response


@router.post("/segment", response_model=SegmentationResponse, summary="Segment raw page text into clauses")
async def segment(
    request: SegmentRequest,
    settings: Settings = Depends(get_app_settings),
    cache: ResultCache[Any] = Depends(get_result_cache),
) -> SegmentationResponse:
    return run_segmentation(request, settings, cache)


@router.post("/citations", response_model=CitationResponse, summary="Extract formal legal citations")
async def citations(request: CitationRequest) -> CitationResponse:
    found = extract_citations(request.text)
    if request.dedupe:
        found = dedupe_citations(found)
    return CitationResponse(citations=[CitationModel.model_validate(citation) for citation in found])


@router.post("/validate", response_model=ValidationModel, summary="Score whether text is a legal document")
async def validate(request: TextRequest, settings: Settings = Depends(get_app_settings)) -> ValidationModel:
    return ValidationModel.model_validate(validate_legal_document(request.text, floor=settings.validation_floor))


@router.post("/diff", response_model=ComparisonResponse, summary="Compare two completed versions")
async def diff(
    request: DiffRequest,
    service: ComparisonService = Depends(get_comparison_service),
    cache: ResultCache[Any] = Depends(get_result_cache),
) -> ComparisonResponse:
    return run_comparison(request, service, cache)


@router.post("/conflicts", response_model=ConflictResponse, summary="Detect conflicts with enacted law")
async def conflicts(
    request: ConflictRequest,
    service: ConflictService = Depends(get_conflict_service),
    index: CorpusIndex = Depends(get_corpus_index),
    cache: ResultCache[Any] = Depends(get_result_cache),
) -> ConflictResponse:
    return run_conflicts(request, service, index, cache)


@router.post("/analyze", response_model=ServiceResult, summary="Run any analysis service by name")
async def analyze(
    request: Annotated[AnalyzeRequest, Body(discriminator="service")],
    settings: Settings = Depends(get_app_settings),
    cache: ResultCache[Any] = Depends(get_result_cache),
) -> Any:
    if isinstance(request, SegmentRequest):
        return run_segmentation(request, settings, cache)
    if isinstance(request, DiffRequest):
        return run_comparison(request, get_comparison_service(), cache)
    return run_conflicts(request, get_conflict_service(), get_corpus_index(), cache)
