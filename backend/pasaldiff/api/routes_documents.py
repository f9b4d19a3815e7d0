"""Document and version routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pasaldiff.api.dependencies import get_ingest_pipeline, get_store
from pasaldiff.db.store import LegalStore
from pasaldiff.ingest.pipeline import VersionIngestPipeline
from pasaldiff.models.dto import (
    ClauseModel,
    DocumentCreateRequest,
    DocumentResponse,
    IngestResponse,
    ValidationModel,
    VersionCreateRequest,
    VersionResponse,
)

router = APIRouter()


@router.post("/documents", response_model=DocumentResponse, status_code=201, summary="Register a document")
async def create_document(
    request: DocumentCreateRequest,
    store: LegalStore = Depends(get_store),
) -> DocumentResponse:
    document = store.create_document(
        title=request.title,
        kind=request.kind,
        jurisdiction=request.jurisdiction,
        language=request.language,
    )
    return DocumentResponse.model_validate(document)


@router.get("/documents/{document_id}", response_model=DocumentResponse, summary="Fetch a document and its versions")
async def get_document(document_id: str, store: LegalStore = Depends(get_store)) -> DocumentResponse:
    document = store.get_document(document_id)
    response = DocumentResponse.model_validate(document)
    response.versions = [VersionResponse.model_validate(version) for version in store.list_versions(document_id)]
    return response


@router.post(
    "/documents/{document_id}/versions",
    response_model=IngestResponse,
    status_code=201,
    summary="Segment, embed and store a new version",
)
async def create_version(
    document_id: str,
    request: VersionCreateRequest,
    pipeline: VersionIngestPipeline = Depends(get_ingest_pipeline),
    store: LegalStore = Depends(get_store),
) -> IngestResponse:
    outcome, segmentation = pipeline.ingest_version(
        document_id,
        request.version_label,
        request.pages,
        total_pages=request.total_pages,
    )
    return IngestResponse(
        version=VersionResponse.model_validate(store.get_version(outcome.version_id)),
        clauses=outcome.clauses,
        embeddings=outcome.embeddings,
        indexed=outcome.indexed,
        validation=ValidationModel.model_validate(segmentation.validation),
    )


@router.get("/versions/{version_id}", response_model=VersionResponse, summary="Fetch a version")
async def get_version(version_id: str, store: LegalStore = Depends(get_store)) -> VersionResponse:
    return VersionResponse.model_validate(store.get_version(version_id))


@router.get("/versions/{version_id}/clauses", response_model=list[ClauseModel], summary="List clauses of a version")
async def list_clauses(version_id: str, store: LegalStore = Depends(get_store)) -> list[ClauseModel]:
    store.get_version(version_id)
    return [ClauseModel.model_validate(clause) for clause in store.get_clauses(version_id)]
