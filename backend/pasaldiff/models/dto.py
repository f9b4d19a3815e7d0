"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from pasaldiff.models.entities import ClauseType, DocumentKind, ProcessingStatus


class ErrorResponse(BaseModel):
    code: str
    message: str
    retryable: bool
    context: dict[str, Any] | None = None


class DocumentCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    kind: DocumentKind = DocumentKind.UPLOADED
    jurisdiction: str | None = None
    language: str = "id"


class VersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    document_id: str
    version_label: str
    page_count: int
    processing_status: ProcessingStatus
    created_at: int


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    kind: DocumentKind
    jurisdiction: str | None
    language: str
    created_at: int
    versions: list[VersionResponse] = Field(default_factory=list)


class VersionCreateRequest(BaseModel):
    version_label: str = Field(min_length=1)
    pages: list[str] = Field(min_length=1, description="Extracted text, one entry per page")
    total_pages: int | None = Field(default=None, ge=1)


class ClauseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    clause_ref: str | None
    clause_type: ClauseType
    text: str
    page_from: int
    page_to: int
    sequence_order: int
    clause_path: list[str] = Field(default_factory=list)


class ValidationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    confidence: int
    issues: list[str]
    keywords: list[str]
    marker_counts: dict[str, int]
    citations: int


class SegmentationStatsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    clause_count: int
    total_words: int
    avg_clause_words: int
    clauses_with_refs: int
    clause_types: dict[str, int]
    quality_score: int


class SegmentationMetadataModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_pages: int
    text_length: int
    duration_ms: int
    method: str
    elucidation_skipped: bool
    preamble_chars: int
    stats: SegmentationStatsModel


class IngestResponse(BaseModel):
    version: VersionResponse
    clauses: int
    embeddings: int
    indexed: bool
    validation: ValidationModel


class SegmentRequest(BaseModel):
    service: Literal["segmentation"] = "segmentation"
    pages: list[str] = Field(min_length=1)
    total_pages: int | None = Field(default=None, ge=1)


class SegmentationResponse(BaseModel):
    service: Literal["segmentation"] = "segmentation"
    clauses: list[ClauseModel]
    metadata: SegmentationMetadataModel
    validation: ValidationModel


class TextRequest(BaseModel):
    text: str


class CitationRequest(TextRequest):
    dedupe: bool = False


class CitationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    number: str
    year: int
    text: str
    start: int
    end: int
    title: str


class CitationResponse(BaseModel):
    citations: list[CitationModel]


class DiffOptionsModel(BaseModel):
    unchanged_threshold: float | None = Field(default=None, gt=0.0, le=1.0)
    same_clause_floor: float | None = Field(default=None, ge=0.0, lt=1.0)
    include_cosmetic: bool = True
    word_changes: bool = True


class DiffRequest(BaseModel):
    service: Literal["comparison"] = "comparison"
    version_from: str
    version_to: str
    options: DiffOptionsModel | None = None
    persist: bool = True


class WordChangeModel(BaseModel):
    kind: Literal["unchanged", "added", "removed"]
    text: str


class ClauseChangeModel(BaseModel):
    change_kind: Literal["added", "deleted", "modified", "moved"]
    old_text: str | None
    new_text: str | None
    clause_ref: str | None
    similarity_score: float | None
    significance_level: Literal["major", "minor", "cosmetic"]
    sequence_order: int
    word_changes: list[WordChangeModel] | None
    explanation: str
    anchor_key: str
    from_clause_id: str | None
    to_clause_id: str | None
    page_from: int | None = None
    page_to: int | None = None


class DiffSummaryModel(BaseModel):
    total_changes: int
    additions: int
    deletions: int
    modifications: int
    moves: int
    significance: dict[str, int]


class ComparisonResponse(BaseModel):
    service: Literal["comparison"] = "comparison"
    version_from: str
    version_to: str
    run_id: str | None
    changes: list[ClauseChangeModel]
    summary: DiffSummaryModel
    confidence_score: float
    processing_time_ms: int
    algorithm_version: str


class ConflictRequest(BaseModel):
    service: Literal["conflict"] = "conflict"
    version_id: str
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    persist: bool = True


class ConflictFlagModel(BaseModel):
    source_clause_id: str
    source_clause_ref: str | None
    source_sequence_order: int
    conflicting_document_id: str
    conflicting_clause_id: str
    conflicting_law_title: str
    conflicting_law_ref: str | None
    overlap_score: float
    conflict_type: Literal["contradiction", "overlap", "gap", "inconsistency"]
    source_excerpt: str
    conflicting_excerpt: str
    confidence_score: float
    severity: Literal["high", "medium", "low"]
    explanation: str
    citation: CitationModel | None = None


class ConflictResponse(BaseModel):
    service: Literal["conflict"] = "conflict"
    version_id: str
    run_id: str | None
    conflicts: list[ConflictFlagModel]
    risk_assessment: Literal["critical", "high", "medium", "low"]
    overall_compatibility_score: float
    threshold: float
    clauses_checked: int
    processing_time_ms: int
    severity_counts: dict[str, int]


AnalyzeRequest = Union[SegmentRequest, DiffRequest, ConflictRequest]

ServiceResult = Annotated[
    Union[SegmentationResponse, ComparisonResponse, ConflictResponse],
    Field(discriminator="service"),
]


__all__ = [
    "ErrorResponse",
    "DocumentCreateRequest",
    "DocumentResponse",
    "VersionCreateRequest",
    "VersionResponse",
    "ClauseModel",
    "ValidationModel",
    "SegmentationStatsModel",
    "SegmentationMetadataModel",
    "IngestResponse",
    "SegmentRequest",
    "SegmentationResponse",
    "TextRequest",
    "CitationRequest",
    "CitationModel",
    "CitationResponse",
    "DiffOptionsModel",
    "DiffRequest",
    "ComparisonResponse",
    "ClauseChangeModel",
    "ConflictRequest",
    "ConflictResponse",
    "ConflictFlagModel",
    "AnalyzeRequest",
    "ServiceResult",
]
