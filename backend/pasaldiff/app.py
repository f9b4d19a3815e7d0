"""FastAPI application setup for pasal-diff."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pasaldiff import __version__
from pasaldiff.api.dependencies import (
    get_app_settings,
    get_comparison_service,
    get_conflict_service,
    get_corpus_index,
    get_ingest_pipeline,
    get_store,
)
from pasaldiff.api.routes_admin import router as admin_router
from pasaldiff.api.routes_analysis import router as analysis_router
from pasaldiff.api.routes_documents import router as documents_router
from pasaldiff.core.errors import (
    DependencyRejected,
    DependencyUnavailable,
    IntegrityViolation,
    InvalidInput,
    NotComparable,
    NotFound,
    PasalDiffError,
)
from pasaldiff.core.logging import configure_logging
from pasaldiff.models.dto import ErrorResponse

configure_logging()
logger = logging.getLogger(__name__)

# Most specific first; EmptyInput is covered by InvalidInput.
ERROR_STATUS: tuple[tuple[type[PasalDiffError], int], ...] = (
    (NotFound, 404),
    (InvalidInput, 422),
    (NotComparable, 409),
    (DependencyUnavailable, 503),
    (DependencyRejected, 502),
    (IntegrityViolation, 500),
)
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status_code: {"model": ErrorResponse} for status_code in sorted({status for _, status in ERROR_STATUS})
}

app = FastAPI(
    title="pasal-diff",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(documents_router, prefix="", tags=["documents"], responses=ERROR_RESPONSES)
app.include_router(analysis_router, prefix="", tags=["analysis"], responses=ERROR_RESPONSES)
app.include_router(admin_router, prefix="", tags=["admin"], responses=ERROR_RESPONSES)


def status_for(exc: PasalDiffError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(PasalDiffError)
async def handle_pasaldiff_error(request: Request, exc: PasalDiffError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, extra={"ctx_code": exc.code})
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message, extra={"ctx_code": exc.code})
    body = ErrorResponse.model_validate(exc.to_dict())
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_store()
    get_corpus_index()
    get_ingest_pipeline()
    get_comparison_service()
    get_conflict_service()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
