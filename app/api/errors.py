"""
app/api/errors.py

Maps pipeline exceptions to structured JSON error responses.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.errors import (
    ConfigurationError,
    ConflictError,
    FetchError,
    NotFoundError,
    ParseError,
    PipelineError,
)
from app.tracking.logging_utils import log_event

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[PipelineError], int] = {
    FetchError: status.HTTP_502_BAD_GATEWAY,
    ParseError: status.HTTP_502_BAD_GATEWAY,
    ConfigurationError: status.HTTP_503_SERVICE_UNAVAILABLE,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
}


def status_code_for(exc: PipelineError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def pipeline_error_response(exc: PipelineError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code_for(exc),
        content={"status": "error", "error": exc.code, "message": str(exc)},
    )


async def _handle_pipeline_error(request: Request, exc: PipelineError) -> JSONResponse:
    log_event(
        logger,
        logging.WARNING,
        "api_pipeline_error",
        path=request.url.path,
        exc=exc,
    )
    return pipeline_error_response(exc)


def register_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(PipelineError, _handle_pipeline_error)
