"""Map domain errors onto HTTP responses.

Only the error's short message reaches the client; details stay in the log.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from process_optimizer.core.errors import (
    DiagramError,
    NotFoundError,
    OptimizationError,
    StorageError,
    ValidationError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)

# Most specific first: VersionConflictError is a StorageError.
_STATUS_CODES: tuple[tuple[type[DiagramError], int], ...] = (
    (NotFoundError, 404),
    (ValidationError, 422),
    (VersionConflictError, 409),
    (StorageError, 503),
    (OptimizationError, 502),
)


def status_for(exc: DiagramError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def diagram_error_handler(request: Request, exc: DiagramError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500 or status_code == 409:
        logger.warning(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc.message,
        )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DiagramError, diagram_error_handler)  # type: ignore[arg-type]
