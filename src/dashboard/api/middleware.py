"""Middleware and error mapping for the operations API.

Request logging with an ``X-Process-Time`` header, a last-resort error
handler, and exception handlers translating the domain error hierarchy into
the response contract:

    - IngestionError (fix your input)       -> 400 {error, ...detail}
    - UnsupportedKindError                  -> 400 {error}
    - ReconciliationError (model failures)  -> 500 {error, raw?}
    - StorageError                          -> 500 {error}
    - anything else                         -> 500 generic message
"""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.domain.ports import (
    HeaderMismatchError,
    ImportAbortedError,
    IngestionError,
    MalformedModelResponseError,
    ReconciliationError,
    StorageError,
    UnsupportedKindError,
)

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log request and response details and add X-Process-Time."""
        start_time = time.time()
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Client: {request.client.host if request.client else 'unknown'}"
        )

        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.3f}"

        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.3f}s"
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Last-resort handler for exceptions no route or handler dealt with."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unexpected error on {request.method} {request.url.path}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error. Please check logs for details."}
            )


async def ingestion_error_handler(request: Request, exc: IngestionError) -> JSONResponse:
    content = {"error": str(exc)}
    if isinstance(exc, HeaderMismatchError):
        content.update(
            expected=exc.expected,
            received=exc.received,
            missing=exc.missing,
            unexpected=exc.unexpected,
        )
    logger.warning(f"Rejected input on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content=content)


async def reconciliation_error_handler(request: Request, exc: ReconciliationError) -> JSONResponse:
    if isinstance(exc, UnsupportedKindError):
        return JSONResponse(status_code=400, content={"error": str(exc)})
    content = {"error": str(exc)}
    if isinstance(exc, MalformedModelResponseError) and exc.raw is not None:
        content["raw"] = exc.raw
    logger.error(f"Smart update failed on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=content)


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    content = {"error": str(exc)}
    if isinstance(exc, ImportAbortedError):
        content["imported"] = exc.imported_count
    logger.error(f"Storage failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Map the domain exception hierarchy onto HTTP responses."""
    app.add_exception_handler(IngestionError, ingestion_error_handler)
    app.add_exception_handler(ReconciliationError, reconciliation_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)


def setup_middleware(app: FastAPI) -> None:
    """Setup application middleware and exception handlers.

    Middleware Order (important):
        1. ErrorHandlingMiddleware - Handles unexpected errors
        2. LoggingMiddleware - Logs requests/responses (outermost)
    """
    register_exception_handlers(app)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(LoggingMiddleware)
