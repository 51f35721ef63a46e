"""Application-wide exception handlers.

Clients only ever see a human-readable message; provider and database details
stay in the server log.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.db.store import DocumentStoreError

logger = logging.getLogger(__name__)


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "is invalid")
    return f"{location}: {message}" if location else message


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(_describe(error) for error in errors) or "Invalid request"
    return JSONResponse(status_code=400, content={"detail": detail})


async def store_error_handler(request: Request, exc: DocumentStoreError) -> JSONResponse:
    logger.exception("Document store failure during %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(DocumentStoreError, store_error_handler)
