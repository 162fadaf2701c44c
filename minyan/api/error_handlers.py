"""
minyan.api.error_handlers — Global exception handlers
=======================================================

Every error leaves the API as ``{"error": {"code", "message", ...}}``:

* :class:`~minyan.errors.MinyanError` → its own ``http_status``
* ``RequestValidationError`` (bad query/body types) → 400 with field details
* ``SQLAlchemyError`` escaping a handler → 500 ``PERSISTENCE_ERROR``
* anything else → 500 without internal details
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from minyan.errors import MinyanError, PersistenceError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(MinyanError)
    async def minyan_error_handler(request: Request, exc: MinyanError):
        if exc.http_status >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        else:
            logger.info("%s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("Invalid request on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Invalid request data",
                    "details": [
                        {
                            "field": ".".join(str(loc) for loc in e["loc"]),
                            "message": e["msg"],
                        }
                        for e in exc.errors()
                    ],
                }
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            "Database error on %s: %s", request.url.path, exc.__class__.__name__, exc_info=True
        )
        err = PersistenceError("The data store is unavailable")
        return JSONResponse(status_code=err.http_status, content=err.to_response())

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
        )
