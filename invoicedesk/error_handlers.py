"""
Global exception handlers for the InvoiceDesk API.

InvoiceDeskError renders its own envelope, request validation failures
become 400s and anything else is a 500 that never leaks internal details.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from invoicedesk.errors import DependencyError, InvoiceDeskError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(InvoiceDeskError)
    async def invoicedesk_error_handler(request: Request, exc: InvoiceDeskError):
        if isinstance(exc, DependencyError):
            logger.error(
                "Dependency failure during %s on %s", exc.operation, request.url.path
            )
        else:
            logger.info(
                "%s on %s: %s", type(exc).__name__, request.url.path, exc.message
            )
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "message": "Invalid request"},
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "message": "Server error"},
        )
