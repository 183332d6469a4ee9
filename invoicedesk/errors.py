"""
Error taxonomy for the InvoiceDesk API.

Every error carries the HTTP status it maps to and the result key of the
endpoint's JSON envelope (``exists``, ``success`` or ``ok``), so handlers
render ``{<result_key>: false, "message": ...}`` without knowing the route.
Messages are safe to show to clients; details of external failures are
logged server-side only.
"""

from __future__ import annotations


class InvoiceDeskError(Exception):
    """Base exception for all InvoiceDesk errors."""

    http_status = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None, *, result_key: str = "ok"):
        self.message = message or self.default_message
        self.result_key = result_key
        super().__init__(self.message)

    def to_response(self) -> dict:
        return {self.result_key: False, "message": self.message}


class ValidationError(InvoiceDeskError):
    """A required field is missing or malformed."""

    http_status = 400
    default_message = "Required fields missing"


class AuthError(InvoiceDeskError):
    """No active session."""

    http_status = 401
    default_message = "Not authenticated"


class AuthorizationError(InvoiceDeskError):
    """Session exists but its role may not perform the operation."""

    http_status = 403
    default_message = "forbidden"


class DependencyError(InvoiceDeskError):
    """An external service (spreadsheet, database, session backend) failed."""

    http_status = 500
    default_message = "DB error"

    def __init__(
        self,
        message: str | None = None,
        *,
        operation: str = "",
        result_key: str = "ok",
    ):
        super().__init__(message, result_key=result_key)
        self.operation = operation
