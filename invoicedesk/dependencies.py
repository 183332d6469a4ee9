"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from invoicedesk.config import get_settings
from invoicedesk.db import InMemoryInvoiceStore, InvoiceStore, SqlInvoiceStore
from invoicedesk.errors import AuthError, AuthorizationError
from invoicedesk.sessions import (
    Identity,
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    SessionTokenSigner,
)
from invoicedesk.sheets import (
    GoogleSheetsClient,
    InMemorySheetsClient,
    SheetInvoiceStore,
    SheetsClient,
    SheetUserDirectory,
)

_sheets_client: SheetsClient | None = None
_session_store: SessionStore | None = None
_invoice_store: InvoiceStore | None = None
_token_signer: SessionTokenSigner | None = None


def get_sheets_client() -> Optional[SheetsClient]:
    """
    Return a singleton spreadsheet client, or None when no sheet is configured.
    """
    global _sheets_client
    if _sheets_client:
        return _sheets_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _sheets_client = InMemorySheetsClient()
    elif settings.spreadsheet_id and settings.google_service_account_file:
        _sheets_client = GoogleSheetsClient(
            spreadsheet_id=settings.spreadsheet_id,
            service_account_file=settings.google_service_account_file,
            timeout_seconds=settings.outbound_timeout_seconds,
            writable=settings.invoice_backend == "sheet",
        )
    return _sheets_client


def get_user_directory() -> SheetUserDirectory:
    settings = get_settings()
    return SheetUserDirectory(get_sheets_client(), range_name=settings.users_range)


def get_session_store() -> SessionStore:
    """
    Return a singleton session store so sessions persist across requests.
    """
    global _session_store
    if _session_store:
        return _session_store

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _session_store = RedisSessionStore(
            url=settings.redis_url,
            prefix=settings.redis_session_prefix,
            timeout_seconds=settings.outbound_timeout_seconds,
        )
    else:
        _session_store = InMemorySessionStore()
    return _session_store


def get_invoice_store() -> InvoiceStore:
    global _invoice_store
    if _invoice_store:
        return _invoice_store

    settings = get_settings()
    if settings.invoice_backend == "sheet":
        _invoice_store = SheetInvoiceStore(
            get_sheets_client(), range_name=settings.invoices_range
        )
    elif settings.use_in_memory_backends or not settings.database_url:
        _invoice_store = InMemoryInvoiceStore()
    else:
        _invoice_store = SqlInvoiceStore(
            settings.database_url, timeout_seconds=settings.outbound_timeout_seconds
        )
    return _invoice_store


def get_token_signer() -> SessionTokenSigner:
    global _token_signer
    if _token_signer:
        return _token_signer

    settings = get_settings()
    _token_signer = SessionTokenSigner(
        settings.session_secret, max_age_seconds=settings.session_ttl_seconds
    )
    return _token_signer


def session_token(
    request: Request, signer: SessionTokenSigner = Depends(get_token_signer)
) -> Optional[str]:
    """The verified session token from the request cookie, if any."""
    cookie = request.cookies.get(get_settings().session_cookie_name)
    return signer.unsign(cookie)


def current_identity(
    token: Optional[str] = Depends(session_token),
    sessions: SessionStore = Depends(get_session_store),
) -> Optional[Identity]:
    if token is None:
        return None
    return sessions.get(token)


def require_identity(
    identity: Optional[Identity] = Depends(current_identity),
) -> Identity:
    if identity is None:
        raise AuthError(result_key="success")
    return identity


def require_admin(
    identity: Optional[Identity] = Depends(current_identity),
) -> Identity:
    if identity is None or not identity.is_admin:
        raise AuthorizationError()
    return identity
