"""
HTTP routes for the InvoiceDesk API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import ValidationError as PydanticValidationError

from invoicedesk.config import get_settings
from invoicedesk.db import InvoiceRecord, InvoiceStore
from invoicedesk.dependencies import (
    get_invoice_store,
    get_session_store,
    get_token_signer,
    get_user_directory,
    require_admin,
    require_identity,
    session_token,
)
from invoicedesk.errors import DependencyError, ValidationError
from invoicedesk.periods import period_start
from invoicedesk.schemas import (
    CheckUserRequest,
    CheckUserResponse,
    CreateInvoiceResponse,
    HealthResponse,
    InvoiceOut,
    InvoicePayload,
    ListInvoicesResponse,
    LogoutResponse,
)
from invoicedesk.sessions import Identity, SessionStore, SessionTokenSigner
from invoicedesk.sheets import SheetUserDirectory

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_json(request: Request, result_key: str) -> dict:
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body", result_key=result_key)
    return body


async def check_user_payload(request: Request) -> CheckUserRequest:
    body = await _read_json(request, result_key="exists")
    try:
        payload = CheckUserRequest.model_validate(body)
    except PydanticValidationError:
        raise ValidationError("missing", result_key="exists")
    if not payload.email or not payload.phone:
        raise ValidationError("missing", result_key="exists")
    return payload


async def invoice_payload(request: Request) -> InvoicePayload:
    body = await _read_json(request, result_key="success")
    try:
        payload = InvoicePayload.model_validate(body)
    except PydanticValidationError:
        raise ValidationError("Invalid field values", result_key="success")
    if payload.missing_required():
        raise ValidationError("Required fields missing", result_key="success")
    return payload


def _set_session_cookie(response: Response, value: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=value,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.post(
    "/checkUser", response_model=CheckUserResponse, response_model_exclude_none=True
)
def check_user(
    response: Response,
    payload: CheckUserRequest = Depends(check_user_payload),
    previous_token: Optional[str] = Depends(session_token),
    directory: SheetUserDirectory = Depends(get_user_directory),
    sessions: SessionStore = Depends(get_session_store),
    signer: SessionTokenSigner = Depends(get_token_signer),
):
    """
    Look the email/phone pair up in the users sheet and open a session on a match.
    """
    result = directory.lookup(payload.email, payload.phone)
    if not result.exists:
        logger.info("Sign-in rejected for %s", payload.email)
        return CheckUserResponse(exists=False)

    identity = Identity(email=payload.email, role=result.role or "user")
    if previous_token:
        sessions.destroy(previous_token)
    token = signer.new_token()
    sessions.set(token, identity, get_settings().session_ttl_seconds)
    _set_session_cookie(response, signer.sign(token))
    logger.info("Signed in %s as %s", identity.email, identity.role)
    return CheckUserResponse(exists=True, role=identity.role)


@router.post("/logout", response_model=LogoutResponse)
def logout(
    response: Response,
    token: Optional[str] = Depends(session_token),
    sessions: SessionStore = Depends(get_session_store),
):
    if token:
        try:
            sessions.destroy(token)
        except DependencyError:
            logger.warning("Session store unavailable during logout; clearing cookie only")
    response.delete_cookie(get_settings().session_cookie_name)
    return LogoutResponse(ok=True)


@router.post("/invoices", response_model=CreateInvoiceResponse)
def create_invoice(
    identity: Identity = Depends(require_identity),
    payload: InvoicePayload = Depends(invoice_payload),
    store: InvoiceStore = Depends(get_invoice_store),
):
    """
    Store one invoice for the signed-in user. Owner and timestamp are set here.
    """
    record = InvoiceRecord(
        type=payload.type,
        product_code=payload.product_code or None,
        product_name=payload.product_name or None,
        code=payload.code,
        supplier=payload.supplier,
        quantity=payload.quantity,
        unit_price=payload.unit_price,
        total=payload.total,
        note=payload.note,
        user_email=identity.email,
    )
    try:
        stored = store.insert(record)
    except DependencyError as exc:
        raise DependencyError(operation=exc.operation, result_key="success") from exc
    except Exception as exc:
        logger.exception("Unexpected failure storing invoice")
        raise DependencyError(
            "Server error", operation="insert", result_key="success"
        ) from exc
    logger.info("Stored invoice %s for %s", stored.code, identity.email)
    return CreateInvoiceResponse(success=True, invoice=InvoiceOut.from_record(stored))


@router.get("/invoices", response_model=ListInvoicesResponse)
def list_invoices(
    period: Optional[str] = Query(None, description="daily, weekly or monthly"),
    identity: Identity = Depends(require_admin),
    store: InvoiceStore = Depends(get_invoice_store),
):
    since = period_start(period)
    try:
        records = store.list_since(since)
    except DependencyError:
        raise
    except Exception as exc:
        logger.exception("Unexpected failure listing invoices")
        raise DependencyError("Server error", operation="select") from exc
    return ListInvoicesResponse(
        ok=True, invoices=[InvoiceOut.from_record(r) for r in records]
    )
