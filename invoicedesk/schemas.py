"""
Pydantic schemas for the InvoiceDesk API.

Request models keep every field optional: required-field checks happen in
the routes so that missing values map to the API's own 400 envelopes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from invoicedesk.db import InvoiceRecord


class CheckUserRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    email: Optional[str] = None
    phone: Optional[str] = None


class CheckUserResponse(BaseModel):
    exists: bool
    role: Optional[str] = None


class LogoutResponse(BaseModel):
    ok: bool = True


class InvoicePayload(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    type: Optional[str] = None
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    code: Optional[str] = None
    supplier: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total: Optional[float] = None
    note: Optional[str] = None

    def missing_required(self) -> list[str]:
        return [name for name in ("type", "supplier", "code") if not getattr(self, name)]


class InvoiceOut(BaseModel):
    id: Optional[str] = None
    type: str
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    code: str
    supplier: str
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total: Optional[float] = None
    note: Optional[str] = None
    user_email: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: InvoiceRecord) -> "InvoiceOut":
        return cls(
            id=record.id,
            type=record.type,
            product_code=record.product_code,
            product_name=record.product_name,
            code=record.code,
            supplier=record.supplier,
            quantity=record.quantity,
            unit_price=record.unit_price,
            total=record.total,
            note=record.note,
            user_email=record.user_email,
            created_at=record.created_at,
        )


class CreateInvoiceResponse(BaseModel):
    success: bool
    invoice: Optional[InvoiceOut] = None


class ListInvoicesResponse(BaseModel):
    ok: bool
    invoices: list[InvoiceOut]


class HealthResponse(BaseModel):
    status: str
