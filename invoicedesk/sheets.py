"""
Google Sheets adapters: a thin values client, the user directory used to
sign people in, and an invoice store that appends rows to a sheet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from invoicedesk.db import InvoiceRecord, as_utc
from invoicedesk.errors import DependencyError

logger = logging.getLogger(__name__)

READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
READWRITE_SCOPE = "https://www.googleapis.com/auth/spreadsheets"

SHEETS_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)

DEFAULT_ROLE = "user"

# Column order of the invoices sheet.
INVOICE_COLUMNS = (
    "created_at",
    "user_email",
    "type",
    "code",
    "supplier",
    "product_code",
    "product_name",
    "quantity",
    "unit_price",
    "total",
    "note",
)
NUMERIC_COLUMNS = {"quantity", "unit_price", "total"}


class SheetsClient(Protocol):
    """The two spreadsheet operations the service needs."""

    def get_values(self, range_name: str, unformatted: bool = False) -> list[list]:
        ...

    def append_row(self, range_name: str, row: list) -> None:
        ...


def _sheet_title(range_name: str) -> str:
    return range_name.split("!", 1)[0]


@dataclass
class InMemorySheetsClient:
    """Test double keyed by sheet title; ranges are ignored past the title."""

    sheets: dict = None

    def __post_init__(self):
        if self.sheets is None:
            self.sheets = {}

    def get_values(self, range_name: str, unformatted: bool = False) -> list[list]:
        return [list(row) for row in self.sheets.get(_sheet_title(range_name), [])]

    def append_row(self, range_name: str, row: list) -> None:
        self.sheets.setdefault(_sheet_title(range_name), []).append(list(row))


@dataclass
class GoogleSheetsClient:
    """
    Sheets API v4 client authenticated with a service account key file.
    """

    spreadsheet_id: str
    service_account_file: str
    timeout_seconds: float = 10.0
    writable: bool = False

    def __post_init__(self):
        scopes = [READWRITE_SCOPE if self.writable else READONLY_SCOPE]
        self._credentials = service_account.Credentials.from_service_account_file(
            self.service_account_file, scopes=scopes
        )
        self._service = build(
            "sheets", "v4", credentials=self._credentials, cache_discovery=False
        )

    def _http(self) -> google_auth_httplib2.AuthorizedHttp:
        # httplib2.Http is not thread-safe, so every call gets its own.
        return google_auth_httplib2.AuthorizedHttp(
            self._credentials, http=httplib2.Http(timeout=self.timeout_seconds)
        )

    def get_values(self, range_name: str, unformatted: bool = False) -> list[list]:
        """Cell values of a range; unformatted returns numbers as numbers."""
        render = "UNFORMATTED_VALUE" if unformatted else "FORMATTED_VALUE"
        response = (
            self._service.spreadsheets()
            .values()
            .get(
                spreadsheetId=self.spreadsheet_id,
                range=range_name,
                valueRenderOption=render,
            )
            .execute(http=self._http())
        )
        return response.get("values", [])

    def append_row(self, range_name: str, row: list) -> None:
        (
            self._service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self.spreadsheet_id,
                range=range_name,
                # RAW stores submitted text verbatim; nothing is parsed as a formula.
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [row]},
            )
            .execute(http=self._http())
        )


@dataclass
class LookupResult:
    exists: bool
    role: Optional[str] = None


def _cell(row: list, index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


@dataclass
class SheetUserDirectory:
    """
    Looks users up in a three-column range: email, phone, role.

    Lookups never raise: any failure is logged and reported as "not found".
    """

    client: Optional[SheetsClient]
    range_name: str = "Users!A:C"

    def lookup(self, email: str, phone: str) -> LookupResult:
        if self.client is None:
            logger.warning("No spreadsheet configured; user lookup skipped")
            return LookupResult(exists=False)
        wanted_email = (email or "").lower()
        wanted_phone = phone or ""
        try:
            rows = self.client.get_values(self.range_name)
            for row in rows:
                if (
                    _cell(row, 0).lower() == wanted_email
                    and _cell(row, 1) == wanted_phone
                ):
                    return LookupResult(exists=True, role=_cell(row, 2) or DEFAULT_ROLE)
        except Exception:
            logger.exception("User lookup against %s failed", self.range_name)
            return LookupResult(exists=False)
        return LookupResult(exists=False)


def _parse_number(value: str) -> Optional[float]:
    if value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def record_to_row(record: InvoiceRecord) -> list:
    values = record.as_dict()
    return ["" if values[name] is None else values[name] for name in INVOICE_COLUMNS]


def row_to_record(row: list) -> Optional[InvoiceRecord]:
    """Parse a sheet row; returns None for header or malformed rows."""
    cells = {name: _cell(row, i) for i, name in enumerate(INVOICE_COLUMNS)}
    try:
        created_at = as_utc(datetime.fromisoformat(cells["created_at"]))
    except ValueError:
        return None
    if not (cells["type"] and cells["code"] and cells["supplier"]):
        return None
    kwargs = {}
    for name in INVOICE_COLUMNS:
        if name == "created_at":
            continue
        if name in NUMERIC_COLUMNS:
            kwargs[name] = _parse_number(cells[name])
        else:
            kwargs[name] = cells[name] or None
    return InvoiceRecord(created_at=created_at, **kwargs)


@dataclass
class SheetInvoiceStore:
    """Invoice store that appends one row per invoice to a spreadsheet."""

    client: SheetsClient
    range_name: str = "Invoices!A:K"

    def insert(self, record: InvoiceRecord) -> InvoiceRecord:
        try:
            self.client.append_row(self.range_name, record_to_row(record))
        except SHEETS_ERRORS as exc:
            logger.exception("Invoice append to %s failed", self.range_name)
            raise DependencyError(operation="append") from exc
        return record

    def list_since(self, since: datetime) -> list[InvoiceRecord]:
        try:
            rows = self.client.get_values(self.range_name, unformatted=True)
        except SHEETS_ERRORS as exc:
            logger.exception("Invoice read from %s failed", self.range_name)
            raise DependencyError(operation="select") from exc
        since = as_utc(since)
        records = [r for r in (row_to_record(row) for row in rows) if r is not None]
        matching = [r for r in records if r.created_at >= since]
        return sorted(matching, key=lambda r: r.created_at, reverse=True)
