"""
Invoice record storage: the store interface, an in-memory implementation
and a SQLAlchemy-backed one (Postgres in production, SQLite in tests).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import Column, DateTime, Float, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from invoicedesk.errors import DependencyError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class InvoiceRecord:
    type: str
    code: str
    supplier: str
    user_email: str
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total: Optional[float] = None
    note: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "code": self.code,
            "supplier": self.supplier,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total": self.total,
            "note": self.note,
            "user_email": self.user_email,
            "created_at": as_utc(self.created_at).isoformat(),
        }


class InvoiceStore(Protocol):
    """Insert and time-window queries over submitted invoices."""

    def insert(self, record: InvoiceRecord) -> InvoiceRecord:
        ...

    def list_since(self, since: datetime) -> list[InvoiceRecord]:
        ...


class InMemoryInvoiceStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.records: list[InvoiceRecord] = []

    def insert(self, record: InvoiceRecord) -> InvoiceRecord:
        if record.id is None:
            record.id = uuid.uuid4().hex
        self.records.append(record)
        return record

    def list_since(self, since: datetime) -> list[InvoiceRecord]:
        since = as_utc(since)
        matching = [r for r in self.records if as_utc(r.created_at) >= since]
        return sorted(matching, key=lambda r: as_utc(r.created_at), reverse=True)

    def reset(self) -> None:
        """Clear all stored records (useful in tests)."""
        self.records.clear()


class SqlInvoiceStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str, timeout_seconds: float = 10.0):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlInvoiceStore")
        engine_kwargs: dict = {}
        if database_url.startswith("postgresql"):
            engine_kwargs["pool_timeout"] = timeout_seconds
            engine_kwargs["connect_args"] = {
                "connect_timeout": max(1, int(timeout_seconds))
            }
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
            **engine_kwargs,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_record(self, row: "InvoiceRow") -> InvoiceRecord:
        return InvoiceRecord(
            id=row.id,
            type=row.type,
            product_code=row.product_code,
            product_name=row.product_name,
            code=row.code,
            supplier=row.supplier,
            quantity=row.quantity,
            unit_price=row.unit_price,
            total=row.total,
            note=row.note,
            user_email=row.user_email,
            created_at=as_utc(row.created_at),
        )

    def insert(self, record: InvoiceRecord) -> InvoiceRecord:
        row = InvoiceRow(
            id=record.id or uuid.uuid4().hex,
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
            created_at=as_utc(record.created_at),
        )
        try:
            with self.Session() as session:
                session.add(row)
                session.commit()
                session.refresh(row)
                return self._to_record(row)
        except SQLAlchemyError as exc:
            logger.exception("Invoice insert failed")
            raise DependencyError(operation="insert") from exc

    def list_since(self, since: datetime) -> list[InvoiceRecord]:
        stmt = (
            select(InvoiceRow)
            .where(InvoiceRow.created_at >= as_utc(since))
            .order_by(InvoiceRow.created_at.desc())
        )
        try:
            with self.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return [self._to_record(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.exception("Invoice select failed")
            raise DependencyError(operation="select") from exc


Base = declarative_base()


class InvoiceRow(Base):
    __tablename__ = "invoices"

    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)
    product_code = Column(String, nullable=True)
    product_name = Column(String, nullable=True)
    code = Column(String, nullable=False)
    supplier = Column(String, nullable=False)
    quantity = Column(Float, nullable=True)
    unit_price = Column(Float, nullable=True)
    total = Column(Float, nullable=True)
    note = Column(String, nullable=True)
    user_email = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
