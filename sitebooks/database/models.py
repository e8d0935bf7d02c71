"""
SiteBooks - Database Models

Tables:
- jobs: a piece of work, its invoice header and derived payment state
- invoice_items: invoice lines for a job
- payments: payments recorded against a job's invoice
- receipts: expense receipts
- mileage_entries: business trips priced at HMRC rates
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import (
    Column, String, Text, Date, DateTime, Numeric, Integer, ForeignKey, Index, UniqueConstraint
)

from sitebooks.database.connection import Base
from sitebooks.services.reconciliation import PaymentStatus


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _money(value) -> float:
    return float(value) if value is not None else 0


def _iso(value):
    return value.isoformat() if value else None


class JobDB(Base):
    """
    A job for a customer. Holds the invoice header once an invoice is issued.

    amount_paid and payment_status are derived by reconcile() and only ever
    written together with the payment change that caused them.
    """
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)

    # Job details
    property_address = Column(Text, nullable=False)
    job_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    # Customer
    customer_name = Column(String(200), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    # Financial
    amount_invoiced = Column(Numeric(12, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)

    # Dates
    job_date = Column(Date, nullable=False)
    completion_date = Column(Date, nullable=True)
    tax_year = Column(String(9), nullable=False, index=True)  # "2024/2025"

    # Invoice
    invoice_number = Column(String(20), nullable=True)
    invoice_issue_date = Column(Date, nullable=True)
    payment_terms = Column(Integer, nullable=False, default=30)
    payment_due_date = Column(Date, nullable=True)

    status = Column(String(20), nullable=False, default="active")  # active, completed, archived
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        # Backstop for concurrent invoice numbering
        UniqueConstraint("user_id", "invoice_number", name="uq_jobs_user_invoice_number"),
        Index("ix_jobs_user_job_date", "user_id", "job_date"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "property_address": self.property_address,
            "job_type": self.job_type,
            "description": self.description,
            "customer_name": self.customer_name,
            "amount_invoiced": _money(self.amount_invoiced),
            "amount_paid": _money(self.amount_paid),
            "payment_status": self.payment_status,
            "job_date": _iso(self.job_date),
            "tax_year": self.tax_year,
            "invoice_number": self.invoice_number,
            "invoice_issue_date": _iso(self.invoice_issue_date),
            "payment_terms": self.payment_terms,
            "payment_due_date": _iso(self.payment_due_date),
            "status": self.status,
        }


class InvoiceItemDB(Base):
    __tablename__ = "invoice_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)

    description = Column(Text, nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    item_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utc_now)


class PaymentDB(Base):
    """
    A payment against a job's invoice. Never updated; deleted and re-entered
    to correct.
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(20), nullable=False, default="cash")
    reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "amount": _money(self.amount),
            "payment_date": _iso(self.payment_date),
            "payment_method": self.payment_method,
            "reference": self.reference,
            "notes": self.notes,
        }


class ReceiptDB(Base):
    __tablename__ = "receipts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)

    date = Column(Date, nullable=False)
    supplier = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    vat_amount = Column(Numeric(12, 2), nullable=True)
    category = Column(String(20), nullable=False, default="materials")  # materials, subcontractor, tools, transport, other
    items_description = Column(Text, nullable=True)
    image_path = Column(Text, nullable=True)  # object-store key, upload handled elsewhere
    tax_year = Column(String(9), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index("ix_receipts_user_date", "user_id", "date"),
    )


class MileageEntryDB(Base):
    __tablename__ = "mileage_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)

    date = Column(Date, nullable=False)
    from_location = Column(String(200), nullable=True)
    to_location = Column(String(200), nullable=True)
    miles = Column(Numeric(10, 1), nullable=False)
    rate_per_mile = Column(Numeric(6, 4), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    purpose = Column(Text, nullable=True)
    tax_year = Column(String(9), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index("ix_mileage_user_date", "user_id", "date"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "date": _iso(self.date),
            "from_location": self.from_location,
            "to_location": self.to_location,
            "miles": float(self.miles) if self.miles is not None else 0,
            "rate_per_mile": float(self.rate_per_mile) if self.rate_per_mile is not None else 0,
            "amount": _money(self.amount),
            "purpose": self.purpose,
            "tax_year": self.tax_year,
        }
