"""
Jobs API Endpoints

Invoicing, payments and mileage against a user's jobs:
- POST   /api/jobs/{id}/invoice        - Number the invoice and set its due date
- POST   /api/jobs/{id}/invoice/items  - Add an invoice line
- POST   /api/jobs/{id}/payments       - Record a payment and reconcile
- GET    /api/jobs/{id}/payments       - Payment history and summary
- DELETE /api/jobs/payments/{id}       - Delete a payment and reconcile
- POST   /api/jobs/{id}/mileage        - Log a business trip for a job
- POST   /api/jobs/mileage             - Log a business trip not tied to a job

Every endpoint is scoped to the authenticated user (X-User-Id).
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from sitebooks.database.connection import get_db
from sitebooks.middleware.auth import get_current_user_id
from sitebooks.services.invoice_service import InvoiceService
from sitebooks.services.mileage_service import MileageService
from sitebooks.services.payment_service import PaymentService
from sitebooks.services.reconciliation import PaymentMethod

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


# ==================== Request Models ====================

class IssueInvoiceRequest(BaseModel):
    """Request to issue a job's invoice."""
    issue_date: Optional[date] = Field(None, description="Issue date (defaults to today)")


class InvoiceItemRequest(BaseModel):
    """Request to add an invoice line."""
    description: str = Field(..., min_length=1, description="Line description")
    quantity: Decimal = Field(Decimal("1"), description="Quantity or hours")
    unit_price: Decimal = Field(..., description="Price per unit in GBP")


class RecordPaymentRequest(BaseModel):
    """Request to record a payment against a job."""
    amount: Decimal = Field(..., description="Amount received in GBP")
    payment_date: date = Field(..., description="Date the payment was received")
    payment_method: PaymentMethod = Field(PaymentMethod.CASH, description="cash, bank_transfer, card or cheque")
    reference: Optional[str] = Field(None, description="Bank reference or cheque number")
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "amount": "250.00",
                "payment_date": "2025-05-01",
                "payment_method": "bank_transfer",
                "reference": "SMITH-KITCHEN"
            }
        }


class LogTripRequest(BaseModel):
    """Request to log a business trip."""
    trip_date: date = Field(..., description="Trip date")
    miles: Decimal = Field(..., description="Business miles driven")
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    purpose: Optional[str] = None


# ==================== Invoice Endpoints ====================

@router.post("/{job_id}/invoice")
async def issue_invoice(
    job_id: str,
    request: Optional[IssueInvoiceRequest] = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Issue the invoice for a job.

    Assigns the next INV-{year}-{NNNN} number and sets the due date from the
    job's payment terms. Re-issuing returns the existing number unchanged.
    """
    service = InvoiceService(db)
    return await service.issue_invoice(job_id, user_id, issue_date=request.issue_date if request else None)


@router.post("/{job_id}/invoice/items", status_code=status.HTTP_201_CREATED)
async def add_invoice_item(
    job_id: str,
    request: InvoiceItemRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    service = InvoiceService(db)
    return await service.add_item(
        job_id,
        user_id,
        description=request.description,
        unit_price=request.unit_price,
        quantity=request.quantity,
    )


# ==================== Payment Endpoints ====================

@router.post("/{job_id}/payments", status_code=status.HTTP_201_CREATED)
async def record_payment(
    job_id: str,
    request: RecordPaymentRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a payment and recompute the job's paid total and status.
    """
    service = PaymentService(db)
    return await service.record_payment(
        job_id,
        user_id,
        amount=request.amount,
        payment_date=request.payment_date,
        method=request.payment_method.value,
        reference=request.reference,
        notes=request.notes,
    )


@router.get("/{job_id}/payments")
async def get_payments(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    service = PaymentService(db)
    return await service.get_payment_summary(job_id, user_id)


@router.delete("/payments/{payment_id}")
async def delete_payment(
    payment_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a payment; the job's status is recomputed from what remains."""
    service = PaymentService(db)
    return await service.delete_payment(payment_id, user_id)


# ==================== Mileage Endpoints ====================

async def _log_trip(db: AsyncSession, user_id: str, request: LogTripRequest, job_id: Optional[str] = None):
    service = MileageService(db)
    return await service.log_trip(
        user_id,
        trip_date=request.trip_date,
        miles=request.miles,
        job_id=job_id,
        from_location=request.from_location,
        to_location=request.to_location,
        purpose=request.purpose,
    )


@router.post("/{job_id}/mileage", status_code=status.HTTP_201_CREATED)
async def log_job_trip(
    job_id: str,
    request: LogTripRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Log a trip for a job, priced at HMRC rates against the miles already
    logged in its tax year.
    """
    return await _log_trip(db, user_id, request, job_id=job_id)


@router.post("/mileage", status_code=status.HTTP_201_CREATED)
async def log_trip(
    request: LogTripRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Log a business trip not tied to a job (supplier runs, quotes)."""
    return await _log_trip(db, user_id, request)
