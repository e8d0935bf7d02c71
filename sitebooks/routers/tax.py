"""
SiteBooks - Tax Calculator API Router

Stateless calculators used by the job, receipt and mileage screens:
- UK tax year resolution (6 April - 5 April)
- VAT back-calculation from VAT-inclusive prices
- HMRC mileage allowance (45p / 25p bands)
- Invoice numbering, due dates and payment reconciliation previews

Nothing here touches the database. Invalid input is answered with a 400
by the application's bookkeeping error handler.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Path, Query
from pydantic import BaseModel, Field

from sitebooks.services.invoicing import compute_due_date, days_overdue, next_invoice_number
from sitebooks.services.mileage import calculate_mileage, get_mileage_rates
from sitebooks.services.money import STANDARD_VAT_RATE, format_currency, net_from_gross, vat_from_gross
from sitebooks.services.reconciliation import PaymentMethod, PaymentStatus, reconcile
from sitebooks.services.tax_year import (
    current_fiscal_year,
    fiscal_year_by_start_year,
    fiscal_years_list,
    parse_fiscal_year_label,
    resolve_fiscal_year,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tax", tags=["Tax Calculators"])


# ==================== REQUEST MODELS ====================

class VATCalculateRequest(BaseModel):
    """Request model for VAT back-calculation."""
    gross_amount: str = Field(..., description="VAT-inclusive amount in GBP")
    vat_rate_percent: str = Field(default=str(STANDARD_VAT_RATE), description="VAT rate as a percentage")

    class Config:
        json_schema_extra = {
            "example": {
                "gross_amount": "120.00",
                "vat_rate_percent": "20"
            }
        }


class MileageCalculateRequest(BaseModel):
    """Request model for HMRC mileage allowance."""
    trip_miles: str = Field(..., description="Business miles for this trip")
    prior_year_miles: str = Field(default="0", description="Business miles already logged this tax year")

    class Config:
        json_schema_extra = {
            "example": {
                "trip_miles": "200",
                "prior_year_miles": "9900"
            }
        }


class DueDateRequest(BaseModel):
    """Request model for invoice due date."""
    issue_date: date = Field(..., description="Invoice issue date")
    payment_terms_days: int = Field(default=30, description="Days allowed for payment")
    today: Optional[date] = Field(default=None, description="Reference date for overdue days (defaults to today)")
    status: PaymentStatus = Field(default=PaymentStatus.UNPAID, description="Current payment status")


class PaymentInput(BaseModel):
    amount: str = Field(..., description="Amount received in GBP")
    payment_date: date
    method: PaymentMethod = Field(default=PaymentMethod.CASH)
    reference: Optional[str] = None


class ReconcileRequest(BaseModel):
    """Request model for payment reconciliation."""
    invoice_total: str = Field(..., description="Invoice total in GBP")
    payments: List[PaymentInput] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "invoice_total": "500.00",
                "payments": [
                    {"amount": "200.00", "payment_date": "2025-05-01", "method": "bank_transfer"}
                ]
            }
        }


# ==================== STATUS ENDPOINT ====================

@router.get("/status")
async def get_status():
    """
    Current rates used by the calculators.
    """
    return {
        "vat": {"standard_rate_percent": float(STANDARD_VAT_RATE)},
        "mileage": get_mileage_rates(),
        "current_tax_year": current_fiscal_year().to_dict(),
    }


# ==================== TAX YEAR ENDPOINTS ====================

@router.get("/tax-years/current")
async def get_current_tax_year():
    return current_fiscal_year().to_dict()


@router.get("/tax-years")
async def list_tax_years(
    years_back: int = Query(default=2, ge=0, le=20),
    years_forward: int = Query(default=1, ge=0, le=5),
):
    """Tax years around the current one, oldest first, for the year picker."""
    return {
        "tax_years": [fy.to_dict() for fy in fiscal_years_list(years_back, years_forward)],
        "current": current_fiscal_year().label,
    }


@router.get("/tax-years/for-date")
async def get_tax_year_for_date(on: date = Query(..., description="Any calendar date")):
    """Tax year a date falls into."""
    return resolve_fiscal_year(on).to_dict()


@router.get("/tax-years/by-start-year/{year}")
async def get_tax_year_by_start_year(year: int = Path(..., ge=1, le=9998)):
    return fiscal_year_by_start_year(year).to_dict()


@router.get("/tax-years/by-label")
async def get_tax_year_by_label(label: str = Query(..., description="Tax year label, e.g. 2024/2025")):
    """
    Parse a tax year label.

    Labels must be YYYY/YYYY with consecutive years.
    """
    return parse_fiscal_year_label(label).to_dict()


# ==================== VAT ENDPOINTS ====================

@router.post("/vat/calculate")
async def calculate_vat(request: VATCalculateRequest):
    """
    Back-calculate VAT from a VAT-inclusive amount.

    VAT = gross x rate / (100 + rate), rounded half-up to the penny.
    Net is gross minus VAT.
    """
    vat = vat_from_gross(request.gross_amount, request.vat_rate_percent)
    net = net_from_gross(request.gross_amount, request.vat_rate_percent)

    return {
        "gross_amount": float(vat + net),
        "vat_rate_percent": float(request.vat_rate_percent),
        "vat_amount": float(vat),
        "net_amount": float(net),
        "formatted": {
            "gross": format_currency(vat + net),
            "vat": format_currency(vat),
            "net": format_currency(net),
        },
    }


# ==================== MILEAGE ENDPOINTS ====================

@router.get("/mileage/rates")
async def get_rates():
    return get_mileage_rates()


@router.post("/mileage/calculate")
async def calculate_mileage_deduction(request: MileageCalculateRequest):
    """
    Price a trip at HMRC approved rates.

    **Bands:**
    - 45p per mile up to 10,000 miles in the tax year
    - 25p per mile after that

    A trip crossing the threshold is split across both bands.
    """
    breakdown = calculate_mileage(request.trip_miles, request.prior_year_miles)
    return breakdown.to_dict()


# ==================== INVOICE ENDPOINTS ====================

@router.get("/invoices/next-number")
async def preview_invoice_number(
    existing_count: int = Query(..., ge=0, description="Invoices already numbered this year"),
    year: Optional[int] = Query(default=None, description="Calendar year (defaults to this year)"),
):
    return {"invoice_number": next_invoice_number(existing_count, year or date.today().year)}


@router.post("/invoices/due-date")
async def calculate_due_date(request: DueDateRequest):
    """Due date from issue date and payment terms, with days overdue."""
    due = compute_due_date(request.issue_date, request.payment_terms_days)
    return {
        "issue_date": request.issue_date.isoformat(),
        "payment_terms_days": request.payment_terms_days,
        "payment_due_date": due.isoformat(),
        "days_overdue": days_overdue(due, request.today or date.today(), request.status),
    }


@router.post("/payments/reconcile")
async def reconcile_payments(request: ReconcileRequest):
    """
    Paid total, balance and status for an invoice and its payments.

    **Status:**
    - `paid`: total paid covers the invoice (overpayment included)
    - `partial`: something paid, balance outstanding
    - `unpaid`: nothing paid
    """
    result = reconcile(request.invoice_total, [p.amount for p in request.payments])
    return {
        "invoice_total": float(request.invoice_total),
        "payment_count": len(request.payments),
        **result.to_dict(),
    }
