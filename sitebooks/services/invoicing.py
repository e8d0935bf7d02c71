"""
SiteBooks - Invoice Numbering and Due Dates

Invoice numbers have the form INV-{year}-{sequence}, where the year is the
calendar year of issue (not the tax year) and the sequence is the user's
count of already-numbered invoices that year plus one, zero-padded to four
digits. Uniqueness under concurrent issuing is enforced by the persistence
layer (see InvoiceService); this module only formats.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Union

from sitebooks.services.errors import InvalidAmountError
from sitebooks.services.money import Number, non_negative, round_currency
from sitebooks.services.reconciliation import PaymentStatus

INVOICE_PREFIX = "INV"
SEQUENCE_WIDTH = 4
DEFAULT_PAYMENT_TERMS_DAYS = 30


def _non_negative_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(f"{field} must be a whole number, got {value!r}")
    if value < 0:
        raise InvalidAmountError(f"{field} cannot be negative, got {value}")
    return value


def invoice_number_prefix(year: int) -> str:
    """Prefix shared by every invoice number issued in `year`, e.g. INV-2025-"""
    year = _non_negative_int(year, "year")
    if not 1 <= year <= 9999:
        raise InvalidAmountError(f"year must be between 1 and 9999, got {year}")
    return f"{INVOICE_PREFIX}-{year:04d}-"


def next_invoice_number(existing_count_this_year: int, year: int) -> str:
    """
    Next sequential invoice number for a user.

    >>> next_invoice_number(41, 2025)
    'INV-2025-0042'
    """
    count = _non_negative_int(existing_count_this_year, "existing_count_this_year")
    return f"{invoice_number_prefix(year)}{count + 1:0{SEQUENCE_WIDTH}d}"


def compute_due_date(issue_date: date, payment_terms_days: int = DEFAULT_PAYMENT_TERMS_DAYS) -> date:
    """Plain calendar addition; weekends and bank holidays are not skipped."""
    terms = _non_negative_int(payment_terms_days, "payment_terms_days")
    return issue_date + timedelta(days=terms)


def days_overdue(
    due_date: Optional[Union[date, datetime]],
    today: Union[date, datetime],
    current_status: Union[PaymentStatus, str],
) -> int:
    """
    Whole days an invoice is past due, rounded up.

    Paid invoices, invoices with no due date and invoices not yet due are
    never overdue.
    """
    if due_date is None or current_status == PaymentStatus.PAID:
        return 0

    if isinstance(due_date, datetime) and isinstance(today, datetime):
        days = math.ceil((today - due_date).total_seconds() / 86400)
    else:
        due_day = due_date.date() if isinstance(due_date, datetime) else due_date
        today_day = today.date() if isinstance(today, datetime) else today
        days = (today_day - due_day).days

    return max(days, 0)


# ==================== INVOICE LINES ====================

def line_item_amount(quantity: Number, unit_price: Number) -> Decimal:
    """Line total for an invoice item; quantities may be fractional (e.g. hours)."""
    qty = non_negative(quantity, "quantity")
    price = non_negative(unit_price, "unit_price")
    return round_currency(qty * price)


@dataclass(frozen=True)
class InvoiceLine:
    description: str
    quantity: Decimal
    unit_price: Decimal

    @property
    def amount(self) -> Decimal:
        return line_item_amount(self.quantity, self.unit_price)


def invoice_total(items: Iterable) -> Decimal:
    """Sum of line amounts. Items only need an `amount` attribute."""
    total = Decimal("0")
    for item in items:
        total += non_negative(item.amount, "line amount")
    return round_currency(total)
