"""
SiteBooks - Money and VAT Calculator

UK prices on receipts are VAT-inclusive, so VAT is back-calculated from the
gross figure: VAT = gross x rate / (100 + rate). The VAT figure is the only
value rounded; net is whatever remains, so net + VAT always equals gross.

Also carries the GBP display helpers used by invoices and reports.
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from sitebooks.services.errors import InvalidAmountError

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

STANDARD_VAT_RATE = Decimal("20")  # UK standard rate (%)
PENNY = Decimal("0.01")


def round_currency(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half-up."""
    return amount.quantize(PENNY, rounding=ROUND_HALF_UP)


def to_money(value: Number, field: str = "amount") -> Decimal:
    """
    Coerce user input into a Decimal without any rounding.

    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.

    Raises:
        InvalidAmountError: value is missing, boolean, non-numeric or not finite
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError(f"{field} must be a number, got {value!r}")

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidAmountError(f"{field} must be a number, got {value!r}")

    if not result.is_finite():
        raise InvalidAmountError(f"{field} must be a finite number, got {value!r}")

    return result


def non_negative(value: Number, field: str = "amount") -> Decimal:
    """to_money() that also rejects negative values."""
    result = to_money(value, field)
    if result < 0:
        raise InvalidAmountError(f"{field} cannot be negative, got {result}")
    return result


def vat_from_gross(gross_amount: Number, vat_rate_percent: Number = STANDARD_VAT_RATE) -> Decimal:
    """
    VAT contained in a VAT-inclusive gross amount.

    >>> vat_from_gross("120.00")
    Decimal('20.00')
    """
    gross = non_negative(gross_amount, "gross_amount")
    rate = non_negative(vat_rate_percent, "vat_rate_percent")

    vat = round_currency(gross * rate / (Decimal("100") + rate))
    logger.debug(f"VAT from gross {gross} at {rate}%: {vat}")
    return vat


def net_from_gross(gross_amount: Number, vat_rate_percent: Number = STANDARD_VAT_RATE) -> Decimal:
    """Gross amount less the VAT it contains."""
    gross = non_negative(gross_amount, "gross_amount")
    return gross - vat_from_gross(gross, vat_rate_percent)


# ==================== DISPLAY HELPERS ====================

def format_currency(amount: Number) -> str:
    """Format as GBP, e.g. £1,234.56 or -£12.00"""
    value = round_currency(to_money(amount))
    sign = "-" if value < 0 else ""
    return f"{sign}£{abs(value):,.2f}"


def format_miles(miles: Number) -> str:
    value = to_money(miles, "miles").quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{value} miles"


def format_date(value: date) -> str:
    """UK display format, e.g. 05 Apr 2025"""
    return value.strftime("%d %b %Y")


def parse_uk_date(text: str) -> Optional[date]:
    """
    Parse an ISO (YYYY-MM-DD) or UK (DD/MM/YYYY) date string.

    Returns None when the text is neither.
    """
    text = (text or "").strip()
    if not text:
        return None

    if "-" in text:
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass

    parts = text.split("/")
    if len(parts) == 3:
        try:
            day, month, year = (int(p) for p in parts)
            return date(year, month, day)
        except ValueError:
            return None

    return None
