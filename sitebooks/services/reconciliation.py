"""
SiteBooks - Payment Reconciliation Engine

Derives an invoice's payment status from the complete set of payments
recorded against it. Status is never stored independently or patched
incrementally: every insert or delete re-runs reconcile() over a freshly
read payment list (see PaymentService).

Status precedence:
1. total paid >= invoice total  -> paid
2. total paid > 0               -> partial
3. otherwise                    -> unpaid
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from sitebooks.services.errors import InvalidAmountError
from sitebooks.services.money import Number, non_negative, round_currency, to_money

logger = logging.getLogger(__name__)


class PaymentStatus(str, Enum):
    """Derived payment state of an invoice"""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CHEQUE = "cheque"


# Status ordering; adding a payment can only move an invoice forward
STATUS_HIERARCHY = {
    PaymentStatus.UNPAID: 0,
    PaymentStatus.PARTIAL: 1,
    PaymentStatus.PAID: 2,
}


@dataclass(frozen=True)
class Payment:
    """A recorded payment. Immutable; corrections are a delete plus a new payment."""
    amount: Decimal
    date: date
    method: PaymentMethod = PaymentMethod.CASH
    reference: Optional[str] = None

    def __post_init__(self):
        amount = to_money(self.amount, "payment amount")
        if amount <= 0:
            raise InvalidAmountError(f"payment amount must be greater than zero, got {amount}")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "method", PaymentMethod(self.method))


@dataclass(frozen=True)
class ReconciliationResult:
    total_paid: Decimal
    balance: Decimal  # signed; negative when overpaid
    status: PaymentStatus

    @property
    def balance_due(self) -> Decimal:
        """Balance floored at zero, for display."""
        return max(self.balance, Decimal("0.00"))

    @property
    def overpaid(self) -> Decimal:
        return max(-self.balance, Decimal("0.00"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_paid": float(self.total_paid),
            "balance": float(self.balance),
            "balance_due": float(self.balance_due),
            "overpaid": float(self.overpaid),
            "status": self.status.value,
        }


def _payment_amount(payment) -> Decimal:
    # Payment values, ORM rows and bare numbers are all accepted
    raw = getattr(payment, "amount", payment)
    amount = to_money(raw, "payment amount")
    if amount <= 0:
        raise InvalidAmountError(f"payment amount must be greater than zero, got {amount}")
    return amount


def derive_status(invoice_total: Decimal, total_paid: Decimal) -> PaymentStatus:
    if total_paid >= invoice_total:
        return PaymentStatus.PAID
    if total_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def reconcile(invoice_total: Number, payments: Iterable) -> ReconciliationResult:
    """
    Recompute paid total, signed balance and status from scratch.

    Raises:
        InvalidAmountError: invoice total is negative or any payment is <= 0
    """
    total = round_currency(non_negative(invoice_total, "invoice_total"))

    # Validate everything before summing anything
    amounts = [_payment_amount(p) for p in payments]
    total_paid = round_currency(sum(amounts, Decimal("0")))

    result = ReconciliationResult(
        total_paid=total_paid,
        balance=total - total_paid,
        status=derive_status(total, total_paid),
    )

    logger.debug(
        f"Reconciled {len(amounts)} payments: paid {total_paid} of {total} -> {result.status.value}"
    )
    return result
