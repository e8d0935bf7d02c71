"""
Unit Tests for Payment Reconciliation

Run with: pytest tests/test_reconciliation.py -v
"""

import itertools

import pytest
from datetime import date
from decimal import Decimal

from sitebooks.services.errors import InvalidAmountError
from sitebooks.services.reconciliation import (
    STATUS_HIERARCHY,
    Payment,
    PaymentMethod,
    PaymentStatus,
    derive_status,
    reconcile,
)


class TestReconcile:

    def test_no_payments_unpaid(self):
        result = reconcile("500.00", [])

        assert result.status == PaymentStatus.UNPAID
        assert result.total_paid == Decimal("0.00")
        assert result.balance == Decimal("500.00")

    def test_partial_payment(self):
        result = reconcile("500.00", ["200.00"])

        assert result.status == PaymentStatus.PARTIAL
        assert result.balance == Decimal("300.00")
        assert result.balance_due == Decimal("300.00")

    def test_paid_in_full(self):
        result = reconcile("500.00", ["200.00", "300.00"])

        assert result.status == PaymentStatus.PAID
        assert result.balance == Decimal("0.00")

    def test_overpayment(self):
        result = reconcile("500.00", ["600.00"])

        assert result.status == PaymentStatus.PAID
        assert result.balance == Decimal("-100.00")
        assert result.balance_due == Decimal("0.00")
        assert result.overpaid == Decimal("100.00")

    def test_zero_total_without_payments_is_paid(self):
        assert reconcile(0, []).status == PaymentStatus.PAID

    def test_float_payments_sum_exactly(self):
        result = reconcile("0.30", [0.1, 0.2])

        assert result.total_paid == Decimal("0.30")
        assert result.status == PaymentStatus.PAID

    def test_accepts_payment_objects(self):
        payments = [
            Payment(amount="150.00", date=date(2025, 5, 1), method="bank_transfer"),
            Payment(amount=Decimal("50.00"), date=date(2025, 5, 8)),
        ]

        assert reconcile("200.00", payments).status == PaymentStatus.PAID

    def test_order_independent(self):
        amounts = ["10.00", "25.50", "64.50"]
        results = {reconcile("150.00", list(p)) for p in itertools.permutations(amounts)}

        assert len(results) == 1

    def test_adding_payments_never_moves_status_backwards(self):
        payments = []
        previous = STATUS_HIERARCHY[reconcile("300.00", payments).status]
        for amount in ["50.00", "100.00", "150.00", "20.00"]:
            payments.append(amount)
            current = STATUS_HIERARCHY[reconcile("300.00", payments).status]
            assert current >= previous
            previous = current

    @pytest.mark.parametrize("amount", ["0", "-10.00", "abc", None])
    def test_invalid_payment_rejected(self, amount):
        with pytest.raises(InvalidAmountError):
            reconcile("100.00", ["50.00", amount])

    def test_negative_invoice_total_rejected(self):
        with pytest.raises(InvalidAmountError):
            reconcile("-1.00", [])

    def test_to_dict(self):
        assert reconcile("500.00", ["600.00"]).to_dict() == {
            "total_paid": 600.0,
            "balance": -100.0,
            "balance_due": 0.0,
            "overpaid": 100.0,
            "status": "paid",
        }

    def test_thousand_pound_invoice(self):
        partial = reconcile(1000, [300, 400])
        assert partial.total_paid == Decimal("700.00")
        assert partial.balance == Decimal("300.00")
        assert partial.status == PaymentStatus.PARTIAL

        paid = reconcile(1000, [1000])
        assert paid.status == PaymentStatus.PAID
        assert paid.balance == Decimal("0.00")

        assert reconcile(1000, []).status == PaymentStatus.UNPAID

    def test_repeat_calls_identical(self):
        payments = ["120.00", "80.00"]

        assert reconcile("250.00", payments) == reconcile("250.00", payments)


class TestDeriveStatus:

    def test_precedence(self):
        assert derive_status(Decimal("100"), Decimal("100")) == PaymentStatus.PAID
        assert derive_status(Decimal("100"), Decimal("0.01")) == PaymentStatus.PARTIAL
        assert derive_status(Decimal("100"), Decimal("0")) == PaymentStatus.UNPAID


class TestPayment:

    def test_amount_coerced(self):
        payment = Payment(amount="75.5", date=date(2025, 6, 1))

        assert payment.amount == Decimal("75.5")
        assert payment.method == PaymentMethod.CASH

    def test_method_coerced(self):
        assert Payment(amount=10, date=date(2025, 6, 1), method="card").method == PaymentMethod.CARD

    @pytest.mark.parametrize("amount", [0, "-5", "ten"])
    def test_invalid_amount_rejected(self, amount):
        with pytest.raises(InvalidAmountError):
            Payment(amount=amount, date=date(2025, 6, 1))

    def test_unknown_method_rejected(self):
        with pytest.raises(ValueError):
            Payment(amount=10, date=date(2025, 6, 1), method="bitcoin")
