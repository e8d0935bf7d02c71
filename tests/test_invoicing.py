"""
Unit Tests for Invoice Numbering, Due Dates and Invoice Lines

Run with: pytest tests/test_invoicing.py -v
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from sitebooks.services.errors import InvalidAmountError
from sitebooks.services.invoicing import (
    InvoiceLine,
    compute_due_date,
    days_overdue,
    invoice_number_prefix,
    invoice_total,
    line_item_amount,
    next_invoice_number,
)
from sitebooks.services.reconciliation import PaymentStatus


class TestInvoiceNumbering:

    def test_first_invoice_of_year(self):
        assert next_invoice_number(0, 2025) == "INV-2025-0001"

    def test_sequence_is_zero_padded(self):
        assert next_invoice_number(41, 2025) == "INV-2025-0042"

    def test_sequence_grows_past_four_digits(self):
        assert next_invoice_number(9999, 2025) == "INV-2025-10000"

    def test_numbers_strictly_increase_within_year(self):
        numbers = [next_invoice_number(n, 2026) for n in range(0, 120)]

        assert len(set(numbers)) == len(numbers)
        assert all(n.startswith(invoice_number_prefix(2026)) for n in numbers)

    def test_prefix(self):
        assert invoice_number_prefix(2025) == "INV-2025-"

    @pytest.mark.parametrize("count", [-1, 1.5, "3", True, None])
    def test_invalid_count_rejected(self, count):
        with pytest.raises(InvalidAmountError):
            next_invoice_number(count, 2025)

    @pytest.mark.parametrize("year", [0, 10000, -2025])
    def test_invalid_year_rejected(self, year):
        with pytest.raises(InvalidAmountError):
            invoice_number_prefix(year)


class TestDueDate:

    def test_default_terms_thirty_days(self):
        assert compute_due_date(date(2025, 5, 1)) == date(2025, 5, 31)

    def test_crosses_short_february(self):
        assert compute_due_date(date(2025, 1, 31), 30) == date(2025, 3, 2)

    def test_crosses_leap_february(self):
        assert compute_due_date(date(2024, 2, 1), 30) == date(2024, 3, 2)

    def test_zero_terms_due_on_issue(self):
        assert compute_due_date(date(2025, 5, 1), 0) == date(2025, 5, 1)

    def test_weekends_not_skipped(self):
        # 2025-05-03 is a Saturday
        assert compute_due_date(date(2025, 4, 26), 7) == date(2025, 5, 3)

    def test_negative_terms_rejected(self):
        with pytest.raises(InvalidAmountError):
            compute_due_date(date(2025, 5, 1), -7)


class TestDaysOverdue:

    @pytest.fixture
    def due(self):
        return date(2025, 5, 15)

    def test_on_due_date(self, due):
        assert days_overdue(due, due, PaymentStatus.UNPAID) == 0

    def test_before_due_date(self, due):
        assert days_overdue(due, due - timedelta(days=10), PaymentStatus.PARTIAL) == 0

    def test_after_due_date(self, due):
        assert days_overdue(due, date(2025, 5, 20), PaymentStatus.UNPAID) == 5

    def test_paid_never_overdue(self, due):
        assert days_overdue(due, date(2026, 1, 1), PaymentStatus.PAID) == 0
        assert days_overdue(due, date(2026, 1, 1), "paid") == 0

    def test_no_due_date(self):
        assert days_overdue(None, date(2026, 1, 1), PaymentStatus.UNPAID) == 0

    def test_partial_days_round_up(self):
        due = datetime(2025, 5, 1, 12, 0)

        assert days_overdue(due, datetime(2025, 5, 1, 13, 0), PaymentStatus.UNPAID) == 1
        assert days_overdue(due, datetime(2025, 5, 2, 13, 0), PaymentStatus.UNPAID) == 2

    def test_mixed_date_and_datetime(self, due):
        assert days_overdue(due, datetime(2025, 5, 17, 9, 30), PaymentStatus.UNPAID) == 2


class TestInvoiceLines:

    def test_line_amount(self):
        assert line_item_amount(3, "19.99") == Decimal("59.97")

    def test_fractional_quantity(self):
        # 2.5 hours at £40
        assert line_item_amount("2.5", 40) == Decimal("100.00")

    def test_negative_values_rejected(self):
        with pytest.raises(InvalidAmountError):
            line_item_amount(-1, 10)
        with pytest.raises(InvalidAmountError):
            line_item_amount(1, "-10")

    def test_invoice_total(self):
        lines = [
            InvoiceLine("Labour", Decimal("2.5"), Decimal("40")),
            InvoiceLine("Copper pipe 15mm", Decimal("3"), Decimal("19.99")),
        ]

        assert lines[0].amount == Decimal("100.00")
        assert invoice_total(lines) == Decimal("159.97")

    def test_empty_invoice_total(self):
        assert invoice_total([]) == Decimal("0.00")
