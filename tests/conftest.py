"""Shared fixtures for service tests with a mocked AsyncSession."""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from sitebooks.database.models import JobDB


def _execute_result(scalar=None, rows=None, one=None):
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = rows or []
    result.scalar_one.return_value = one
    return result


@pytest.fixture
def make_result():
    """Factory for mocked AsyncSession.execute() results."""
    return _execute_result


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def user_id():
    return "user-1"


@pytest.fixture
def job(user_id):
    return JobDB(
        id="job-1",
        user_id=user_id,
        property_address="12 Acacia Avenue, Leeds",
        job_type="plumbing",
        customer_name="Mrs Smith",
        job_date=date(2025, 5, 1),
        tax_year="2025/2026",
        amount_invoiced=Decimal("500.00"),
        amount_paid=Decimal("0.00"),
        payment_status="unpaid",
        payment_terms=14,
        status="active",
    )
