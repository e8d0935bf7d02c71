"""
Unit Tests for the Mileage and Report Services

Run with: pytest tests/test_mileage_service.py -v
"""

import pytest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

from sitebooks.database.models import MileageEntryDB
from sitebooks.services.errors import InvalidAmountError
from sitebooks.services.mileage_service import MileageService
from sitebooks.services.report_service import ReportService
from sitebooks.services.tax_year import fiscal_year_by_start_year


def _date_bounds(statement):
    params = statement.compile().params
    return sorted(value for value in params.values() if isinstance(value, date))


class TestMileageService:

    @pytest.fixture
    def service(self, mock_db):
        return MileageService(mock_db)

    @pytest.mark.asyncio
    async def test_first_trip_of_year(self, service, mock_db, make_result, user_id):
        mock_db.execute.return_value = make_result(one=0)

        entry = await service.log_trip(user_id, date(2025, 4, 10), Decimal("30"), purpose="Supplier run")

        assert entry["amount"] == 13.5
        assert entry["rate_per_mile"] == 0.45
        assert entry["tax_year"] == "2025/2026"
        assert entry["breakdown"]["prior_year_miles"] == 0.0
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_trip_crossing_threshold(self, service, mock_db, make_result, user_id):
        mock_db.execute.return_value = make_result(one=Decimal("9900.0"))

        entry = await service.log_trip(user_id, date(2025, 6, 1), 200, job_id="job-1")

        row = mock_db.add.call_args[0][0]
        assert isinstance(row, MileageEntryDB)
        assert row.amount == Decimal("70.00")
        assert row.rate_per_mile == Decimal("0.3500")
        assert row.job_id == "job-1"
        assert entry["breakdown"]["miles_at_lower_rate"] == 100.0

    @pytest.mark.asyncio
    async def test_prior_miles_default_to_zero(self, service, mock_db, make_result, user_id):
        mock_db.execute.return_value = make_result(one=0)

        miles = await service.prior_year_miles(user_id, fiscal_year_by_start_year(2025))

        assert miles == Decimal("0")

    @pytest.mark.asyncio
    async def test_prior_miles_cover_whole_tax_year(self, service, mock_db, make_result, user_id):
        mock_db.execute.return_value = make_result(one=0)

        await service.log_trip(user_id, date(2025, 5, 1), 10)

        statement = mock_db.execute.call_args_list[0][0][0]
        assert _date_bounds(statement) == [date(2025, 4, 6), date(2026, 4, 5)]

    @pytest.mark.asyncio
    async def test_back_dated_trip_counts_later_entries(self, service, mock_db, make_result, user_id):
        logged = []
        mock_db.add.side_effect = logged.append

        async def sum_logged_miles(statement):
            start, end = _date_bounds(statement)
            return make_result(one=sum((row.miles for row in logged if start <= row.date <= end), Decimal("0")))

        mock_db.execute.side_effect = sum_logged_miles

        await service.log_trip(user_id, date(2025, 12, 1), 10000)
        back_dated = await service.log_trip(user_id, date(2025, 5, 1), 500)

        assert back_dated["amount"] == 125.0
        # 10,000 × £0.45 + 500 × £0.25
        assert sum(row.amount for row in logged) == Decimal("4625.00")

    @pytest.mark.asyncio
    async def test_postgres_trips_locked_per_user_and_year(self, service, mock_db, make_result, user_id):
        mock_db.bind = MagicMock()
        mock_db.bind.dialect.name = "postgresql"
        mock_db.execute.return_value = make_result(one=0)

        await service.log_trip(user_id, date(2025, 5, 1), 10)

        lock, total = [c[0][0] for c in mock_db.execute.call_args_list]
        assert "pg_advisory_xact_lock" in str(lock)
        assert f"mileage:{user_id}:2025/2026" in lock.compile().params.values()
        assert _date_bounds(total) == [date(2025, 4, 6), date(2026, 4, 5)]

    @pytest.mark.asyncio
    async def test_no_lock_without_postgres(self, service, mock_db, make_result, user_id):
        mock_db.bind = None
        mock_db.execute.return_value = make_result(one=0)

        await service.log_trip(user_id, date(2025, 5, 1), 10)

        assert mock_db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_commit_rolls_back(self, service, mock_db, make_result, user_id):
        mock_db.execute.return_value = make_result(one=0)
        mock_db.commit.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError):
            await service.log_trip(user_id, date(2025, 5, 1), 10)

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_negative_miles_rejected(self, service, mock_db, user_id):
        with pytest.raises(InvalidAmountError):
            await service.log_trip(user_id, date(2025, 6, 1), -5)

        mock_db.execute.assert_not_awaited()
        mock_db.add.assert_not_called()


class TestReportService:

    @pytest.mark.asyncio
    async def test_tax_year_summary(self, mock_db, make_result, user_id):
        service = ReportService(mock_db)
        mock_db.execute.side_effect = [
            make_result(rows=[SimpleNamespace(job_date=date(2024, 6, 1), amount_invoiced=Decimal("1200.00"))]),
            make_result(rows=[SimpleNamespace(date=date(2024, 6, 2), amount=Decimal("240.00"), vat_amount=None)]),
            make_result(rows=[SimpleNamespace(date=date(2024, 6, 3), amount=Decimal("45.00"))]),
        ]

        summary = await service.tax_year_summary(user_id, fiscal_year_by_start_year(2024))

        assert summary.total_income == Decimal("1200.00")
        assert summary.total_costs == Decimal("240.00")
        assert summary.total_vat == Decimal("40.00")
        assert summary.total_profit == Decimal("915.00")
        assert summary.job_count == 1

    @pytest.mark.asyncio
    async def test_export_csv(self, mock_db, make_result, user_id):
        service = ReportService(mock_db)
        mock_db.execute.side_effect = [make_result(rows=[]) for _ in range(6)]

        csv_text = await service.export_csv(
            user_id, [fiscal_year_by_start_year(2023), fiscal_year_by_start_year(2024)]
        )

        assert csv_text.splitlines() == [
            "Tax Year,Income,Costs,Mileage,Profit,VAT,Jobs",
            "2023/2024,0.00,0.00,0.00,0.00,0.00,0",
            "2024/2025,0.00,0.00,0.00,0.00,0.00,0",
        ]
