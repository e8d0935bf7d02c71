"""
SiteBooks - Report Service

Reads a user's jobs, receipts and mileage for a tax year and hands them to
the pure tax year summary.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitebooks.config import get_settings
from sitebooks.database.models import JobDB, ReceiptDB, MileageEntryDB
from sitebooks.services.tax_summary import TaxYearSummary, export_summaries_csv, summarise_tax_year
from sitebooks.services.tax_year import FiscalYear

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _rows_in_year(self, model, date_column, user_id: str, fiscal_year: FiscalYear) -> list:
        result = await self.db.execute(
            select(model).where(
                model.user_id == user_id,
                date_column >= fiscal_year.start_date,
                date_column <= fiscal_year.end_date,
            )
        )
        return list(result.scalars().all())

    async def tax_year_summary(self, user_id: str, fiscal_year: FiscalYear) -> TaxYearSummary:
        jobs = await self._rows_in_year(JobDB, JobDB.job_date, user_id, fiscal_year)
        receipts = await self._rows_in_year(ReceiptDB, ReceiptDB.date, user_id, fiscal_year)
        mileage = await self._rows_in_year(MileageEntryDB, MileageEntryDB.date, user_id, fiscal_year)

        summary = summarise_tax_year(
            fiscal_year,
            jobs=jobs,
            receipts=receipts,
            mileage=mileage,
            vat_rate_percent=str(get_settings().DEFAULT_VAT_RATE),
        )

        logger.info(
            f"Tax year summary {fiscal_year.label} for user {user_id}: "
            f"{summary.job_count} jobs, {len(receipts)} receipts, {len(mileage)} trips"
        )
        return summary

    async def export_csv(self, user_id: str, fiscal_years: List[FiscalYear]) -> str:
        summaries = [await self.tax_year_summary(user_id, fy) for fy in fiscal_years]
        return export_summaries_csv(summaries)
