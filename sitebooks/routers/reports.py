"""
SiteBooks - Reports API Router

Tax year totals for the reports screen and the accountant CSV export.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from sitebooks.database.connection import get_db
from sitebooks.middleware.auth import get_current_user_id
from sitebooks.services.report_service import ReportService
from sitebooks.services.tax_year import current_fiscal_year, parse_fiscal_year_label

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/tax-year")
async def get_tax_year_summary(
    tax_year: Optional[str] = Query(default=None, description="Tax year label, e.g. 2024/2025 (defaults to current)"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Income, costs, mileage, profit and VAT for one tax year.
    """
    fiscal_year = parse_fiscal_year_label(tax_year) if tax_year else current_fiscal_year()
    summary = await ReportService(db).tax_year_summary(user_id, fiscal_year)

    return {
        **summary.to_dict(),
        "start_date": fiscal_year.start_date.isoformat(),
        "end_date": fiscal_year.end_date.isoformat(),
    }


@router.get("/tax-year/export")
async def export_tax_years(
    tax_year: List[str] = Query(default=[], description="Tax year labels to include (defaults to current)"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """CSV export with one row per requested tax year."""
    fiscal_years = [parse_fiscal_year_label(label) for label in tax_year] or [current_fiscal_year()]
    csv_text = await ReportService(db).export_csv(user_id, fiscal_years)

    filename = f"sitebooks-{fiscal_years[0].label.replace('/', '-')}.csv"
    logger.info(f"CSV export for user {user_id}: {', '.join(fy.label for fy in fiscal_years)}")

    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
