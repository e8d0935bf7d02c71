"""
SiteBooks - Tax Year Summary

Rolls jobs, expense receipts and mileage up into one figure set per UK tax
year for the reports screen and the accountant CSV export.

Record inputs are duck-typed so ORM rows can be passed straight in:
- jobs:     job_date, amount_invoiced
- receipts: date, amount, vat_amount (None -> back-calculated at the standard rate)
- mileage:  date, amount
"""

import csv
import io
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sitebooks.services.money import STANDARD_VAT_RATE, Number, non_negative, round_currency, vat_from_gross
from sitebooks.services.tax_year import FiscalYear, is_date_within

CSV_HEADER = ["Tax Year", "Income", "Costs", "Mileage", "Profit", "VAT", "Jobs"]


@dataclass(frozen=True)
class TaxYearSummary:
    tax_year: str
    total_income: Decimal
    total_costs: Decimal
    mileage_deduction: Decimal
    total_vat: Decimal
    job_count: int

    @property
    def total_profit(self) -> Decimal:
        return self.total_income - self.total_costs - self.mileage_deduction

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tax_year": self.tax_year,
            "total_income": float(self.total_income),
            "total_costs": float(self.total_costs),
            "mileage_deduction": float(self.mileage_deduction),
            "total_profit": float(self.total_profit),
            "total_vat": float(self.total_vat),
            "job_count": self.job_count,
        }

    def to_csv_row(self) -> List[str]:
        return [
            self.tax_year,
            str(self.total_income),
            str(self.total_costs),
            str(self.mileage_deduction),
            str(self.total_profit),
            str(self.total_vat),
            str(self.job_count),
        ]


def summarise_tax_year(
    fiscal_year: FiscalYear,
    jobs: Iterable = (),
    receipts: Iterable = (),
    mileage: Iterable = (),
    vat_rate_percent: Number = STANDARD_VAT_RATE,
) -> TaxYearSummary:
    """
    Totals for one tax year. Records dated outside the year are ignored.
    """
    income = Decimal("0")
    job_count = 0
    for job in jobs:
        if is_date_within(job.job_date, fiscal_year):
            income += non_negative(job.amount_invoiced or 0, "amount_invoiced")
            job_count += 1

    costs = Decimal("0")
    vat = Decimal("0")
    for receipt in receipts:
        if not is_date_within(receipt.date, fiscal_year):
            continue
        amount = non_negative(receipt.amount, "receipt amount")
        costs += amount
        if receipt.vat_amount is None:
            vat += vat_from_gross(amount, vat_rate_percent)
        else:
            vat += non_negative(receipt.vat_amount, "vat_amount")

    mileage_total = Decimal("0")
    for entry in mileage:
        if is_date_within(entry.date, fiscal_year):
            mileage_total += non_negative(entry.amount, "mileage amount")

    return TaxYearSummary(
        tax_year=fiscal_year.label,
        total_income=round_currency(income),
        total_costs=round_currency(costs),
        mileage_deduction=round_currency(mileage_total),
        total_vat=round_currency(vat),
        job_count=job_count,
    )


def export_summaries_csv(summaries: Iterable[TaxYearSummary]) -> str:
    """CSV text with a header row and one row per tax year."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for summary in summaries:
        writer.writerow(summary.to_csv_row())
    return buffer.getvalue()
