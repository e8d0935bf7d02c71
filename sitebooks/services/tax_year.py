"""
SiteBooks - UK Tax Year Resolver

UK tax years run from 6 April to 5 April of the following calendar year.
All boundary logic compares month/day only, so leap days and the calendar
year end play no part in deciding which tax year a date belongs to.
"""

import re
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime
from typing import List, Optional

from sitebooks.services.errors import DateOutOfRangeError, ParseError

TAX_YEAR_START_MONTH = 4
TAX_YEAR_START_DAY = 6
TAX_YEAR_END_DAY = 5

# The tax year must end within the representable calendar
MIN_START_YEAR = MINYEAR
MAX_START_YEAR = MAXYEAR - 1

_LABEL_PATTERN = re.compile(r"^(\d{4})/(\d{4})$")


@dataclass(frozen=True)
class FiscalYear:
    """A UK tax year window with inclusive start and end dates."""
    label: str
    start_date: date
    end_date: date
    start_year: int
    end_year: int

    def __contains__(self, value) -> bool:
        return is_date_within(value, self)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_year": self.start_year,
            "end_year": self.end_year,
        }


def _as_date(value) -> date:
    # datetime is a subclass of date; compare on the calendar day only
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected a date, got {type(value).__name__}")


def fiscal_year_by_start_year(year: int) -> FiscalYear:
    """
    Build the tax year that starts on 6 April of `year`.

    Raises:
        DateOutOfRangeError: the tax year would start before year 1 or end after 9999
    """
    if not MIN_START_YEAR <= year <= MAX_START_YEAR:
        raise DateOutOfRangeError(
            f"No tax year starts in {year}: start year must be between "
            f"{MIN_START_YEAR} and {MAX_START_YEAR}"
        )
    end_year = year + 1
    return FiscalYear(
        label=f"{year}/{end_year}",
        start_date=date(year, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY),
        end_date=date(end_year, TAX_YEAR_START_MONTH, TAX_YEAR_END_DAY),
        start_year=year,
        end_year=end_year,
    )


def resolve_fiscal_year(reference_date) -> FiscalYear:
    """
    Determine which tax year a date falls into.

    On or after 6 April the date belongs to the tax year starting that
    calendar year; before it, to the one that started the previous year.

    Raises:
        DateOutOfRangeError: the date lies before 6 April of year 1 or on or
            after 6 April 9999
    """
    day = _as_date(reference_date)
    if (day.month, day.day) < (TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY):
        return fiscal_year_by_start_year(day.year - 1)
    return fiscal_year_by_start_year(day.year)


def parse_fiscal_year_label(label: str) -> FiscalYear:
    """
    Parse a label like "2024/2025".

    Raises:
        ParseError: label is not YYYY/YYYY or the years are not consecutive
    """
    if not isinstance(label, str):
        raise ParseError(f"Tax year label must be a string, got {type(label).__name__}")

    match = _LABEL_PATTERN.match(label.strip())
    if not match:
        raise ParseError(f"Invalid tax year label '{label}': expected YYYY/YYYY")

    start_year, end_year = int(match.group(1)), int(match.group(2))
    if end_year != start_year + 1:
        raise ParseError(
            f"Invalid tax year label '{label}': end year must be {start_year + 1}"
        )
    if start_year < 1:
        raise ParseError(f"Invalid tax year label '{label}': year out of range")

    return fiscal_year_by_start_year(start_year)


def is_date_within(value, fiscal_year: FiscalYear) -> bool:
    """Inclusive check that a date lies inside the tax year."""
    day = _as_date(value)
    return fiscal_year.start_date <= day <= fiscal_year.end_date


def current_fiscal_year(today: Optional[date] = None) -> FiscalYear:
    """Tax year containing `today` (defaults to the system date)."""
    return resolve_fiscal_year(today or date.today())


def fiscal_years_list(
    years_back: int = 2,
    years_forward: int = 1,
    today: Optional[date] = None,
) -> List[FiscalYear]:
    """Consecutive tax years around the current one, oldest first (for pickers)."""
    current = current_fiscal_year(today)
    return [
        fiscal_year_by_start_year(current.start_year + offset)
        for offset in range(-years_back, years_forward + 1)
    ]
