"""
Unit Tests for the UK Tax Year Resolver

Run with: pytest tests/test_tax_year.py -v
"""

import pytest
from datetime import date, datetime

from sitebooks.services.errors import DateOutOfRangeError, ParseError
from sitebooks.services.tax_year import (
    current_fiscal_year,
    fiscal_year_by_start_year,
    fiscal_years_list,
    is_date_within,
    parse_fiscal_year_label,
    resolve_fiscal_year,
)


class TestResolveFiscalYear:
    """Which tax year a date falls into."""

    def test_sixth_of_april_starts_new_year(self):
        fy = resolve_fiscal_year(date(2025, 4, 6))

        assert fy.label == "2025/2026"
        assert fy.start_date == date(2025, 4, 6)
        assert fy.end_date == date(2026, 4, 5)

    def test_fifth_of_april_ends_previous_year(self):
        fy = resolve_fiscal_year(date(2025, 4, 5))

        assert fy.label == "2024/2025"
        assert fy.start_year == 2024
        assert fy.end_year == 2025

    def test_calendar_year_end_does_not_split_tax_year(self):
        assert resolve_fiscal_year(date(2024, 12, 31)).label == "2024/2025"
        assert resolve_fiscal_year(date(2025, 1, 1)).label == "2024/2025"

    def test_leap_day(self):
        assert resolve_fiscal_year(date(2024, 2, 29)).label == "2023/2024"

    def test_datetime_uses_calendar_day(self):
        fy = resolve_fiscal_year(datetime(2025, 4, 5, 23, 59, 59))

        assert fy.label == "2024/2025"

    def test_rejects_non_dates(self):
        with pytest.raises(TypeError):
            resolve_fiscal_year("2025-04-06")

    def test_resolved_date_is_within_its_year(self):
        for day in [date(2023, 4, 6), date(2024, 2, 29), date(2024, 4, 5), date(2024, 9, 30)]:
            fy = resolve_fiscal_year(day)
            assert fy.start_date <= day <= fy.end_date

    def test_label_round_trips(self):
        fy = resolve_fiscal_year(date(2030, 7, 1))

        assert parse_fiscal_year_label(fy.label) == fy


class TestCalendarEdges:
    """Dates whose tax year would run off either end of the calendar."""

    def test_last_complete_tax_year(self):
        fy = resolve_fiscal_year(date(9999, 4, 5))

        assert fy.label == "9998/9999"
        assert fy.end_date == date(9999, 4, 5)

    def test_first_complete_tax_year(self):
        fy = resolve_fiscal_year(date(1, 4, 6))

        assert fy.start_year == 1
        assert fy.start_date == date(1, 4, 6)

    @pytest.mark.parametrize("day", [date(9999, 4, 6), date(9999, 12, 31), date(1, 1, 1), date(1, 4, 5)])
    def test_dates_outside_any_tax_year_rejected(self, day):
        with pytest.raises(DateOutOfRangeError):
            resolve_fiscal_year(day)

    @pytest.mark.parametrize("year", [0, -1, 9999])
    def test_start_year_out_of_range(self, year):
        with pytest.raises(DateOutOfRangeError):
            fiscal_year_by_start_year(year)

    def test_out_of_range_is_value_error(self):
        with pytest.raises(ValueError):
            resolve_fiscal_year(date(9999, 12, 31))


class TestParseFiscalYearLabel:

    def test_valid_label(self):
        fy = parse_fiscal_year_label("2024/2025")

        assert fy == fiscal_year_by_start_year(2024)

    def test_surrounding_whitespace_ignored(self):
        assert parse_fiscal_year_label(" 2024/2025 ").label == "2024/2025"

    @pytest.mark.parametrize("label", ["2024/2026", "2025/2024", "2024/2024"])
    def test_non_consecutive_years_rejected(self, label):
        with pytest.raises(ParseError):
            parse_fiscal_year_label(label)

    @pytest.mark.parametrize("label", ["", "2024-2025", "24/25", "2024/25", "abcd/efgh", "2024/2025/2026"])
    def test_malformed_labels_rejected(self, label):
        with pytest.raises(ParseError):
            parse_fiscal_year_label(label)

    def test_non_string_rejected(self):
        with pytest.raises(ParseError):
            parse_fiscal_year_label(None)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_fiscal_year_label("2024")


class TestIsDateWithin:

    @pytest.fixture
    def fy(self):
        return fiscal_year_by_start_year(2024)

    def test_boundaries_inclusive(self, fy):
        assert is_date_within(date(2024, 4, 6), fy)
        assert is_date_within(date(2025, 4, 5), fy)

    def test_outside(self, fy):
        assert not is_date_within(date(2024, 4, 5), fy)
        assert not is_date_within(date(2025, 4, 6), fy)

    def test_in_operator(self, fy):
        assert date(2024, 12, 25) in fy
        assert date(2026, 1, 1) not in fy


class TestFiscalYearsList:

    def test_default_window(self):
        years = fiscal_years_list(today=date(2025, 5, 1))

        assert [fy.label for fy in years] == ["2023/2024", "2024/2025", "2025/2026", "2026/2027"]

    def test_custom_window(self):
        years = fiscal_years_list(years_back=0, years_forward=0, today=date(2025, 1, 15))

        assert [fy.label for fy in years] == ["2024/2025"]

    def test_current_fiscal_year(self):
        assert current_fiscal_year(date(2025, 4, 6)).label == "2025/2026"

    def test_to_dict(self):
        data = fiscal_year_by_start_year(2024).to_dict()

        assert data == {
            "label": "2024/2025",
            "start_date": "2024-04-06",
            "end_date": "2025-04-05",
            "start_year": 2024,
            "end_year": 2025,
        }
