"""
Unit tests for the date parser.
"""

from datetime import date, datetime

import pytest

from parsers.date_parser import (
    DateOrder,
    compact_interpretations,
    detect_date_order,
    find_ambiguous_dates,
    parse_date,
)


class TestParseDate:

    @pytest.mark.parametrize("value,expected", [
        ("2024-03-01", "2024-03-01"),
        ("2024-3-1", "2024-03-01"),
        ("2024/03/01", "2024-03-01"),
        ("2024.03.01", "2024-03-01"),
        ("2024-03-01 00:00:00", "2024-03-01"),
        ("24 Jun 1974", "1974-06-24"),
        ("Jun 24, 1974", "1974-06-24"),
        ("24 June 1974", "1974-06-24"),
        (date(2024, 3, 1), "2024-03-01"),
        (datetime(2024, 3, 1, 14, 30), "2024-03-01"),
    ])
    def test_unambiguous_formats(self, value, expected):
        assert parse_date(value) == expected

    def test_day_over_twelve_decides_order(self):
        assert parse_date("13/02/2024", DateOrder.MONTH_FIRST) == "2024-02-13"
        assert parse_date("02/13/2024", DateOrder.DAY_FIRST) == "2024-02-13"

    def test_ambiguous_uses_preference(self):
        assert parse_date("01/02/2024") == "2024-02-01"
        assert parse_date("01/02/2024", DateOrder.MONTH_FIRST) == "2024-01-02"

    def test_two_digit_year(self):
        assert parse_date("15.06.24") == "2024-06-15"
        assert parse_date("15.06.85") == "1985-06-15"

    def test_compact_year_first(self):
        assert parse_date("20240301") == "2024-03-01"

    def test_compact_day_first(self):
        assert parse_date("01022023") == "2023-02-01"

    def test_compact_from_number_cell(self):
        assert parse_date(20240301) == "2024-03-01"
        assert parse_date(20240301.0) == "2024-03-01"

    @pytest.mark.parametrize("value", [
        "2024-02-30",
        "31/04/2024",
        "99999999",
        "not a date",
        "",
        None,
        True,
        float("nan"),
        "1850-01-01",
    ])
    def test_invalid(self, value):
        assert parse_date(value) is None

    def test_leap_day(self):
        assert parse_date("29/02/2024") == "2024-02-29"
        assert parse_date("29/02/2023") is None


class TestCompactInterpretations:

    def test_multiple_readings(self):
        assert compact_interpretations("01022023") == {
            "DDMMYYYY": "2023-02-01",
            "MMDDYYYY": "2023-01-02",
        }

    def test_single_reading(self):
        assert compact_interpretations("25122023") == {"DDMMYYYY": "2023-12-25"}


class TestDetection:

    def test_detect_day_first(self):
        assert detect_date_order([None, "01/02/2024", "25/12/2023"]) == DateOrder.DAY_FIRST

    def test_detect_month_first(self):
        assert detect_date_order(["12/25/2023"]) == DateOrder.MONTH_FIRST

    def test_undecidable(self):
        assert detect_date_order(["01/02/2024", "2024-12-25"]) is None

    def test_ambiguous_samples(self):
        values = ["01/02/2024", "01/02/2024", "13/01/2024", "05/05/2024", "03/04/2024", "01022023"]
        assert find_ambiguous_dates(values) == ["01/02/2024", "03/04/2024", "01022023"]

    def test_ambiguous_samples_capped(self):
        values = [f"0{m}/0{m + 1}/2024" for m in range(1, 9)]
        assert len(find_ambiguous_dates(values)) == 5
