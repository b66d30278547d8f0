"""
Date parser for employee spreadsheets.

Turns the many ways people type dates into ISO YYYY-MM-DD strings.
Day/month order is auto-detected where a part exceeds 12; truly
ambiguous values fall back to an explicit preference (day-first by
default, the European convention).
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

import structlog

logger = structlog.get_logger(__name__)

MIN_YEAR = 1900
MAX_YEAR = 2100
MAX_AMBIGUOUS_SAMPLES = 5

# 2-digit years up to this value are 20xx, the rest 19xx
TWO_DIGIT_YEAR_PIVOT = 30

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_YEAR_FIRST = re.compile(r"^(\d{4})([-/.])(\d{1,2})\2(\d{1,2})$")
_SEPARATED = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})$")
_COMPACT = re.compile(r"^\d{8}$")
_DAY_MONTH_NAME = re.compile(r"^(\d{1,2})\.?\s+([A-Za-z]{3,})\.?,?\s+(\d{4})$")
_MONTH_NAME_DAY = re.compile(r"^([A-Za-z]{3,})\.?\s+(\d{1,2}),?\s+(\d{4})$")


class DateOrder(str, Enum):
    """Preferred interpretation of ambiguous day/month input."""
    DAY_FIRST = "DD/MM/YYYY"
    MONTH_FIRST = "MM/DD/YYYY"


# Compact 8-digit layouts in default priority order
COMPACT_FORMATS = ("YYYYMMDD", "DDMMYYYY", "MMDDYYYY", "YYYYDDMM")


def _to_iso(year: int, month: int, day: int) -> Optional[str]:
    """ISO string if the parts form a real date within bounds."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _expand_year(year: str) -> int:
    value = int(year)
    if len(year) == 2:
        return 2000 + value if value <= TWO_DIGIT_YEAR_PIVOT else 1900 + value
    return value


def _month_number(name: str) -> Optional[int]:
    return MONTHS.get(name[:3].lower())


def compact_interpretations(text: str) -> dict[str, str]:
    """
    All valid readings of an 8-digit date.

    Args:
        text: Exactly eight digits, e.g. "01022023"

    Returns:
        Mapping of layout name to ISO date, in priority order
    """
    readings = {
        "YYYYMMDD": (text[0:4], text[4:6], text[6:8]),
        "DDMMYYYY": (text[4:8], text[2:4], text[0:2]),
        "MMDDYYYY": (text[4:8], text[0:2], text[2:4]),
        "YYYYDDMM": (text[0:4], text[6:8], text[4:6]),
    }
    valid = {}
    for layout in COMPACT_FORMATS:
        year, month, day = readings[layout]
        iso = _to_iso(int(year), int(month), int(day))
        if iso:
            valid[layout] = iso
    return valid


def _parse_compact(text: str, prefer: DateOrder) -> Optional[str]:
    valid = compact_interpretations(text)
    if not valid:
        return None
    if len(valid) == 1:
        return next(iter(valid.values()))
    if prefer == DateOrder.DAY_FIRST and "DDMMYYYY" in valid:
        return valid["DDMMYYYY"]
    layout = next(iter(valid))
    logger.debug("compact_date_ambiguous", value=text, chosen=layout)
    return valid[layout]


def _parse_separated(first: str, second: str, year: str, prefer: DateOrder) -> Optional[str]:
    a, b = int(first), int(second)
    if a > 12:
        day, month = a, b
    elif b > 12:
        month, day = a, b
    elif prefer == DateOrder.MONTH_FIRST:
        month, day = a, b
    else:
        day, month = a, b
    return _to_iso(_expand_year(year), month, day)


def parse_date(value: Any, prefer: DateOrder = DateOrder.DAY_FIRST) -> Optional[str]:
    """
    Parse a date cell to ISO format.

    Supported input:
    - date/datetime cells, pandas Timestamps
    - 2024-03-01, 2024-3-1, 2024/03/01, 2024.03.01
    - 01/03/2024, 1-3-24, 01.03.2024 (day/month order auto-detected)
    - 20240301, 01032024 (8-digit compact)
    - 24 Jun 1974, Jun 24, 1974

    Args:
        value: Raw cell value
        prefer: Order used when day and month are both <= 12

    Returns:
        "YYYY-MM-DD", or None when the value is not a valid date
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _to_iso(value.year, value.month, value.day)
    if isinstance(value, date):
        return _to_iso(value.year, value.month, value.day)
    if isinstance(value, float):
        if value != value or not value.is_integer():
            return None
        value = int(value)

    text = str(value).strip()
    if not text:
        return None

    # Excel/pandas render timestamps as "2024-03-01 00:00:00"
    if re.match(r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}", text):
        text = text[:10]

    match = _YEAR_FIRST.match(text)
    if match:
        year, _, month, day = match.groups()
        return _to_iso(int(year), int(month), int(day))

    if _COMPACT.match(text):
        return _parse_compact(text, prefer)

    match = _SEPARATED.match(text)
    if match:
        return _parse_separated(*match.groups(), prefer=prefer)

    match = _DAY_MONTH_NAME.match(text)
    if match:
        day, month_name, year = match.groups()
        month = _month_number(month_name)
        return _to_iso(int(year), month, int(day)) if month else None

    match = _MONTH_NAME_DAY.match(text)
    if match:
        month_name, day, year = match.groups()
        month = _month_number(month_name)
        return _to_iso(int(year), month, int(day)) if month else None

    return None


def detect_date_order(values: Iterable[Any]) -> Optional[DateOrder]:
    """
    Detect day/month order from the first unambiguous separated date.

    Returns:
        DateOrder, or None if no value settles the question
    """
    for value in values:
        if value is None:
            continue
        match = _SEPARATED.match(str(value).strip())
        if not match:
            continue
        first, second = int(match.group(1)), int(match.group(2))
        if first > 12:
            return DateOrder.DAY_FIRST
        if second > 12:
            return DateOrder.MONTH_FIRST
    return None


def find_ambiguous_dates(values: Iterable[Any]) -> list[str]:
    """
    Sample values whose meaning depends on the day/month preference.

    Args:
        values: Date cells from one column

    Returns:
        Up to five distinct ambiguous values, in input order
    """
    ambiguous: list[str] = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text in ambiguous:
            continue

        is_ambiguous = False
        if _COMPACT.match(text):
            readings = set(compact_interpretations(text).values())
            is_ambiguous = len(readings) > 1
        else:
            match = _SEPARATED.match(text)
            if match:
                first, second = int(match.group(1)), int(match.group(2))
                is_ambiguous = first <= 12 and second <= 12 and first != second

        if is_ambiguous:
            ambiguous.append(text)
            if len(ambiguous) >= MAX_AMBIGUOUS_SAMPLES:
                break
    return ambiguous
