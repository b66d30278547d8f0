"""
Spreadsheet and field parsers.
"""

from parsers.date_parser import (
    DateOrder,
    parse_date,
    detect_date_order,
    find_ambiguous_dates,
)
from parsers.phone_parser import (
    PhoneParseResult,
    parse_phone,
)
from parsers.country_codes import (
    normalize_country_code,
    suggest_country_code,
)
from parsers.employee_excel_parser import (
    parse_employee_workbook,
    EmployeeSheetResult,
)

__all__ = [
    "DateOrder",
    "parse_date",
    "detect_date_order",
    "find_ambiguous_dates",
    "PhoneParseResult",
    "parse_phone",
    "normalize_country_code",
    "suggest_country_code",
    "parse_employee_workbook",
    "EmployeeSheetResult",
]
