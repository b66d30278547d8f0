"""
Employee workbook parser.

Reads an operator's employee spreadsheet into flat employee records:
- Header auto-mapping from common column names ("E-mail", "Surname", "Fornavn")
- Per-name columns ("departments.Kitchen", "employeeGroups.Waiter") folded
  into the comma-separated dimension fields
- A number under an employee-group column becomes that group's hourly rate

Values are not validated here; see services/validation_service.py.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd
import structlog

from exceptions import SpreadsheetParseError
from models.employee import PAYRATES_KEY, PHONE_FIELDS, SOURCE_ROW_KEY, EmployeeRecord
from utils.text_utils import normalize_name, split_list

logger = structlog.get_logger(__name__)


# Platform field -> header variations (matched after normalize_name)
HEADER_SYNONYMS: dict[str, list[str]] = {
    "firstName": [
        "first name", "first", "forename", "given name", "fname", "firstname",
        "prenom", "vorname", "fornavn", "etunimi",
    ],
    "lastName": [
        "last name", "last", "surname", "family name", "lname", "lastname",
        "nom", "nachname", "efternavn", "sukunimi",
    ],
    "userName": [
        "email", "username", "login", "user email", "e-mail", "mail",
        "email address", "login email", "work email",
    ],
    "cellPhoneCountryCode": [
        "mobile country code", "cell country code", "cell phone country code",
        "country code mobile", "country code cell", "country code",
        "iso country", "iso code", "country iso",
    ],
    "cellPhone": [
        "mobile", "cell phone", "cell", "mobile phone", "cellular",
        "mobile number", "cell number", "gsm", "cellphone",
    ],
    "phoneCountryCode": [
        "phone country code", "landline country code", "phone country",
    ],
    "phone": [
        "phone", "telephone", "landline", "home phone", "work phone", "phone number",
    ],
    "hiredFrom": [
        "hire date", "start date", "employment date", "date hired",
        "start of employment", "employment start", "join date",
        "hired from", "hiredate", "startdate", "hired date", "hiredfrom",
    ],
    "birthDate": [
        "birth date", "date of birth", "birthday", "born", "dob", "birthdate",
    ],
    "street1": [
        "address", "street", "street address", "address line 1",
        "street1", "street 1", "home address",
    ],
    "city": ["city", "town", "municipality"],
    "zip": ["zip", "zip code", "postal code", "postcode", "post code", "postal"],
    "gender": ["gender", "sex", "m/f"],
    "ssn": [
        "ssn", "social security", "social security number", "national id",
        "personal number", "cpr", "tax id",
    ],
    "jobTitle": ["job title", "title", "position", "role", "jobtitle"],
    "salaryIdentifier": [
        "salary identifier", "salary id", "salaryidentifier", "payroll id",
        "payroll number", "employee id", "staff id",
    ],
    "departments": ["departments", "department", "dept", "afdeling"],
    "employeeGroups": [
        "employee groups", "employee group", "employeegroups", "groups", "group",
    ],
    "employeeTypeId": [
        "employee type", "employment type", "employeetypeid", "employeetype",
        "contract type", "type",
    ],
    "wageValidFrom": [
        "wage valid from", "salary valid from", "rate valid from",
        "pay rate valid from", "effective date", "wagevalidfrom",
    ],
}

PER_NAME_COLUMN = re.compile(r"^(departments|employeeGroups)\.(.+)$", re.IGNORECASE)

FALSE_MARKERS = frozenset({"", "0", "no", "n", "false", "nej", "nei", "-"})


def _build_synonym_index() -> dict[str, str]:
    index = {}
    for target, variations in HEADER_SYNONYMS.items():
        for variation in [target, *variations]:
            index.setdefault(normalize_name(variation), target)
    return index


_SYNONYM_INDEX = _build_synonym_index()


@dataclass
class SheetIssue:
    """Problem found while reading the sheet."""
    row: int
    column: str
    error: str


@dataclass
class EmployeeSheetResult:
    """Result of parsing an employee workbook."""
    records: list[EmployeeRecord] = field(default_factory=list)
    column_mapping: dict[str, str] = field(default_factory=dict)
    unmapped_columns: list[str] = field(default_factory=list)
    errors: list[SheetIssue] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "records": self.records,
            "column_mapping": self.column_mapping,
            "unmapped_columns": self.unmapped_columns,
            "errors": [
                {"row": e.row, "column": e.column, "error": e.error}
                for e in self.errors
            ],
        }


def map_header(header: Any) -> Optional[str]:
    """
    Map a spreadsheet header to a platform field.

    Args:
        header: Column header as read ("E-mail", "Fornavn", "departments.Bar")

    Returns:
        Field name, "departments.<Name>"/"employeeGroups.<Name>" for
        per-name columns, or None if unknown
    """
    text = str(header).strip()
    per_name = PER_NAME_COLUMN.match(text)
    if per_name:
        prefix = "departments" if per_name.group(1).lower() == "departments" else "employeeGroups"
        return f"{prefix}.{per_name.group(2).strip()}"
    return _SYNONYM_INDEX.get(normalize_name(text))


def parse_employee_workbook(
    file: Union[str, Path, BytesIO],
    sheet: Optional[Union[str, int]] = None,
) -> EmployeeSheetResult:
    """
    Parse an employee workbook.

    Args:
        file: File path (str/Path) or file-like object (BytesIO)
        sheet: Sheet name or index; first sheet when None

    Returns:
        EmployeeSheetResult with records in sheet order

    Raises:
        SpreadsheetParseError: If the file or sheet cannot be read
    """
    logger.info("parsing_employee_workbook", file_type=type(file).__name__, sheet=sheet)

    try:
        excel = pd.ExcelFile(file, engine="openpyxl")
    except Exception as e:
        logger.error("workbook_read_failed", error=str(e))
        raise SpreadsheetParseError(
            message="Failed to read Excel file",
            details={"original_error": str(e)}
        )

    sheet_name = excel.sheet_names[0] if sheet is None else sheet
    try:
        df = excel.parse(sheet_name, dtype=object)
    except Exception as e:
        logger.error("sheet_read_failed", sheet=sheet_name, error=str(e))
        raise SpreadsheetParseError(
            message=f"Failed to read sheet: {sheet_name}",
            details={"original_error": str(e), "sheets": excel.sheet_names}
        )

    result = EmployeeSheetResult()
    _map_columns(df, result)

    for idx, row in df.iterrows():
        row_num = idx + 2  # Excel row (1-indexed + header)
        record = _build_record(row, row_num, result)
        if record is not None:
            result.records.append(record)

    logger.info(
        "employee_workbook_parsed",
        records=len(result.records),
        mapped_columns=len(result.column_mapping),
        unmapped_columns=len(result.unmapped_columns),
        errors=len(result.errors),
    )
    return result


def _map_columns(df: pd.DataFrame, result: EmployeeSheetResult) -> None:
    """Fill column_mapping / unmapped_columns; first column wins on clashes."""
    used_targets: set[str] = set()
    for column in df.columns:
        header = str(column).strip()
        if not header or header.startswith("Unnamed:"):
            continue
        target = map_header(header)
        if target is None:
            result.unmapped_columns.append(header)
            continue
        if target in used_targets:
            result.errors.append(SheetIssue(
                row=1,
                column=header,
                error=f'Column maps to "{target}" which is already mapped; ignored',
            ))
            continue
        used_targets.add(target)
        result.column_mapping[header] = target


def _clean_cell(value: Any) -> Any:
    """Blank/NaN to None, timestamps to ISO dates, integral floats to int."""
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        text = value.strip()
        return text or None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _as_rate(value: Any) -> Optional[float]:
    """Numeric cell value, or None for markers like "x"."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "."))
    except ValueError:
        return None


def _build_record(row: pd.Series, row_num: int, result: EmployeeSheetResult) -> Optional[EmployeeRecord]:
    record: EmployeeRecord = {}
    department_names: list[str] = []
    group_names: list[str] = []
    payrates: list[dict] = []

    for header, target in result.column_mapping.items():
        value = _clean_cell(row.get(header))
        if value is None:
            continue

        if target.startswith("departments."):
            if str(value).strip().lower() not in FALSE_MARKERS:
                department_names.append(target.split(".", 1)[1])
            continue

        if target.startswith("employeeGroups."):
            group_name = target.split(".", 1)[1]
            rate = _as_rate(value)
            if rate is not None:
                if rate == 0:
                    continue
                payrates.append({"groupName": group_name, "hourlyRate": rate})
                group_names.append(group_name)
            elif str(value).strip().lower() not in FALSE_MARKERS:
                group_names.append(group_name)
            continue

        if target in PHONE_FIELDS:
            value = str(value)
        record[target] = value

    if not record and not department_names and not group_names:
        return None  # Fully blank row

    if department_names:
        record["departments"] = _merge_names(record.get("departments"), department_names)
    if group_names:
        record["employeeGroups"] = _merge_names(record.get("employeeGroups"), group_names)
    if payrates:
        record[PAYRATES_KEY] = payrates

    record[SOURCE_ROW_KEY] = row_num
    return record


def _merge_names(existing: Any, names: list[str]) -> str:
    """Append names to a comma list, skipping ones already present."""
    tokens = split_list(existing)
    seen = {normalize_name(t) for t in tokens}
    for name in names:
        key = normalize_name(name)
        if key not in seen:
            seen.add(key)
            tokens.append(name)
    return ", ".join(tokens)
