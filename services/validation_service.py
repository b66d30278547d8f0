"""
Validation engine for employee records.

Checks are collected, never raised: every problem in a dataset comes back
as a ValidationIssue so the operator can fix everything in one pass.

Layers:
- validate(): per-record format/required checks
- validate_batch(): per-record checks plus cross-record uniqueness
- validate_references(): department/group/type names via NameResolver
- validate_existing(): duplicates of employees already on the platform
- preflight(): all of the above, as used by the upload gate
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional

import structlog

from config.settings import Settings, get_settings
from models.catalog import Dimension, FieldDefinitions
from models.employee import (
    ALWAYS_REQUIRED,
    DATE_FIELDS,
    EMAIL_FIELDS,
    FALLBACK_REQUIRED,
    LOCAL_ONLY_FIELDS,
    PAYRATES_KEY,
    PHONE_FIELDS,
    STANDARD_FIELDS,
    EmployeeRecord,
    is_internal_key,
    is_skipped,
)
from models.upload import EmployeeGroupPayrate
from models.validation import ErrorKind, Severity, ValidationIssue
from parsers.country_codes import normalize_country_code, suggest_country_code
from parsers.date_parser import DateOrder, parse_date
from parsers.phone_parser import parse_phone
from services.lookup_tables import LookupTable, ResolutionContext
from services.name_resolver import NameResolver
from utils.text_utils import is_blank

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DIMENSION_FIELDS = {dim.field: dim for dim in Dimension}


@dataclass
class ConversionResult:
    """A record converted to a platform create-request."""
    converted: dict[str, Any]
    issues: list[ValidationIssue] = field(default_factory=list)
    payrates: list[EmployeeGroupPayrate] = field(default_factory=list)
    payrate_valid_from: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not any(issue.is_error for issue in self.issues)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == value  # NaN
    try:
        float(str(value))
        return True
    except ValueError:
        return False


def _annotation_group_id(annotation: Mapping[str, Any], table: LookupTable) -> Optional[int]:
    """Numeric groupId when it is a known group, otherwise the groupName lookup."""
    group_id = annotation.get("groupId")
    if _is_number(group_id) and float(group_id).is_integer():
        if table.has_id(int(float(group_id))):
            return int(float(group_id))
    return table.id_for(annotation.get("groupName"))


class ValidationEngine:
    """
    Validates employee records against the portal's field definitions
    and the resolution context's lookup tables.
    """

    def __init__(
        self,
        context: ResolutionContext,
        resolver: Optional[NameResolver] = None,
        settings: Optional[Settings] = None,
        date_order: DateOrder = DateOrder.DAY_FIRST,
    ):
        self.context = context
        self.settings = settings or get_settings()
        self.resolver = resolver or NameResolver(context, self.settings)
        self.date_order = date_order

    # ===================
    # FIELD DEFINITIONS
    # ===================

    @property
    def definitions(self) -> Optional[FieldDefinitions]:
        return self.context.field_definitions

    def required_fields(self) -> list[str]:
        """Portal-required fields plus login identity and departments."""
        if self.definitions is None:
            return list(FALLBACK_REQUIRED)
        required = list(self.definitions.required)
        for name in ALWAYS_REQUIRED:
            if name not in required:
                required.append(name)
        return required

    def unique_fields(self) -> list[str]:
        return list(self.definitions.unique) if self.definitions else []

    def read_only_fields(self) -> list[str]:
        return list(self.definitions.read_only) if self.definitions else []

    def custom_fields(self) -> dict[str, str]:
        """Portal-specific fields mapped to their human labels."""
        if self.definitions is None:
            return {}
        return {
            name: prop.description or name
            for name, prop in self.definitions.properties.items()
            if name not in STANDARD_FIELDS
        }

    def label(self, field_name: str) -> str:
        """Human label for messages (custom fields use the portal's description)."""
        return self.custom_fields().get(field_name, field_name)

    # ===================
    # PER-RECORD CHECKS
    # ===================

    def validate(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        """
        Run local checks on one record.

        Args:
            record: Employee record
            row_index: 0-based position in the dataset

        Returns:
            Issues in field order; empty if the record is clean
        """
        issues: list[ValidationIssue] = []
        issues.extend(self._check_required(record, row_index))
        issues.extend(self._check_emails(record, row_index))
        issues.extend(self._check_dates(record, row_index))
        issues.extend(self._check_phones(record, row_index))
        issues.extend(self._check_country_codes(record, row_index))
        issues.extend(self._check_payrates(record, row_index))
        issues.extend(self._check_read_only(record, row_index))
        return issues

    def _issue(
        self,
        field_name: str,
        value: Any,
        message: str,
        row_index: int,
        kind: ErrorKind = ErrorKind.FORMAT,
        severity: Severity = Severity.ERROR,
    ) -> ValidationIssue:
        return ValidationIssue(
            field=field_name,
            value=value,
            message=message,
            row_index=row_index,
            severity=severity,
            kind=kind,
        )

    def _check_required(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        return [
            self._issue(
                name, record.get(name),
                f"{self.label(name)} is required by your portal",
                row_index, kind=ErrorKind.REQUIRED_FIELD,
            )
            for name in self.required_fields()
            if is_blank(record.get(name))
        ]

    def _check_emails(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        issues = []
        for name in EMAIL_FIELDS:
            value = record.get(name)
            if is_blank(value):
                continue
            if not EMAIL_PATTERN.match(str(value).strip()):
                issues.append(self._issue(name, value, "Invalid email format", row_index))
        return issues

    def _check_dates(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        issues = []
        for name in DATE_FIELDS:
            value = record.get(name)
            if is_blank(value):
                continue
            if parse_date(value, self.date_order) is None:
                issues.append(self._issue(
                    name, value,
                    f'Invalid date "{value}". Use YYYY-MM-DD (e.g. 2024-03-01)',
                    row_index,
                ))
        return issues

    def _check_phones(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        issues = []
        for phone_field, country_field in PHONE_FIELDS.items():
            value = record.get(phone_field)
            if is_blank(value):
                continue
            country = record.get(country_field)
            if is_blank(country):
                issues.append(self._issue(
                    phone_field, value,
                    f"Country code is required when {phone_field} is provided",
                    row_index,
                ))
                continue
            if normalize_country_code(country) is None:
                continue  # Reported by the country-code check

            parsed = parse_phone(value, country)
            if not parsed.is_valid:
                issues.append(self._issue(phone_field, value, parsed.error, row_index))
        return issues

    def _check_country_codes(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        issues = []
        for name, value in record.items():
            if not name.endswith("CountryCode") or is_blank(value):
                continue
            if normalize_country_code(value) is not None:
                continue
            suggestion = suggest_country_code(value)
            if suggestion:
                message = f'"{value}" is not a valid ISO country code. Did you mean "{suggestion}"?'
            else:
                message = f'"{value}" is not a valid ISO country code. Use a two-letter code (e.g. DK)'
            issues.append(self._issue(name, value, message, row_index))
        return issues

    def _check_payrates(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        annotations = record.get(PAYRATES_KEY) or []
        if not annotations:
            return []

        issues = []
        table = self.context.table(Dimension.EMPLOYEE_GROUPS)
        for annotation in annotations:
            if not isinstance(annotation, Mapping):
                issues.append(self._issue(
                    PAYRATES_KEY, annotation,
                    "Hourly rate entries need a groupName or groupId and an hourlyRate",
                    row_index,
                ))
                continue
            name = annotation.get("groupName") or str(annotation.get("groupId", ""))
            field_name = f"employeeGroups.{name}"
            rate = annotation.get("hourlyRate")

            if not _is_number(rate) or not float(rate) > 0:
                issues.append(self._issue(
                    field_name, rate,
                    f'Hourly rate for "{name}" must be a positive number',
                    row_index,
                ))

            if _annotation_group_id(annotation, table) is None:
                issues.append(self._issue(
                    field_name, name,
                    f'Hourly rate given for unknown employee group "{name}"',
                    row_index, kind=ErrorKind.REFERENCE_RESOLUTION,
                ))
        return issues

    def _check_read_only(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        return [
            self._issue(
                name, record.get(name),
                f"{self.label(name)} is read-only in your portal and will be ignored",
                row_index, severity=Severity.WARNING,
            )
            for name in self.read_only_fields()
            if not is_blank(record.get(name))
        ]

    # ===================
    # REFERENCES
    # ===================

    def validate_references(self, record: EmployeeRecord, row_index: int) -> list[ValidationIssue]:
        """Resolve department/group/type names; errors block, warnings don't."""
        issues = []
        for dimension in Dimension:
            value = record.get(dimension.field)
            if is_blank(value):
                continue
            mapping = self.resolver.resolve(value, dimension)
            for message in mapping.errors:
                issues.append(self._issue(
                    dimension.field, value, message, row_index,
                    kind=ErrorKind.REFERENCE_RESOLUTION,
                ))
            for message in mapping.warnings:
                issues.append(self._issue(
                    dimension.field, value, message, row_index,
                    kind=ErrorKind.REFERENCE_RESOLUTION, severity=Severity.WARNING,
                ))
        return issues

    # ===================
    # BATCH CHECKS
    # ===================

    def validate_batch(self, records: list[EmployeeRecord]) -> list[ValidationIssue]:
        """
        Per-record checks for every record plus uniqueness across the set.

        Skipped records are not checked but keep their row index.
        """
        issues: list[ValidationIssue] = []
        for row_index, record in enumerate(records):
            if is_skipped(record):
                continue
            issues.extend(self.validate(record, row_index))
        issues.extend(self.validate_uniqueness(records))
        return issues

    def validate_uniqueness(self, records: list[EmployeeRecord]) -> list[ValidationIssue]:
        """
        One error per row sharing a normalized value of a unique field.

        Each error names the other rows (1-based) holding the same value.
        """
        issues = []
        for name in self.unique_fields():
            rows_by_value: dict[str, list[int]] = {}
            for row_index, record in enumerate(records):
                value = record.get(name)
                if is_skipped(record) or is_blank(value):
                    continue
                rows_by_value.setdefault(str(value).strip().lower(), []).append(row_index)

            for rows in rows_by_value.values():
                if len(rows) < 2:
                    continue
                for row_index in rows:
                    others = ", ".join(str(r + 1) for r in rows if r != row_index)
                    issues.append(self._issue(
                        name, records[row_index].get(name),
                        f"{self.label(name)} must be unique across all employees "
                        f"(duplicate found in rows {others})",
                        row_index, kind=ErrorKind.UNIQUENESS,
                    ))

        issues.sort(key=lambda issue: issue.row_index)
        return issues

    def validate_existing(
        self,
        records: list[EmployeeRecord],
        existing_by_email: Mapping[str, Mapping[str, Any]],
    ) -> list[ValidationIssue]:
        """
        Flag records whose login email already exists on the platform.

        Args:
            records: Employee records
            existing_by_email: Platform employees keyed by lowercase email

        Returns:
            One REMOTE_CONFLICT error per clashing record
        """
        issues = []
        for row_index, record in enumerate(records):
            email = record.get("userName")
            if is_skipped(record) or is_blank(email):
                continue
            existing = existing_by_email.get(str(email).strip().lower())
            if existing is None:
                continue
            issues.append(self._issue(
                "userName", email,
                f'Employee with email "{email}" already exists on the platform '
                f'(ID: {existing.get("id")}, Name: {existing.get("firstName", "")} '
                f'{existing.get("lastName", "")})',
                row_index, kind=ErrorKind.REMOTE_CONFLICT,
            ))
        return issues

    def preflight(
        self,
        records: list[EmployeeRecord],
        existing_by_email: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> list[ValidationIssue]:
        """
        Everything the upload gate checks, errors and warnings together.

        Returns:
            Issues sorted by row, per-record issues before cross-record ones
        """
        issues: list[ValidationIssue] = []
        for row_index, record in enumerate(records):
            if is_skipped(record):
                continue
            issues.extend(self.validate(record, row_index))
            issues.extend(self.validate_references(record, row_index))
        issues.extend(self.validate_uniqueness(records))
        if existing_by_email:
            issues.extend(self.validate_existing(records, existing_by_email))

        logger.info(
            "preflight_completed",
            records=len(records),
            errors=sum(1 for i in issues if i.is_error),
            warnings=sum(1 for i in issues if not i.is_error)
        )
        return issues

    # ===================
    # CONVERSION
    # ===================

    def convert(self, record: EmployeeRecord, row_index: int) -> ConversionResult:
        """
        Convert a record to a create-request, with its issues and pay rates.

        Args:
            record: Employee record
            row_index: 0-based position in the dataset

        Returns:
            ConversionResult; check .ok before submitting
        """
        issues = self.validate(record, row_index) + self.validate_references(record, row_index)
        return ConversionResult(
            converted=self.build_create_request(record),
            issues=issues,
            payrates=self._extract_payrates(record),
            payrate_valid_from=(
                parse_date(record.get("wageValidFrom"), self.date_order)
                or date.today().isoformat()
            ),
        )

    def build_create_request(self, record: EmployeeRecord) -> dict[str, Any]:
        """
        Platform create-request body for a record.

        Internal keys, blank values, read-only and local-only fields are
        dropped. Dimension names become IDs, dates become ISO strings and
        phones become national numbers.
        """
        read_only = set(self.read_only_fields())
        request: dict[str, Any] = {}

        for name, value in record.items():
            if (
                is_internal_key(name)
                or "." in name
                or name in read_only
                or name in LOCAL_ONLY_FIELDS
                or is_blank(value)
            ):
                continue

            if name in DIMENSION_FIELDS:
                dimension = DIMENSION_FIELDS[name]
                ids = self.resolver.resolve_ids(value, dimension)
                if not ids:
                    continue
                request[name] = ids if dimension.multi_value else ids[0]
            elif name in DATE_FIELDS:
                parsed = parse_date(value, self.date_order)
                if parsed:
                    request[name] = parsed
            elif name in PHONE_FIELDS:
                parsed = parse_phone(value, record.get(PHONE_FIELDS[name]))
                if parsed.is_valid:
                    request[name] = parsed.phone_number
            elif name.endswith("CountryCode"):
                code = normalize_country_code(value)
                if code:
                    request[name] = code
            elif name in STANDARD_FIELDS:
                request[name] = str(value).strip()
            else:
                request[name] = value.strip() if isinstance(value, str) else value

        # A country code without its phone number is meaningless to the platform
        for phone_field, country_field in PHONE_FIELDS.items():
            if phone_field not in request:
                request.pop(country_field, None)

        return request

    def _extract_payrates(self, record: EmployeeRecord) -> list[EmployeeGroupPayrate]:
        annotations = record.get(PAYRATES_KEY) or []
        if not annotations:
            return []

        table = self.context.table(Dimension.EMPLOYEE_GROUPS)
        payrates = []
        for annotation in annotations:
            if not isinstance(annotation, Mapping):
                continue
            rate = annotation.get("hourlyRate")
            if not _is_number(rate) or not float(rate) > 0:
                continue
            group_id = _annotation_group_id(annotation, table)
            if group_id is None:
                continue
            payrates.append(EmployeeGroupPayrate(
                group_id=group_id,
                group_name=table.original_name(group_id) or annotation.get("groupName", ""),
                hourly_rate=float(rate),
            ))
        return payrates
