"""
Unit tests for ValidationEngine.

Covers per-record checks, cross-record uniqueness, remote duplicates,
reference resolution and conversion to platform create-requests.
"""

import pytest

from models.catalog import FieldDefinitions
from models.employee import PAYRATES_KEY, SKIP_UPLOAD_KEY
from models.validation import ErrorKind, Severity
from parsers.date_parser import DateOrder
from services.validation_service import ValidationEngine
from tests.factories import EmployeeRecordFactory


@pytest.fixture
def definitions():
    return FieldDefinitions(
        required=["firstName", "lastName", "custom_77"],
        read_only=["salaryIdentifier"],
        unique=["userName", "ssn"],
        properties={
            "firstName": {"description": "First name"},
            "custom_77": {"description": "Shoe size"},
        },
    )


@pytest.fixture
def engine_with_schema(context, resolver, test_settings, definitions):
    context.set_field_definitions(definitions)
    return ValidationEngine(context, resolver=resolver, settings=test_settings)


def messages(issues):
    return [issue.message for issue in issues]


# ===================
# FIELD DEFINITIONS
# ===================

class TestFieldDefinitions:

    def test_fallback_required_without_schema(self, engine):
        assert engine.required_fields() == ["firstName", "lastName", "userName", "departments"]

    def test_schema_required_plus_always_required(self, engine_with_schema):
        assert engine_with_schema.required_fields() == [
            "firstName", "lastName", "custom_77", "userName", "departments",
        ]

    def test_custom_fields_exclude_standard_fields(self, engine_with_schema):
        assert engine_with_schema.custom_fields() == {"custom_77": "Shoe size"}
        assert engine_with_schema.label("custom_77") == "Shoe size"
        assert engine_with_schema.label("firstName") == "firstName"


# ===================
# PER-RECORD CHECKS
# ===================

class TestValidate:

    def test_clean_record(self, engine):
        assert engine.validate(EmployeeRecordFactory.create(), 0) == []

    def test_missing_required_fields(self, engine_with_schema):
        record = EmployeeRecordFactory.create(custom_77=42)
        del record["departments"]
        record["lastName"] = "  "

        issues = engine_with_schema.validate(record, 4)

        assert messages(issues) == [
            "lastName is required by your portal",
            "departments is required by your portal",
        ]
        assert all(i.kind == ErrorKind.REQUIRED_FIELD for i in issues)
        assert all(i.row_index == 4 for i in issues)

    def test_custom_field_uses_portal_label(self, engine_with_schema):
        issues = engine_with_schema.validate(EmployeeRecordFactory.create(), 0)
        assert messages(issues) == ["Shoe size is required by your portal"]

    def test_invalid_email(self, engine):
        issues = engine.validate(EmployeeRecordFactory.create(user_name="anna@"), 0)
        assert messages(issues) == ["Invalid email format"]
        assert issues[0].field == "userName"

    def test_invalid_date(self, engine):
        record = EmployeeRecordFactory.create(hiredFrom="2024-02-30")
        issues = engine.validate(record, 0)
        assert messages(issues) == ['Invalid date "2024-02-30". Use YYYY-MM-DD (e.g. 2024-03-01)']

    def test_compact_date_accepted(self, engine):
        record = EmployeeRecordFactory.create(hiredFrom="01032024")
        assert engine.validate(record, 0) == []

    def test_phone_without_country_code(self, engine):
        record = EmployeeRecordFactory.create(cellPhoneCountryCode=None)
        issues = engine.validate(record, 0)
        assert messages(issues) == ["Country code is required when cellPhone is provided"]
        assert issues[0].is_error

    def test_phone_too_short(self, engine):
        record = EmployeeRecordFactory.create(cellPhone="1234")
        issues = engine.validate(record, 0)
        assert messages(issues) == [
            "Phone number too short for Denmark. Expected format: +45 12345678"
        ]

    def test_country_name_gets_code_suggestion(self, engine):
        record = EmployeeRecordFactory.create(cellPhoneCountryCode="Denmark")
        issues = engine.validate(record, 0)
        # Phone is not parsed against an invalid country
        assert messages(issues) == [
            '"Denmark" is not a valid ISO country code. Did you mean "DK"?'
        ]
        assert issues[0].field == "cellPhoneCountryCode"

    def test_non_positive_hourly_rate(self, engine):
        record = EmployeeRecordFactory.create(**{
            PAYRATES_KEY: [{"groupName": "Waiter", "hourlyRate": -5}],
        })
        issues = engine.validate(record, 0)
        assert messages(issues) == ['Hourly rate for "Waiter" must be a positive number']
        assert issues[0].field == "employeeGroups.Waiter"

    def test_rate_for_unknown_group(self, engine):
        record = EmployeeRecordFactory.create(**{
            PAYRATES_KEY: [{"groupName": "Pilot", "hourlyRate": 150}],
        })
        issues = engine.validate(record, 0)
        assert len(issues) == 1
        assert issues[0].kind == ErrorKind.REFERENCE_RESOLUTION

    def test_non_numeric_group_id(self, engine):
        record = EmployeeRecordFactory.create(**{
            PAYRATES_KEY: [{"groupId": "Bar", "hourlyRate": 20}],
        })
        issues = engine.validate(record, 0)
        assert messages(issues) == ['Hourly rate given for unknown employee group "Bar"']
        assert issues[0].kind == ErrorKind.REFERENCE_RESOLUTION

    def test_bad_group_id_falls_back_to_name(self, engine):
        record = EmployeeRecordFactory.create(**{
            PAYRATES_KEY: [
                {"groupId": "Bar", "groupName": "Waiter", "hourlyRate": 20},
                {"groupId": "11", "hourlyRate": 25},
            ],
        })
        assert engine.validate(record, 0) == []
        payrates = engine.convert(record, 0).payrates
        assert [(p.group_id, p.group_name) for p in payrates] == [(10, "Waiter"), (11, "Chef")]

    def test_malformed_rate_entry(self, engine):
        record = EmployeeRecordFactory.create(**{PAYRATES_KEY: ["Waiter 20"]})
        issues = engine.validate(record, 0)
        assert len(issues) == 1
        assert issues[0].field == PAYRATES_KEY

    def test_same_record_same_issues(self, engine):
        record = EmployeeRecordFactory.create(
            user_name="nope",
            hiredFrom="31/02/2024",
            cellPhone="12",
            departments="Ktichen, Bar, Bar",
        )
        first = engine.validate(record, 4) + engine.validate_references(record, 4)
        second = engine.validate(record, 4) + engine.validate_references(record, 4)
        assert first
        assert [i.model_dump() for i in first] == [i.model_dump() for i in second]
        assert [i.model_dump_json() for i in first] == [i.model_dump_json() for i in second]

    def test_read_only_field_is_warning(self, engine_with_schema):
        record = EmployeeRecordFactory.create(custom_77=42, salaryIdentifier="S-1")
        issues = engine_with_schema.validate(record, 0)
        assert len(issues) == 1
        assert issues[0].severity == Severity.WARNING


# ===================
# REFERENCES
# ===================

class TestValidateReferences:

    def test_unresolved_name_is_error(self, engine):
        record = EmployeeRecordFactory.create(departments="Ktichen")
        issues = engine.validate_references(record, 2)
        assert messages(issues) == ['"Ktichen" not found. Did you mean "Kitchen"?']
        assert issues[0].kind == ErrorKind.REFERENCE_RESOLUTION
        assert issues[0].row_index == 2

    def test_duplicate_name_is_warning(self, engine):
        record = EmployeeRecordFactory.create(departments="Kitchen, Kitchen")
        issues = engine.validate_references(record, 0)
        assert len(issues) == 1
        assert not issues[0].is_error


# ===================
# BATCH CHECKS
# ===================

class TestBatch:

    def test_uniqueness_names_other_rows(self, engine_with_schema):
        records = [
            EmployeeRecordFactory.create(user_name="a@example.com", custom_77=1),
            EmployeeRecordFactory.create(custom_77=1),
            EmployeeRecordFactory.create(user_name="A@Example.com ", custom_77=1),
        ]

        issues = engine_with_schema.validate_uniqueness(records)

        assert [(i.row_index, i.message) for i in issues] == [
            (0, "userName must be unique across all employees (duplicate found in rows 3)"),
            (2, "userName must be unique across all employees (duplicate found in rows 1)"),
        ]
        assert all(i.kind == ErrorKind.UNIQUENESS for i in issues)

    def test_three_way_duplicate(self, engine_with_schema):
        records = [EmployeeRecordFactory.create(ssn="123") for _ in range(3)]
        issues = engine_with_schema.validate_uniqueness(records)
        assert [i.message.split("rows ")[1] for i in issues] == ["2, 3)", "1, 3)", "1, 2)"]

    def test_blank_values_never_clash(self, engine_with_schema):
        records = [EmployeeRecordFactory.create(ssn="") for _ in range(2)]
        assert engine_with_schema.validate_uniqueness(records) == []

    def test_skipped_records_excluded(self, engine_with_schema):
        records = [
            EmployeeRecordFactory.create(user_name="a@example.com"),
            EmployeeRecordFactory.create(user_name="a@example.com", **{SKIP_UPLOAD_KEY: True}),
        ]
        assert engine_with_schema.validate_uniqueness(records) == []

    def test_validate_batch_keeps_row_positions(self, engine):
        records = [
            EmployeeRecordFactory.create(user_name="bad", **{SKIP_UPLOAD_KEY: True}),
            EmployeeRecordFactory.create(),
            EmployeeRecordFactory.create(user_name="also-bad"),
        ]
        issues = engine.validate_batch(records)
        assert [i.row_index for i in issues] == [2]

    def test_existing_platform_employee(self, engine):
        records = [
            EmployeeRecordFactory.create(user_name="Anna@Example.com"),
            EmployeeRecordFactory.create(),
        ]
        existing = {"anna@example.com": {"id": 7, "firstName": "Anna", "lastName": "Jensen"}}

        issues = engine.validate_existing(records, existing)

        assert len(issues) == 1
        assert issues[0].message == (
            'Employee with email "Anna@Example.com" already exists on the platform '
            "(ID: 7, Name: Anna Jensen)"
        )
        assert issues[0].kind == ErrorKind.REMOTE_CONFLICT

    def test_preflight_collects_everything(self, engine):
        records = [
            EmployeeRecordFactory.create(departments="Zzz"),
            EmployeeRecordFactory.create(user_name="oops"),
            EmployeeRecordFactory.create(departments="Bar, Bar"),
        ]
        issues = engine.preflight(records)
        errors = [i for i in issues if i.is_error]
        warnings = [i for i in issues if not i.is_error]
        assert [i.row_index for i in errors] == [0, 1]
        assert [i.row_index for i in warnings] == [2]


# ===================
# CONVERSION
# ===================

class TestConversion:

    def test_build_create_request(self, engine):
        record = {
            "firstName": " Anna ",
            "lastName": "Jensen",
            "userName": "anna@example.com",
            "departments": "Kitchen, Bar",
            "departments.Kitchen": "x",
            "employeeGroups": "waiter",
            "employeeTypeId": "Part-time",
            "hiredFrom": "01/03/2024",
            "cellPhone": "+45 12 34 56 78",
            "cellPhoneCountryCode": "dk",
            "phoneCountryCode": "DK",
            "salaryIdentifier": 1234,
            "wageValidFrom": "2024-05-01",
            "custom_77": 42,
            "_sourceRow": 2,
        }

        request = engine.build_create_request(record)

        assert request == {
            "firstName": "Anna",
            "lastName": "Jensen",
            "userName": "anna@example.com",
            "departments": [1, 2],
            "employeeGroups": [10],
            "employeeTypeId": 21,
            "hiredFrom": "2024-03-01",
            "cellPhone": "12345678",
            "cellPhoneCountryCode": "DK",
            "salaryIdentifier": "1234",
            "custom_77": 42,
        }

    def test_month_first_dates(self, context, resolver, test_settings):
        engine = ValidationEngine(
            context, resolver=resolver, settings=test_settings,
            date_order=DateOrder.MONTH_FIRST,
        )
        record = EmployeeRecordFactory.create(hiredFrom="01/03/2024")
        assert engine.build_create_request(record)["hiredFrom"] == "2024-01-03"

    def test_read_only_fields_dropped(self, engine_with_schema):
        record = EmployeeRecordFactory.create(salaryIdentifier="S-1")
        assert "salaryIdentifier" not in engine_with_schema.build_create_request(record)

    def test_convert_extracts_payrates(self, engine):
        record = EmployeeRecordFactory.create(
            wageValidFrom="2024-05-01",
            **{PAYRATES_KEY: [
                {"groupName": "waiter", "hourlyRate": 150},
                {"groupName": "Chef", "hourlyRate": "175.5"},
            ]},
        )

        result = engine.convert(record, 0)

        assert result.ok
        assert [(p.group_id, p.group_name, p.hourly_rate) for p in result.payrates] == [
            (10, "Waiter", 150.0),
            (11, "Chef", 175.5),
        ]
        assert result.payrate_valid_from == "2024-05-01"
        assert "wageValidFrom" not in result.converted

    def test_convert_reports_issues(self, engine):
        result = engine.convert(EmployeeRecordFactory.create(departments="Ktichen"), 3)
        assert not result.ok
        assert "departments" not in result.converted
