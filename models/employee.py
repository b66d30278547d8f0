"""
Employee record conventions.

An employee record is a flat dict of field name to cell value. Keys with a
leading underscore are internal annotations and never reach the platform.
"""

from typing import Any

EmployeeRecord = dict[str, Any]

# Internal annotation keys
SKIP_UPLOAD_KEY = "_skipUpload"
BULK_CORRECTED_KEY = "_bulkCorrected"
SOURCE_ROW_KEY = "_sourceRow"
PAYRATES_KEY = "__employeeGroupPayrates"

# Record fields the platform's create endpoint understands natively
STANDARD_FIELDS = frozenset({
    "firstName",
    "lastName",
    "userName",
    "email",
    "cellPhone",
    "cellPhoneCountryCode",
    "phone",
    "phoneCountryCode",
    "street1",
    "street2",
    "zip",
    "city",
    "gender",
    "hiredFrom",
    "birthDate",
    "ssn",
    "jobTitle",
    "salaryIdentifier",
    "departments",
    "employeeGroups",
    "employeeTypeId",
    "wageValidFrom",
})

DATE_FIELDS = ("hiredFrom", "birthDate", "wageValidFrom")
EMAIL_FIELDS = ("userName", "email")

# Phone field -> country code field it is parsed against
PHONE_FIELDS = {
    "cellPhone": "cellPhoneCountryCode",
    "phone": "phoneCountryCode",
}

# Required regardless of the portal's field definitions
ALWAYS_REQUIRED = ("userName", "departments")
FALLBACK_REQUIRED = ("firstName", "lastName", "userName", "departments")

# Local-only fields, consumed before the create-request is sent
LOCAL_ONLY_FIELDS = frozenset({"wageValidFrom"})


def is_internal_key(key: str) -> bool:
    return key.startswith("_")


def is_skipped(record: EmployeeRecord) -> bool:
    """True when the operator excluded this record from upload."""
    return bool(record.get(SKIP_UPLOAD_KEY))
