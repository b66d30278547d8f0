"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.catalog import (
    Dimension,
    CatalogEntry,
    FieldProperty,
    FieldDefinitions,
)
from models.mapping import (
    MappingResult,
    ErrorPattern,
    BulkCorrectionSummary,
    CorrectionAuditEntry,
)
from models.validation import (
    Severity,
    ErrorKind,
    ValidationIssue,
)
from models.upload import (
    UploadState,
    UploadProgress,
    PayrateProgress,
    EmployeeUploadResult,
    EmployeeGroupPayrate,
    PayrateAssignment,
    PayrateResult,
    UploadOutcome,
    UploadRun,
)

__all__ = [
    # Base
    "BaseSchema",
    # Catalog
    "Dimension",
    "CatalogEntry",
    "FieldProperty",
    "FieldDefinitions",
    # Mapping
    "MappingResult",
    "ErrorPattern",
    "BulkCorrectionSummary",
    "CorrectionAuditEntry",
    # Validation
    "Severity",
    "ErrorKind",
    "ValidationIssue",
    # Upload
    "UploadState",
    "UploadProgress",
    "PayrateProgress",
    "EmployeeUploadResult",
    "EmployeeGroupPayrate",
    "PayrateAssignment",
    "PayrateResult",
    "UploadOutcome",
    "UploadRun",
]
