"""
Validation issue schemas.
"""

from enum import Enum
from typing import Any

from models.base import BaseSchema


class Severity(str, Enum):
    """Errors block submission; warnings do not."""
    ERROR = "error"
    WARNING = "warning"


class ErrorKind(str, Enum):
    """Taxonomy of data-level validation failures."""
    FORMAT = "FORMAT"
    REQUIRED_FIELD = "REQUIRED_FIELD"
    UNIQUENESS = "UNIQUENESS"
    REMOTE_CONFLICT = "REMOTE_CONFLICT"
    REFERENCE_RESOLUTION = "REFERENCE_RESOLUTION"


class ValidationIssue(BaseSchema):
    """Single validation finding for one field of one row."""
    field: str
    value: Any = None
    message: str
    row_index: int
    severity: Severity = Severity.ERROR
    kind: ErrorKind = ErrorKind.FORMAT

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    @property
    def row_number(self) -> int:
        """1-based row number for messages."""
        return self.row_index + 1
