"""
Name resolution and bulk-correction schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from models.base import BaseSchema
from models.catalog import Dimension


class MappingResult(BaseSchema):
    """Outcome of resolving one field's text against one lookup table."""
    ids: list[int] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ErrorPattern(BaseSchema):
    """The same unresolved name repeated across many rows."""
    dimension: Dimension
    invalid_name: str = Field(..., description="Name as first typed")
    count: int = 0
    rows: list[int] = Field(default_factory=list, description="0-based row indices")
    suggestion: Optional[str] = None
    confidence: float = Field(0.0, ge=0, le=1)


class BulkCorrectionSummary(BaseSchema):
    """Aggregate of resolution failures across a dataset."""
    total_errors: int = 0
    patterns: list[ErrorPattern] = Field(default_factory=list)
    affected_rows: int = 0
    can_bulk_fix: int = Field(
        0,
        description="Errors belonging to patterns whose suggestion is confident enough to auto-fix"
    )


class CorrectionAuditEntry(BaseSchema):
    """Before/after record of one bulk correction on one record."""
    from_value: str
    to_value: str
    timestamp: datetime
