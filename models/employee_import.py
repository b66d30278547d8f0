"""
Request/response schemas for the employee import API.
"""

from typing import Any, Optional

from pydantic import ConfigDict, Field

from models.base import BaseSchema
from models.catalog import CatalogEntry, Dimension
from models.mapping import ErrorPattern, MappingResult
from models.upload import UploadRun
from models.validation import ValidationIssue


class CatalogRequest(BaseSchema):
    """Platform catalog used to build the lookup tables."""
    departments: list[CatalogEntry] = Field(default_factory=list)
    employee_groups: list[CatalogEntry] = Field(default_factory=list, alias="employeeGroups")
    employee_types: list[CatalogEntry] = Field(default_factory=list, alias="employeeTypes")

    model_config = ConfigDict(**BaseSchema.model_config, populate_by_name=True)


class CatalogStatusResponse(BaseSchema):
    """Size of each lookup table after initialization."""
    departments: int
    employee_groups: int
    employee_types: int


class ResolveRequest(BaseSchema):
    text: Optional[str] = None
    dimension: Dimension


class ResolveResponse(BaseSchema):
    dimension: Dimension
    result: MappingResult


class RecordsRequest(BaseSchema):
    """A dataset of employee records, optionally with known platform duplicates."""
    records: list[dict[str, Any]] = Field(default_factory=list)
    existing_by_email: Optional[dict[str, dict[str, Any]]] = None


class ValidationResponse(BaseSchema):
    valid: bool
    error_count: int
    warning_count: int
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)


class CorrectionRequest(BaseSchema):
    records: list[dict[str, Any]] = Field(default_factory=list)
    pattern: ErrorPattern
    replacement: str = Field(..., min_length=1)


class CorrectionResponse(BaseSchema):
    records: list[dict[str, Any]]
    records_changed: int


class RunRequest(BaseSchema):
    """Start an upload against the configured platform."""
    records: list[dict[str, Any]] = Field(default_factory=list)
    refresh_token: Optional[str] = Field(None, description="Used for one silent re-authentication")
    check_existing: bool = Field(True, description="Block employees whose email already exists")


class RunResponse(BaseSchema):
    run: UploadRun
    progress_events: list[dict[str, Any]] = Field(default_factory=list)
