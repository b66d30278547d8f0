"""
Catalog schemas: lookup dimensions, catalog entries and portal field definitions.
"""

from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field

from models.base import BaseSchema


class Dimension(str, Enum):
    """Name-to-identifier lookup domains."""
    DEPARTMENTS = "departments"
    EMPLOYEE_GROUPS = "employeeGroups"
    EMPLOYEE_TYPES = "employeeTypes"

    @property
    def field(self) -> str:
        """Record field that carries this dimension's free text."""
        if self is Dimension.EMPLOYEE_TYPES:
            return "employeeTypeId"
        return self.value

    @property
    def multi_value(self) -> bool:
        """Comma-separated input is split only for multi-value dimensions."""
        return self is not Dimension.EMPLOYEE_TYPES

    @property
    def label(self) -> str:
        return {
            Dimension.DEPARTMENTS: "departments",
            Dimension.EMPLOYEE_GROUPS: "employee groups",
            Dimension.EMPLOYEE_TYPES: "employee types",
        }[self]


class CatalogEntry(BaseSchema):
    """One department, employee group or employee type from the platform."""
    id: int
    name: Optional[str] = None


class FieldProperty(BaseSchema):
    """Schema entry for a single employee field."""
    description: Optional[str] = None
    type: Optional[str] = None


class FieldDefinitions(BaseSchema):
    """
    Portal-specific employee field definitions.

    Supplied by the platform's field-definition endpoint; drives the
    required/unique checks and custom-field labels.
    """
    required: list[str] = Field(default_factory=list)
    read_only: list[str] = Field(default_factory=list, alias="readOnly")
    unique: list[str] = Field(default_factory=list)
    properties: dict[str, FieldProperty] = Field(default_factory=dict)
    portal_id: Optional[int] = Field(None, alias="portalId")

    model_config = ConfigDict(**BaseSchema.model_config, populate_by_name=True)
