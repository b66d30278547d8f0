"""
Base schema for all models.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for request, response and result schemas.

    Strings are trimmed on input. Assignments are validated because the
    orchestrator and analyzers update progress and pattern objects in place.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )
