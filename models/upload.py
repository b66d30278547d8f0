"""
Bulk upload schemas: state, progress, per-employee and per-rate results.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema
from models.validation import ValidationIssue


class UploadState(str, Enum):
    """Phases of one upload run."""
    PREPARING = "preparing"
    VALIDATING = "validating"
    AUTHENTICATING = "authenticating"
    UPLOADING = "uploading"
    SETTING_PAYRATES = "setting-payrates"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.COMPLETED, UploadState.ERROR)


class UploadProgress(BaseSchema):
    """
    Creation-phase progress.

    Mutated only by the orchestrator; callbacks receive a copy.
    Invariant: succeeded + failed <= attempted <= total.
    """
    total: int = 0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    current_batch: int = 0
    total_batches: int = 0
    in_progress: bool = False


class PayrateProgress(BaseSchema):
    """Pay-rate phase progress."""
    completed: int = 0
    total: int = 0


class EmployeeUploadResult(BaseSchema):
    """Outcome of submitting one create-request."""
    record: dict[str, Any]
    row_index: int
    success: bool
    remote_id: Optional[int] = None
    error: Optional[str] = None


class EmployeeGroupPayrate(BaseSchema):
    """Hourly-rate annotation for one employee group, carried through conversion."""
    group_id: int
    group_name: str
    hourly_rate: float = Field(..., gt=0)


class PayrateAssignment(BaseSchema):
    """One hourly rate to set for one created employee in one group."""
    employee_id: int
    group_id: int
    group_name: str
    rate: float = Field(..., gt=0)
    valid_from: str = Field(..., description="YYYY-MM-DD")


class PayrateResult(BaseSchema):
    """Outcome of one pay-rate call."""
    employee_id: int
    group_id: int
    group_name: str
    rate: float
    success: bool
    error: Optional[str] = None


class UploadOutcome(BaseSchema):
    """Terminal state plus enough detail to tell a clean abort from a partial upload."""
    state: UploadState
    message: str
    partial_upload: bool = False
    succeeded_before_failure: int = 0

    @property
    def nothing_uploaded(self) -> bool:
        return self.state == UploadState.ERROR and not self.partial_upload


class UploadRun(BaseSchema):
    """Everything one orchestrator run produced."""
    outcome: UploadOutcome
    results: list[EmployeeUploadResult] = Field(default_factory=list)
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    payrate_results: list[PayrateResult] = Field(default_factory=list)
    state_history: list[UploadState] = Field(default_factory=list)
    progress: Optional[UploadProgress] = None
