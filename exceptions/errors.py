"""
Custom exception classes for the application.

Row-level validation outcomes are values (models.validation.ValidationIssue),
not exceptions. The classes here cover failures that stop an operation or
that a collaborator raises for a single rejected call.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "AUTH_EXPIRED")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


# ===================
# RESOLUTION CONTEXT
# ===================

class ContextNotInitializedError(ConflictError):
    """Lookup tables were used before initialize() was called."""

    def __init__(self):
        super().__init__(
            code="CONTEXT_NOT_INITIALIZED",
            message="Catalog not loaded. Call initialize() with departments, "
                    "employee groups and employee types first."
        )


class InvalidStateTransitionError(ConflictError):
    """Upload state machine received an event its current state does not accept."""

    def __init__(self, current_state: str, event: str):
        super().__init__(
            code="INVALID_STATE_TRANSITION",
            message=f"Cannot apply {event} while {current_state}",
            details={"current_state": current_state, "event": event}
        )


# ===================
# REMOTE PLATFORM
# ===================

class PlatformApiError(ExternalServiceError):
    """Non-2xx response from the workforce platform."""

    FRIENDLY_MESSAGES = {
        400: "Invalid employee data provided. Check the employee information and try again.",
        401: "Authentication failed. Re-authenticate with a valid refresh token.",
        403: "Insufficient permissions. The token may lack the scopes required for this call.",
        404: "The requested resource was not found. Verify department and group selections.",
        409: "Data conflict detected. This may be a duplicate employee or an invalid field value.",
        429: "Too many requests sent to the platform. Wait before retrying.",
    }

    def __init__(
        self,
        status_code: int,
        message: str,
        payload: Optional[dict] = None
    ):
        super().__init__(
            service="platform",
            message=message,
            details={"status": status_code, "response": payload or {}}
        )
        self.platform_status = status_code
        self.payload = payload or {}

    @property
    def is_auth_error(self) -> bool:
        return self.platform_status in (401, 403)

    def user_friendly_message(self) -> str:
        """Message suited for an operator, keyed on the HTTP status."""
        if self.platform_status >= 500:
            return "Platform server error. Try again later or contact platform support."
        return self.FRIENDLY_MESSAGES.get(self.platform_status, self.message)


class AuthExpiredError(AppError):
    """Session is not authenticated and silent re-authentication failed."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            code="AUTH_EXPIRED",
            message=message or (
                "Authentication expired and automatic re-authentication failed. "
                "Please re-authenticate manually."
            ),
            status_code=401
        )


class CreationFailure(AppError):
    """The platform rejected a single employee create-request."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="EMPLOYEE_CREATION_FAILED",
            message=message,
            status_code=502,
            details=details
        )


class PayrateFailure(AppError):
    """The platform rejected a single hourly-rate assignment."""

    def __init__(self, employee_id: int, group_id: int, message: str):
        super().__init__(
            code="PAYRATE_FAILED",
            message=message,
            status_code=502,
            details={"employee_id": employee_id, "group_id": group_id}
        )


# ===================
# SPREADSHEET / UPLOAD
# ===================

class SpreadsheetParseError(ValidationError):
    """Employee workbook could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SPREADSHEET_PARSE_ERROR",
            message=message,
            details=details
        )


class UploadValidationError(ValidationError):
    """Pre-flight validation blocked an upload."""

    def __init__(self, errors: list[dict]):
        super().__init__(
            code="UPLOAD_VALIDATION_FAILED",
            message=f"Upload validation failed with {len(errors)} errors",
            details={"errors": errors}
        )
