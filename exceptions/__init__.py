"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    ConflictError,
    ExternalServiceError,

    # Resolution context / state machine
    ContextNotInitializedError,
    InvalidStateTransitionError,

    # Remote platform
    PlatformApiError,
    AuthExpiredError,
    CreationFailure,
    PayrateFailure,

    # Spreadsheet / upload
    SpreadsheetParseError,
    UploadValidationError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",

    # Resolution context / state machine
    "ContextNotInitializedError",
    "InvalidStateTransitionError",

    # Remote platform
    "PlatformApiError",
    "AuthExpiredError",
    "CreationFailure",
    "PayrateFailure",

    # Spreadsheet / upload
    "SpreadsheetParseError",
    "UploadValidationError",
]
