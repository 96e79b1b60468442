"""
Custom exception classes for the application.

Only file-level and infrastructure failures are exceptions. Row and
group problems found during an import are returned as ImportIssue values.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_FILE_EMPTY")
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
        self.timestamp = datetime.now(timezone.utc).isoformat()
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


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


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


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# IMPORT FILE ERRORS
# ===================

class ProductImportParseError(ValidationError):
    """Import file could not be read as a table."""

    def __init__(
        self,
        message: str,
        code: str = "IMPORT_PARSE_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            message=message,
            code=code,
            details=details
        )


class EmptyImportFileError(ProductImportParseError):
    """File has no data rows (empty or header only)."""

    def __init__(self):
        super().__init__(
            code="IMPORT_FILE_EMPTY",
            message="The uploaded file is empty. Add at least one product row below the header."
        )


class MissingColumnsError(ProductImportParseError):
    """One or more required columns are absent from the header."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            code="IMPORT_MISSING_COLUMNS",
            message=f"Missing required columns: {', '.join(self.missing)}",
            details={"missing": self.missing}
        )


class ImportFileTooLargeError(ValidationError):
    """Uploaded file exceeds the configured size limit."""

    def __init__(self, size_bytes: int, limit_bytes: int):
        super().__init__(
            code="IMPORT_FILE_TOO_LARGE",
            message=f"File is too large ({size_bytes} bytes, limit {limit_bytes})",
            details={"size_bytes": size_bytes, "limit_bytes": limit_bytes}
        )


# ===================
# IMPORT SESSION ERRORS
# ===================

class ImportSessionNotFoundError(NotFoundError):
    """Import session expired or never existed."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


class InvalidImportTransitionError(ValidationError):
    """Requested stage change is not allowed from the current stage."""

    def __init__(self, current_stage: str, target_stage: str, reason: str):
        super().__init__(
            code="INVALID_IMPORT_TRANSITION",
            message=f"Cannot move import from {current_stage} to {target_stage}: {reason}",
            details={
                "current_stage": current_stage,
                "target_stage": target_stage,
                "reason": reason
            }
        )
