"""
Errors
======

Error kinds raised inside the safety pipeline.

Every error carries a stable ``code`` so that API responses and audit
records can report the failure kind without parsing messages.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Stable identifiers for pipeline failure kinds."""

    REJECTED = "rejected"
    SANITIZATION_DEGRADED = "sanitization_degraded"
    TIMEOUT = "timeout"
    EXECUTION_FAILURE = "execution_failure"
    CANCELLED = "cancelled"
    AUDIT_WRITE_FAILURE = "audit_write_failure"
    TRANSLATION_FAILURE = "translation_failure"


class SqlGuardError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        code: Stable error code.
        message: Human-readable message.
        statement: The statement involved, kept for display.
        details: Additional error details.
    """

    code: ErrorCode = ErrorCode.EXECUTION_FAILURE

    def __init__(
        self,
        message: str,
        statement: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.statement = statement
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        data: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.statement is not None:
            data["statement"] = self.statement
        if self.details:
            data["details"] = self.details
        return data


class RejectedStatement(SqlGuardError):
    """Statement failed the denylist, allow-set or single-statement rule."""

    code = ErrorCode.REJECTED

    def __init__(
        self,
        message: str,
        statement: Optional[str] = None,
        matched_pattern: Optional[str] = None,
    ) -> None:
        details = {"matched_pattern": matched_pattern} if matched_pattern else None
        super().__init__(message, statement=statement, details=details)
        self.matched_pattern = matched_pattern


class ExecutionTimeout(SqlGuardError):
    """The data source did not answer before the deadline."""

    code = ErrorCode.TIMEOUT

    def __init__(self, timeout_seconds: float, statement: Optional[str] = None) -> None:
        super().__init__(
            f"Query execution timeout. Query took longer than {timeout_seconds:g}s to execute.",
            statement=statement,
            details={"timeout_seconds": timeout_seconds},
        )
        self.timeout_seconds = timeout_seconds


class ExecutionFailure(SqlGuardError):
    """The data source reported an error; its text is kept verbatim."""

    code = ErrorCode.EXECUTION_FAILURE


class ExecutionCancelled(SqlGuardError):
    """The request was abandoned after execution was dispatched."""

    code = ErrorCode.CANCELLED


class AuditWriteFailure(SqlGuardError):
    """An audit line could not be persisted. Never surfaced to callers."""

    code = ErrorCode.AUDIT_WRITE_FAILURE


class TranslationError(SqlGuardError):
    """The natural-language translation step failed."""

    code = ErrorCode.TRANSLATION_FAILURE
