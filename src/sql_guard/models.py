"""
Data Models
===========

Core data structures for the SQL safety pipeline and its audit trail.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class AuditStatus(str, Enum):
    """Outcome recorded for one pipeline invocation."""

    ALLOWED = "allowed"
    BLOCKED = "blocked"
    ERROR = "error"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of checking one statement against the statement safety rules."""

    safe: bool
    reason: Optional[str] = None
    matched_pattern: Optional[str] = None


@dataclass(frozen=True)
class BlockedColumn:
    """A single column that was removed from a statement."""

    column: str
    category: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"column": self.column, "category": self.category, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: dict) -> "BlockedColumn":
        return cls(
            column=data["column"],
            category=data.get("category", "sensitive"),
            reason=data.get("reason", ""),
        )


@dataclass(frozen=True)
class QueryWarning:
    """A non-fatal observation attached to a pipeline run."""

    message: str
    code: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"message": self.message}
        if self.code:
            data["code"] = self.code
        if self.details:
            data["details"] = self.details
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "QueryWarning":
        return cls(
            message=data["message"],
            code=data.get("code"),
            details=data.get("details") or {},
        )


@dataclass(frozen=True)
class SanitizationOutcome:
    """Result of column-level sanitization.

    ``blocked_columns`` is empty exactly when no rewrite happened, in which
    case ``sanitized_statement`` is the input statement unchanged.
    """

    sanitized_statement: str
    blocked_columns: list[BlockedColumn] = field(default_factory=list)
    warnings: list[QueryWarning] = field(default_factory=list)

    @property
    def rewritten(self) -> bool:
        return bool(self.blocked_columns)


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class AuditEntry:
    """Immutable record of one pipeline invocation."""

    user_id: str
    status: AuditStatus
    timestamp: datetime = field(default_factory=utc_now)
    user_email: Optional[str] = None
    database: Optional[str] = None
    db_type: Optional[str] = None
    natural_language_query: Optional[str] = None
    generated_sql: Optional[str] = None
    executed_sql: Optional[str] = None
    blocked_columns: tuple[BlockedColumn, ...] = ()
    warnings: tuple[QueryWarning, ...] = ()
    reason: Optional[str] = None
    execution_time_ms: Optional[float] = None
    rows_returned: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "user_email": self.user_email,
            "database": self.database,
            "db_type": self.db_type,
            "natural_language_query": self.natural_language_query,
            "generated_sql": self.generated_sql,
            "executed_sql": self.executed_sql,
            "status": self.status.value,
            "blocked_columns": [b.to_dict() for b in self.blocked_columns],
            "warnings": [w.to_dict() for w in self.warnings],
            "reason": self.reason,
            "execution_time_ms": self.execution_time_ms,
            "rows_returned": self.rows_returned,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        """Create from a dictionary produced by :meth:`to_dict`."""
        return cls(
            timestamp=_parse_timestamp(data["timestamp"]),
            user_id=data["user_id"],
            user_email=data.get("user_email"),
            database=data.get("database"),
            db_type=data.get("db_type"),
            natural_language_query=data.get("natural_language_query"),
            generated_sql=data.get("generated_sql"),
            executed_sql=data.get("executed_sql"),
            status=AuditStatus(data["status"]),
            blocked_columns=tuple(
                BlockedColumn.from_dict(b) for b in data.get("blocked_columns") or []
            ),
            warnings=tuple(QueryWarning.from_dict(w) for w in data.get("warnings") or []),
            reason=data.get("reason"),
            execution_time_ms=data.get("execution_time_ms"),
            rows_returned=data.get("rows_returned"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class SecurityViolationEntry:
    """High-severity record of an attempt to read sensitive columns."""

    user_id: str
    attempted_query: str
    blocked_columns: tuple[BlockedColumn, ...]
    reason: str
    timestamp: datetime = field(default_factory=utc_now)
    user_email: Optional[str] = None
    severity: str = "HIGH"

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "attempted_query": self.attempted_query,
            "blocked_columns": [b.to_dict() for b in self.blocked_columns],
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SecurityViolationEntry":
        return cls(
            timestamp=_parse_timestamp(data["timestamp"]),
            severity=data.get("severity", "HIGH"),
            user_id=data["user_id"],
            user_email=data.get("user_email"),
            attempted_query=data["attempted_query"],
            blocked_columns=tuple(
                BlockedColumn.from_dict(b) for b in data.get("blocked_columns") or []
            ),
            reason=data["reason"],
        )


@dataclass
class PipelineRequest:
    """Everything the pipeline needs to evaluate one candidate statement."""

    statement: str
    schema_text: str
    user_id: str
    user_email: Optional[str] = None
    database: Optional[str] = None
    db_type: Optional[str] = None
    natural_language_query: Optional[str] = None


@dataclass
class PipelineResult:
    """Final result of one pipeline run."""

    success: bool
    status: AuditStatus
    original_statement: str
    executed_statement: Optional[str]
    blocked_columns: list[BlockedColumn] = field(default_factory=list)
    warnings: list[QueryWarning] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    rows_returned: int = 0
    execution_time_ms: float = 0.0
    error: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass
class LLMResponse:
    """Response from an LLM call."""

    content: str
    model: str
    tokens_used: int = 0
