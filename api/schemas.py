"""
API Schemas
===========

Pydantic models for API request/response validation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from sql_guard.models import BlockedColumn, PipelineResult, QueryWarning


class QueryRequest(BaseModel):
    """Request body for answering a natural-language question."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Natural language question to answer from the database",
        examples=["Show me all customers"],
    )

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Query must not be blank")
        return value


class ValidateRequest(BaseModel):
    """Request body for a dry run of the safety checks."""

    sql: str = Field(
        ...,
        min_length=1,
        description="SQL statement to validate and sanitize",
        examples=["SELECT name, password FROM users"],
    )


class BlockedColumnResponse(BaseModel):
    """A column removed from the projection."""

    column: str
    category: str
    reason: str

    @classmethod
    def from_blocked(cls, blocked: BlockedColumn) -> "BlockedColumnResponse":
        return cls(**blocked.to_dict())


class WarningResponse(BaseModel):
    """A non-fatal notice attached to a result."""

    message: str
    code: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_warning(cls, warning: QueryWarning) -> "WarningResponse":
        return cls(message=warning.message, code=warning.code, details=dict(warning.details))


class QueryResponse(BaseModel):
    """Response body for a pipeline run."""

    success: bool = Field(..., description="Whether the statement was executed")
    status: str = Field(..., description="Audit status: allowed, blocked or error")
    original_query: str = Field(..., description="Natural language question")
    generated_sql: str | None = Field(None, description="SQL drafted by the translator")
    executed_sql: str | None = Field(None, description="SQL actually sent to the database")
    rows: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = Field(0, description="Number of rows returned")
    blocked_columns: list[BlockedColumnResponse] = Field(default_factory=list)
    warnings: list[WarningResponse] = Field(default_factory=list)
    error: str | None = Field(None, description="Failure message, if any")
    error_kind: str | None = Field(None, description="Stable failure code, if any")
    request_id: str = Field(..., description="Unique request identifier")
    processing_time_ms: float = Field(..., description="Processing time in milliseconds")

    @classmethod
    def from_result(
        cls,
        question: str,
        result: PipelineResult,
        request_id: str,
        processing_time_ms: float,
    ) -> "QueryResponse":
        return cls(
            success=result.success,
            status=result.status.value,
            original_query=question,
            generated_sql=result.original_statement or None,
            executed_sql=result.executed_statement,
            rows=result.rows,
            row_count=result.rows_returned,
            blocked_columns=[BlockedColumnResponse.from_blocked(b) for b in result.blocked_columns],
            warnings=[WarningResponse.from_warning(w) for w in result.warnings],
            error=result.error,
            error_kind=result.error_kind,
            request_id=request_id,
            processing_time_ms=processing_time_ms,
        )


class ValidateResponse(BaseModel):
    """Dry-run result: what would be executed, without executing it."""

    safe: bool = Field(..., description="Whether the statement passed validation")
    original_sql: str
    sanitized_sql: str
    blocked_columns: list[BlockedColumnResponse] = Field(default_factory=list)
    warnings: list[WarningResponse] = Field(default_factory=list)
    security_report: dict[str, Any] = Field(default_factory=dict)


class AuditHistoryResponse(BaseModel):
    """Recent audit entries for the calling user, newest first."""

    user_id: str
    count: int
    entries: list[dict[str, Any]] = Field(default_factory=list)


class ViolationsResponse(BaseModel):
    """Recent security violations, newest first."""

    count: int
    violations: list[dict[str, Any]] = Field(default_factory=list)


class ColumnResponse(BaseModel):
    name: str
    type: str
    attributes: str = ""


class TableResponse(BaseModel):
    name: str
    columns: list[ColumnResponse] = Field(default_factory=list)


class SchemaResponse(BaseModel):
    """Schema of the configured data source."""

    database: str
    db_type: str
    tables: list[TableResponse] = Field(default_factory=list)
    raw: str = Field(..., description="Schema text as given to the translator")


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the service is ready to handle requests")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    request_id: str | None = Field(None, description="Request ID if available")
    details: dict[str, Any] | None = Field(None, description="Additional error details")
