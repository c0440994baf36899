"""
Safety Pipeline
===============

Orchestrates one candidate statement through validation, sanitization,
execution and auditing.
"""

import asyncio
import time

import structlog
from opentelemetry import trace

from sql_guard.audit import AuditTrail
from sql_guard.catalog import DEFAULT_CATALOG, SensitiveColumnCatalog
from sql_guard.datasources.base import DataSource
from sql_guard.errors import (
    ErrorCode,
    ExecutionCancelled,
    ExecutionFailure,
    ExecutionTimeout,
    RejectedStatement,
    SqlGuardError,
)
from sql_guard.guards.columns import ColumnSecuritySanitizer
from sql_guard.guards.statement import StatementSafetyValidator
from sql_guard.models import (
    AuditEntry,
    AuditStatus,
    PipelineRequest,
    PipelineResult,
    QueryWarning,
    SanitizationOutcome,
    SecurityViolationEntry,
)

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_EXECUTION_TIMEOUT = 30.0

BLOCKED_COLUMNS_MESSAGE = "Some columns were blocked for security. Showing safe results instead."


class SafetyPipeline:
    """
    Safety pipeline for generated SQL.

    For every request the pipeline:
    1. Rejects unsafe statements (never executed, audited as ``blocked``)
    2. Strips or substitutes sensitive columns
    3. Executes the resulting statement under a hard deadline
    4. Appends exactly one audit entry describing the outcome

    Nothing is retried: a rejected statement is never modified and resent.
    """

    def __init__(
        self,
        audit_trail: AuditTrail,
        catalog: SensitiveColumnCatalog = DEFAULT_CATALOG,
        validator: StatementSafetyValidator | None = None,
        sanitizer: ColumnSecuritySanitizer | None = None,
        execution_timeout: float = DEFAULT_EXECUTION_TIMEOUT,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            audit_trail: Destination for audit and violation records
            catalog: Sensitive column catalog used by the default sanitizer
            validator: Statement validator (defaults to the standard rules)
            sanitizer: Column sanitizer (defaults to one built on ``catalog``)
            execution_timeout: Deadline for the data source, in seconds
        """
        self.audit_trail = audit_trail
        self.catalog = catalog
        self.validator = validator or StatementSafetyValidator()
        self.sanitizer = sanitizer or ColumnSecuritySanitizer(catalog=catalog)
        self.execution_timeout = execution_timeout

    def prepare(self, statement: str, schema_text: str) -> SanitizationOutcome:
        """
        Validate and sanitize without executing or auditing.

        Raises:
            RejectedStatement: If the statement fails validation
        """
        with tracer.start_as_current_span("sql_guard.validate") as span:
            validation = self.validator.validate(statement)
            span.set_attribute("sql_guard.safe", validation.safe)
        if not validation.safe:
            raise RejectedStatement(
                validation.reason or "Statement rejected",
                statement=statement,
                matched_pattern=validation.matched_pattern,
            )

        with tracer.start_as_current_span("sql_guard.sanitize") as span:
            outcome = self.sanitizer.sanitize(statement, schema_text)
            span.set_attribute("sql_guard.blocked_columns", len(outcome.blocked_columns))
        return outcome

    async def run(self, request: PipelineRequest, data_source: DataSource) -> PipelineResult:
        """
        Run one statement through the whole pipeline.

        Args:
            request: Candidate statement, schema text and caller identity
            data_source: Database to execute the vetted statement against

        Returns:
            PipelineResult; failures are reported through ``success``,
            ``error`` and ``error_kind`` rather than raised
        """
        start_time = time.perf_counter()

        try:
            sanitization = self.prepare(request.statement, request.schema_text)
        except RejectedStatement as e:
            result = PipelineResult(
                success=False,
                status=AuditStatus.BLOCKED,
                original_statement=request.statement,
                executed_statement=None,
                execution_time_ms=_elapsed_ms(start_time),
                error=f"Query validation failed: {e.message}",
                error_kind=e.code.value,
            )
            self._audit(request, result, reason=e.message)
            return result

        warnings = list(sanitization.warnings)
        if sanitization.blocked_columns:
            warnings.append(
                QueryWarning(
                    message=BLOCKED_COLUMNS_MESSAGE,
                    code="columns_blocked",
                    details={
                        "blocked_columns": [b.to_dict() for b in sanitization.blocked_columns],
                        "suggested_alternatives": self.sanitizer.suggest_alternatives(
                            sanitization.blocked_columns
                        ),
                    },
                )
            )
            self.audit_trail.record_violation(
                SecurityViolationEntry(
                    user_id=request.user_id,
                    user_email=request.user_email,
                    attempted_query=request.statement,
                    blocked_columns=tuple(sanitization.blocked_columns),
                    reason=_blocked_reason(len(sanitization.blocked_columns)),
                )
            )

        statement = sanitization.sanitized_statement
        result = PipelineResult(
            success=False,
            status=AuditStatus.ERROR,
            original_statement=request.statement,
            executed_statement=statement,
            blocked_columns=list(sanitization.blocked_columns),
            warnings=warnings,
        )

        try:
            rows = await self._execute(data_source, statement)
        except (ExecutionTimeout, ExecutionFailure) as e:
            result.execution_time_ms = _elapsed_ms(start_time)
            result.error = e.message
            result.error_kind = e.code.value
            self._audit(request, result)
            return result
        except asyncio.CancelledError:
            result.execution_time_ms = _elapsed_ms(start_time)
            result.error = ExecutionCancelled("Request cancelled during execution").message
            result.error_kind = ErrorCode.CANCELLED.value
            self._audit(request, result)
            raise

        result.success = True
        result.status = AuditStatus.ALLOWED
        result.rows = rows
        result.rows_returned = len(rows)
        result.execution_time_ms = _elapsed_ms(start_time)
        self._audit(
            request,
            result,
            reason=_blocked_reason(len(result.blocked_columns)) if result.blocked_columns else None,
        )
        return result

    async def _execute(self, data_source: DataSource, statement: str) -> list[dict]:
        with tracer.start_as_current_span("sql_guard.execute") as span:
            span.set_attribute("db.system", data_source.kind)
            try:
                return await asyncio.wait_for(
                    data_source.execute(statement), timeout=self.execution_timeout
                )
            except asyncio.TimeoutError as e:
                raise ExecutionTimeout(self.execution_timeout, statement=statement) from e
            except SqlGuardError:
                raise
            except Exception as e:
                raise ExecutionFailure(str(e), statement=statement) from e

    def _audit(self, request: PipelineRequest, result: PipelineResult, reason: str | None = None) -> None:
        self.audit_trail.record(
            AuditEntry(
                user_id=request.user_id,
                user_email=request.user_email,
                database=request.database,
                db_type=request.db_type,
                natural_language_query=request.natural_language_query,
                generated_sql=result.original_statement,
                executed_sql=result.executed_statement,
                status=result.status,
                blocked_columns=tuple(result.blocked_columns),
                warnings=tuple(result.warnings),
                reason=reason,
                execution_time_ms=result.execution_time_ms,
                rows_returned=result.rows_returned if result.success else None,
                error=result.error,
            )
        )
        logger.info(
            "pipeline_completed",
            status=result.status.value,
            error_kind=result.error_kind,
            blocked_columns=len(result.blocked_columns),
            rows_returned=result.rows_returned,
            execution_time_ms=round(result.execution_time_ms, 2),
        )


def _elapsed_ms(start_time: float) -> float:
    return (time.perf_counter() - start_time) * 1000


def _blocked_reason(count: int) -> str:
    return f"Query blocked due to {count} sensitive column(s)"
