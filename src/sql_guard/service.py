"""
Query Service
=============

Natural-language entry point: describe the database, draft SQL with the
translator, then hand the draft to the safety pipeline.
"""

import structlog

from sql_guard.datasources.base import DataSource
from sql_guard.errors import ExecutionFailure, SqlGuardError, TranslationError
from sql_guard.models import AuditEntry, AuditStatus, PipelineRequest, PipelineResult
from sql_guard.pipeline import SafetyPipeline
from sql_guard.translator import SQLTranslator

logger = structlog.get_logger(__name__)


class QueryService:
    """Answers questions against one data source through the safety pipeline."""

    def __init__(self, translator: SQLTranslator, pipeline: SafetyPipeline) -> None:
        self.translator = translator
        self.pipeline = pipeline

    async def ask(
        self,
        question: str,
        data_source: DataSource,
        user_id: str,
        user_email: str | None = None,
    ) -> PipelineResult:
        """
        Translate ``question`` and run the draft through the pipeline.

        A failure to describe the database or to translate is audited as
        ``error`` and reported in the result; nothing is executed in that
        case.
        """
        try:
            schema_text = await data_source.describe_schema()
        except Exception as e:
            logger.warning("schema_introspection_failed", error=str(e))
            return self._fail(ExecutionFailure(str(e)), question, data_source, user_id, user_email)

        try:
            statement = self.translator.translate(question, schema_text, data_source.kind)
        except TranslationError as e:
            logger.warning("translation_error", error=e.message)
            return self._fail(e, question, data_source, user_id, user_email)

        request = PipelineRequest(
            statement=statement,
            schema_text=schema_text,
            user_id=user_id,
            user_email=user_email,
            database=data_source.name,
            db_type=data_source.kind,
            natural_language_query=question,
        )
        return await self.pipeline.run(request, data_source)

    def _fail(
        self,
        error: SqlGuardError,
        question: str,
        data_source: DataSource,
        user_id: str,
        user_email: str | None,
    ) -> PipelineResult:
        self.pipeline.audit_trail.record(
            AuditEntry(
                user_id=user_id,
                user_email=user_email,
                database=data_source.name,
                db_type=data_source.kind,
                natural_language_query=question,
                status=AuditStatus.ERROR,
                error=error.message,
            )
        )
        return PipelineResult(
            success=False,
            status=AuditStatus.ERROR,
            original_statement="",
            executed_statement=None,
            error=error.message,
            error_kind=error.code.value,
        )
