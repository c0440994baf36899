"""
SQL Guard
=========

Safety pipeline for machine-generated SQL: statement validation,
sensitive column sanitization, bounded execution and a durable audit trail.
"""

from sql_guard.models import (
    AuditEntry,
    AuditStatus,
    BlockedColumn,
    LLMResponse,
    PipelineRequest,
    PipelineResult,
    QueryWarning,
    SanitizationOutcome,
    SecurityViolationEntry,
    ValidationOutcome,
)
from sql_guard.errors import (
    AuditWriteFailure,
    ErrorCode,
    ExecutionCancelled,
    ExecutionFailure,
    ExecutionTimeout,
    RejectedStatement,
    SqlGuardError,
    TranslationError,
)
from sql_guard.catalog import DEFAULT_CATALOG, SensitiveColumnCatalog, load_catalog
from sql_guard.schema import SchemaColumnResolver, parse_schema
from sql_guard.guards import ColumnSecuritySanitizer, StatementSafetyValidator
from sql_guard.audit import AuditTrail
from sql_guard.pipeline import SafetyPipeline
from sql_guard.translator import SQLTranslator
from sql_guard.service import QueryService
from sql_guard.llm import LLMInterface, MockLLM

__version__ = "0.1.0"

__all__ = [
    # Models
    "AuditEntry",
    "AuditStatus",
    "BlockedColumn",
    "LLMResponse",
    "PipelineRequest",
    "PipelineResult",
    "QueryWarning",
    "SanitizationOutcome",
    "SecurityViolationEntry",
    "ValidationOutcome",
    # Errors
    "AuditWriteFailure",
    "ErrorCode",
    "ExecutionCancelled",
    "ExecutionFailure",
    "ExecutionTimeout",
    "RejectedStatement",
    "SqlGuardError",
    "TranslationError",
    # Catalog and schema
    "DEFAULT_CATALOG",
    "SensitiveColumnCatalog",
    "load_catalog",
    "SchemaColumnResolver",
    "parse_schema",
    # Pipeline
    "StatementSafetyValidator",
    "ColumnSecuritySanitizer",
    "AuditTrail",
    "SafetyPipeline",
    "SQLTranslator",
    "QueryService",
    # LLM
    "LLMInterface",
    "MockLLM",
]
