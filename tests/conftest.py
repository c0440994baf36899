"""
Pytest Fixtures
===============

Shared fixtures for SQL Guard tests.
"""

import pytest

from sql_guard.audit import AuditTrail
from sql_guard.catalog import DEFAULT_CATALOG, SensitiveColumnCatalog
from sql_guard.datasources.memory import InMemoryDataSource
from sql_guard.guards.columns import ColumnSecuritySanitizer
from sql_guard.guards.statement import StatementSafetyValidator
from sql_guard.llm.mock import MockLLM
from sql_guard.models import AuditStatus, PipelineRequest
from sql_guard.pipeline import SafetyPipeline
from sql_guard.service import QueryService
from sql_guard.translator import SQLTranslator

SAMPLE_SCHEMA = """Database: shop

Tables:

Table: users
  - id (INTEGER) PRIMARY KEY
  - username (VARCHAR(64)) NOT NULL
  - email (TEXT)
  - password (TEXT)
  - created_at (TIMESTAMP)

Table: accounts
  - id (INTEGER) PRIMARY KEY
  - ssn (TEXT)
  - balance (DECIMAL(10,2))

Table: orders
  - id (INTEGER) PRIMARY KEY
  - user_id (INTEGER)
  - amount (DECIMAL(10,2))
  - card_number (TEXT)
"""


@pytest.fixture
def sample_schema() -> str:
    """Return the sample schema text."""
    return SAMPLE_SCHEMA


@pytest.fixture
def catalog() -> SensitiveColumnCatalog:
    return DEFAULT_CATALOG


@pytest.fixture
def validator() -> StatementSafetyValidator:
    """Create a StatementSafetyValidator with the default rules."""
    return StatementSafetyValidator()


@pytest.fixture
def sanitizer(catalog: SensitiveColumnCatalog) -> ColumnSecuritySanitizer:
    """Create a ColumnSecuritySanitizer over the default catalog."""
    return ColumnSecuritySanitizer(catalog=catalog)


@pytest.fixture
def audit_trail(tmp_path) -> AuditTrail:
    """Create an AuditTrail writing under a temporary directory."""
    return AuditTrail(tmp_path / "logs")


@pytest.fixture
def data_source(sample_schema: str) -> InMemoryDataSource:
    """Create an in-memory data source returning two rows."""
    return InMemoryDataSource(
        schema_text=sample_schema,
        rows=[{"id": 1, "email": "a@example.com"}, {"id": 2, "email": "b@example.com"}],
        name="shop",
        kind="mysql",
    )


@pytest.fixture
def pipeline(audit_trail: AuditTrail) -> SafetyPipeline:
    """Create a pipeline with a short execution deadline."""
    return SafetyPipeline(audit_trail=audit_trail, execution_timeout=0.5)


@pytest.fixture
def mock_llm() -> MockLLM:
    """Create a mock LLM with canned SQL."""
    return MockLLM(
        responses={
            "emails": "SELECT id, email FROM users",
            "passwords": "SELECT password FROM users",
            "drop": "DROP TABLE users",
            "accounts": "```sql\nSELECT * FROM accounts;\n```",
        }
    )


@pytest.fixture
def service(mock_llm: MockLLM, pipeline: SafetyPipeline) -> QueryService:
    """Create a query service over the mock LLM."""
    return QueryService(SQLTranslator(mock_llm), pipeline)


def make_request(statement: str, schema_text: str = SAMPLE_SCHEMA, **kwargs) -> PipelineRequest:
    """Build a pipeline request for user ``u-1`` unless overridden."""
    kwargs.setdefault("user_id", "u-1")
    return PipelineRequest(statement=statement, schema_text=schema_text, **kwargs)


def assert_single_audit(audit_trail: AuditTrail, user_id: str, status: AuditStatus):
    """Helper assertion: exactly one audit entry exists for ``user_id``."""
    entries = audit_trail.query_by_user(user_id)
    assert len(entries) == 1, f"Expected one audit entry, got {len(entries)}"
    assert entries[0].status == status
    return entries[0]
