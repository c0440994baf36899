"""
SQL Translator
==============

Turns a natural-language question into a candidate SQL statement.

The output is only a *candidate*: it still goes through the safety
pipeline before anything touches a database.
"""

import re

import structlog

from sql_guard.catalog import DEFAULT_CATALOG, SensitiveColumnCatalog
from sql_guard.errors import TranslationError
from sql_guard.llm.base import LLMInterface

logger = structlog.get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:sql)?\n?", re.IGNORECASE)
_TRAILING_SEPARATORS_RE = re.compile(r"[;\s]+$")


class SQLTranslator:
    """Builds the generation prompt and cleans up the model's answer."""

    PROMPT_TEMPLATE = """You are an expert SQL query generator. Convert the following natural language query into a valid {dialect} SQL query.

Database Schema:
{schema}

Natural Language Query: {question}

CRITICAL SECURITY INSTRUCTIONS:
**NEVER include these sensitive columns in your query:**
{blocked_columns}

These columns contain sensitive data and must NEVER be selected, filtered, or referenced in any way.

ADDITIONAL INSTRUCTIONS:
1. Exclude Sensitive Data: Do NOT select or reference any of the blocked columns listed above, even if the user explicitly asks for them.
2. Prefix Columns in JOINs: When using a JOIN, ALWAYS prefix column names with the table name to prevent ambiguity.
3. Generate SQL Only: Return ONLY the raw SQL query, no explanations or markdown.
4. Use Correct Syntax: Use proper {dialect} syntax.
5. Limit Results: For SELECT queries, limit results to {row_limit} rows if no limit is specified.
6. Safety First: Only SELECT queries are allowed. Never generate DROP, DELETE, UPDATE, INSERT or similar.

SQL Query:"""

    def __init__(
        self,
        llm: LLMInterface,
        catalog: SensitiveColumnCatalog = DEFAULT_CATALOG,
        row_limit: int = 100,
    ) -> None:
        self.llm = llm
        self.catalog = catalog
        self.row_limit = row_limit

    def build_prompt(self, question: str, schema_text: str, db_type: str) -> str:
        return self.PROMPT_TEMPLATE.format(
            dialect=db_type.upper(),
            schema=schema_text,
            question=question,
            blocked_columns=", ".join(self.catalog.patterns),
            row_limit=self.row_limit,
        )

    def translate(self, question: str, schema_text: str, db_type: str) -> str:
        """
        Draft a SQL statement for ``question``.

        Raises:
            TranslationError: If the model call fails or returns nothing usable
        """
        prompt = self.build_prompt(question, schema_text, db_type)
        try:
            response = self.llm.generate(prompt)
        except Exception as e:
            logger.error("translation_failed", error=str(e))
            raise TranslationError(f"SQL generation failed: {e}") from e

        sql = clean_generated_sql(response.content)
        if not sql:
            raise TranslationError("SQL generation returned an empty statement")

        logger.debug("sql_generated", model=response.model, sql=sql)
        return sql


def clean_generated_sql(text: str) -> str:
    """Strip markdown fences and trailing statement separators."""
    sql = _FENCE_RE.sub("", text.strip()).strip()
    return _TRAILING_SEPARATORS_RE.sub("", sql)
