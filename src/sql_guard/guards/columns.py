"""
Column Security Sanitizer
=========================

Removes sensitive columns from the projection of an already validated
statement, or replaces the projection with a safe aggregate when nothing
else is left.

This is a narrow pattern-matching layer, not a SQL parser. Known limits:
only the first ``SELECT ... FROM`` span is inspected and rewritten, columns
referenced outside the projection (WHERE, ORDER BY, subqueries) are not
tracked, and only the first table after ``FROM`` is used to expand ``*``.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from sql_guard.catalog import DEFAULT_CATALOG, GENERIC_SAFE_ALTERNATIVE, SensitiveColumnCatalog
from sql_guard.errors import ErrorCode
from sql_guard.models import BlockedColumn, QueryWarning, SanitizationOutcome
from sql_guard.schema import SchemaColumnResolver

logger = structlog.get_logger(__name__)

WILDCARD = "*"

BLOCKED_CATEGORY = "sensitive"

TABLE_NOT_FOUND_MESSAGE = "Could not determine table name to sanitize columns."

# First SELECT ... FROM span; extraction and rewrite share it
_PROJECTION_RE = re.compile(r"\bSELECT\s+(.*?)\s+FROM\b", re.IGNORECASE | re.DOTALL)

_TABLE_RE = re.compile(
    r"\bFROM\s+(?:[`\"\[]?\w+[`\"\]]?\.)?([`\"\[]?)(\w+)[`\"\]]?",
    re.IGNORECASE,
)

# Set quantifiers and row modifiers that may lead a projection
_QUANTIFIER_PREFIX_RE = re.compile(
    r"^(?:(?:DISTINCT(?:ROW)?|ALL|TOP\s*\(?\s*\d+\s*\)?(?:\s+PERCENT)?(?:\s+WITH\s+TIES)?"
    r"|HIGH_PRIORITY|STRAIGHT_JOIN|SQL_CALC_FOUND_ROWS|SQL_NO_CACHE|SQL_CACHE"
    r"|SQL_SMALL_RESULT|SQL_BIG_RESULT|SQL_BUFFER_RESULT)\s+)+",
    re.IGNORECASE,
)
_AS_ALIAS_RE = re.compile(r"\s+AS\s+[`\"\[]?\w+[`\"\]]?$", re.IGNORECASE)
_BARE_ALIAS_RE = re.compile(r"^(.*[\w`\"\]\)])\s+[`\"\[]?\w+[`\"\]]?$", re.DOTALL)
_FUNCTION_RE = re.compile(r"^\w+\s*\((.*)\)$", re.DOTALL)
_QUALIFIER_RE = re.compile(r"^(?:[`\"\[]?\w+[`\"\]]?\.)+")
_QUOTES_RE = re.compile(r"[`\"'\[\]]")

_NOISE = {"1", "DISTINCT"}


def split_projection(projection: str) -> list[str]:
    """Split a projection list on commas that are not nested or quoted."""
    items: list[str] = []
    current: list[str] = []
    depth = 0
    quote: Optional[str] = None

    for char in projection:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in ("'", '"', "`"):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif char == "," and depth == 0:
            items.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    items.append("".join(current).strip())
    return [item for item in items if item]


def column_reference(item: str) -> Optional[str]:
    """
    Reduce one projection item to the bare column it reads.

    Returns ``"*"`` for a wildcard and ``None`` for items that read no
    column (``1``, ``DISTINCT``, ``COUNT(*)``). Leading quantifiers such as
    ``ALL`` or ``TOP 5`` are dropped before any alias is considered.
    """
    ref = _QUANTIFIER_PREFIX_RE.sub("", item.strip())
    ref = _AS_ALIAS_RE.sub("", ref)

    bare_alias = _BARE_ALIAS_RE.match(ref)
    if bare_alias:
        ref = bare_alias.group(1).strip()

    function = _FUNCTION_RE.match(ref)
    while function:
        inner = _QUANTIFIER_PREFIX_RE.sub("", function.group(1).strip())
        if inner == WILDCARD or not inner:
            # aggregate over whole rows, no column value is exposed
            return None
        ref = inner
        function = _FUNCTION_RE.match(ref)

    ref = _QUALIFIER_RE.sub("", ref)
    ref = _QUOTES_RE.sub("", ref).strip()

    if not ref or ref.upper() in _NOISE:
        return None
    return ref


class ColumnSecuritySanitizer:
    """
    Rewrites a validated statement so that no sensitive column is selected.

    The catalog and schema resolver are injected so that alternate catalogs
    can be used in tests and per deployment.
    """

    def __init__(
        self,
        catalog: SensitiveColumnCatalog = DEFAULT_CATALOG,
        resolver: Optional[SchemaColumnResolver] = None,
    ) -> None:
        self.catalog = catalog
        self.resolver = resolver or SchemaColumnResolver()

    def is_sensitive(self, column: str) -> bool:
        return self.catalog.is_sensitive(column)

    def extract_columns(self, statement: str) -> list[str]:
        """Column references of the first projection, in order; ``*`` kept as is."""
        return [ref for ref, _ in self._projection_items(statement)]

    def _projection_items(self, statement: str) -> list[tuple[str, str]]:
        match = _PROJECTION_RE.search(statement)
        if not match:
            return []

        items = []
        for item in split_projection(match.group(1)):
            ref = column_reference(item)
            if ref is not None:
                items.append((ref, item))
        return items

    def extract_table_name(self, statement: str) -> Optional[str]:
        """First table named after ``FROM``, without quoting or schema prefix."""
        match = _TABLE_RE.search(statement)
        return match.group(2) if match else None

    def sanitize(self, statement: str, schema_text: str) -> SanitizationOutcome:
        """
        Remove or substitute sensitive columns in ``statement``.

        Args:
            statement: A statement that already passed the statement validator
            schema_text: Schema description used to expand ``*``

        Returns:
            SanitizationOutcome; when nothing is blocked the statement is
            returned unchanged
        """
        warnings: list[QueryWarning] = []
        requested = self._projection_items(statement)
        table_name = self.extract_table_name(statement)

        if not table_name:
            # Fail open: the statement already passed validation
            warnings.append(
                QueryWarning(
                    message=TABLE_NOT_FOUND_MESSAGE,
                    code=ErrorCode.SANITIZATION_DEGRADED.value,
                )
            )
            logger.warning("sanitization_degraded", reason="table_not_found")
            return SanitizationOutcome(sanitized_statement=statement, warnings=warnings)

        if any(column == WILDCARD for column, _ in requested):
            schema_columns = self.resolver.columns_for_table(schema_text, table_name)
            expanded: list[tuple[str, str]] = []
            for column, item in requested:
                if column == WILDCARD:
                    expanded.extend((c, c) for c in schema_columns)
                else:
                    expanded.append((column, item))
            requested = expanded

        blocked: list[BlockedColumn] = []
        allowed: list[str] = []
        for column, item in requested:
            # the raw item catches references the reduction may have dropped
            if self.catalog.is_sensitive(column) or self.catalog.is_sensitive(item):
                blocked.append(
                    BlockedColumn(
                        column=column,
                        category=BLOCKED_CATEGORY,
                        reason=f"Access to '{column}' is blocked.",
                    )
                )
            else:
                allowed.append(column)

        if not blocked:
            return SanitizationOutcome(sanitized_statement=statement, warnings=warnings)

        if not allowed:
            first = blocked[0].column
            alternative = self.catalog.safe_alternative_for(first) or GENERIC_SAFE_ALTERNATIVE
            sanitized = self._replace_projection(statement, alternative)
        else:
            projection = self._quantifier_prefix(statement) + ", ".join(
                f"`{column}`" for column in allowed
            )
            sanitized = self._replace_projection(statement, projection)

        logger.info(
            "columns_blocked",
            table=table_name,
            blocked=[b.column for b in blocked],
            substituted=not allowed,
        )
        return SanitizationOutcome(
            sanitized_statement=sanitized,
            blocked_columns=blocked,
            warnings=warnings,
        )

    def suggest_alternatives(self, blocked_columns: list[BlockedColumn]) -> list[dict[str, str]]:
        """Offer an aggregate in place of each blocked column."""
        alternatives = []
        for blocked in blocked_columns:
            safe = self.catalog.safe_alternative_for(blocked.column)
            if safe:
                explanation = f"Instead of selecting {blocked.column} directly, use: {safe}"
            else:
                safe = f"COUNT(*) as {blocked.column}_records"
                explanation = (
                    f"Use aggregate function instead of accessing {blocked.column} directly"
                )
            alternatives.append(
                {"original": blocked.column, "safe": safe, "explanation": explanation}
            )
        return alternatives

    def security_report(self, statement: str, outcome: SanitizationOutcome) -> dict[str, Any]:
        """Summarize a sanitization decision for reporting."""
        allowed = not outcome.blocked_columns
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "catalog_version": self.catalog.version,
            "query": statement,
            "sanitized_query": outcome.sanitized_statement,
            "allowed": allowed,
            "blocked_columns": [b.to_dict() for b in outcome.blocked_columns],
            "warnings": [w.to_dict() for w in outcome.warnings],
            "reason": (
                "Query approved"
                if allowed
                else f"Query blocked due to {len(outcome.blocked_columns)} sensitive column(s)"
            ),
        }

    @staticmethod
    def _quantifier_prefix(statement: str) -> str:
        match = _PROJECTION_RE.search(statement)
        prefix = match and _QUANTIFIER_PREFIX_RE.match(match.group(1))
        return " ".join(prefix.group(0).split()) + " " if prefix else ""

    @staticmethod
    def _replace_projection(statement: str, projection: str) -> str:
        return _PROJECTION_RE.sub(lambda _: f"SELECT {projection} FROM", statement, count=1)
