"""
Statement Safety Validator
==========================

Rejects statements that could mutate data, change schema or permissions,
run server-side commands, or smuggle a second statement.
"""

import re
from typing import Pattern, Sequence

import structlog

from sql_guard.models import ValidationOutcome

logger = structlog.get_logger(__name__)

# (pattern, description); evaluated in order against the raw statement
DANGEROUS_PATTERNS: tuple[tuple[Pattern[str], str], ...] = (
    (
        re.compile(r"\bDROP\s+(?:TABLE|DATABASE|SCHEMA|INDEX|VIEW)\b", re.IGNORECASE),
        "DROP operation",
    ),
    (re.compile(r"\bTRUNCATE\s+TABLE\b", re.IGNORECASE), "TRUNCATE operation"),
    (re.compile(r"\bALTER\s+TABLE\b", re.IGNORECASE), "ALTER operation"),
    (
        re.compile(r"\bCREATE\s+(?:TABLE|DATABASE|SCHEMA|INDEX|VIEW)\b", re.IGNORECASE),
        "CREATE operation",
    ),
    (re.compile(r"\bGRANT\s+", re.IGNORECASE), "GRANT statement"),
    (re.compile(r"\bREVOKE\s+", re.IGNORECASE), "REVOKE statement"),
    (re.compile(r"\bEXEC(?:UTE)?(?:\s+|\s*\()", re.IGNORECASE), "Dynamic SQL execution"),
    (
        re.compile(r"\bUNION\s+.*SELECT", re.IGNORECASE | re.DOTALL),
        "UNION SELECT (potential injection)",
    ),
    (re.compile(r";\s*DROP", re.IGNORECASE), "Stacked DROP (potential injection)"),
    (re.compile(r";\s*DELETE", re.IGNORECASE), "Stacked DELETE (potential injection)"),
    (re.compile(r"--"), "SQL line comment (potential injection)"),
    (re.compile(r"/\*"), "SQL block comment (potential injection)"),
    (re.compile(r"xp_cmdshell", re.IGNORECASE), "SQL Server command execution"),
    (re.compile(r"sp_executesql", re.IGNORECASE), "Dynamic SQL procedure"),
)

ALLOWED_STATEMENT_KINDS: tuple[str, ...] = ("SELECT", "SHOW", "DESCRIBE", "DESC", "EXPLAIN")

STATEMENT_SEPARATOR = ";"


class StatementSafetyValidator:
    """
    Classifies a raw SQL string as safe to execute or rejected.

    Checks run in a fixed order and the first violation is reported:

    1. Denylist patterns (matched against the raw text, so comment-based
       injection is caught)
    2. Leading keyword must be one of the read-only statement kinds
    3. No statement separators at all
    """

    def __init__(
        self,
        dangerous_patterns: Sequence[tuple[Pattern[str], str]] = DANGEROUS_PATTERNS,
        allowed_kinds: Sequence[str] = ALLOWED_STATEMENT_KINDS,
    ) -> None:
        self.dangerous_patterns = tuple(dangerous_patterns)
        self.allowed_kinds = tuple(kind.upper() for kind in allowed_kinds)
        self._allowed_re = re.compile(
            r"^(?:" + "|".join(re.escape(kind) for kind in self.allowed_kinds) + r")\s+"
        )

    @property
    def name(self) -> str:
        return "StatementSafetyValidator"

    def validate(self, statement: str) -> ValidationOutcome:
        """
        Validate a single candidate statement.

        Args:
            statement: SQL text as produced by the translation step

        Returns:
            ValidationOutcome; ``reason`` and ``matched_pattern`` are set
            when the statement is rejected
        """
        statement = statement or ""

        for pattern, description in self.dangerous_patterns:
            if pattern.search(statement):
                outcome = ValidationOutcome(
                    safe=False,
                    reason=(
                        f"Dangerous SQL pattern detected: {description} "
                        f"(/{pattern.pattern}/). Only read-only queries are allowed."
                    ),
                    matched_pattern=pattern.pattern,
                )
                logger.info("statement_rejected", rule="denylist", pattern=pattern.pattern)
                return outcome

        normalized = statement.strip().upper()
        if not self._allowed_re.match(normalized):
            logger.info("statement_rejected", rule="allow_set")
            return ValidationOutcome(safe=False, reason=self._allow_set_reason())

        if statement.count(STATEMENT_SEPARATOR) > 0:
            logger.info("statement_rejected", rule="single_statement")
            return ValidationOutcome(
                safe=False,
                reason="Multiple SQL statements are not allowed.",
                matched_pattern=STATEMENT_SEPARATOR,
            )

        return ValidationOutcome(safe=True)

    def _allow_set_reason(self) -> str:
        kinds = self.allowed_kinds
        listed = kinds[0] if len(kinds) == 1 else f"{', '.join(kinds[:-1])} and {kinds[-1]}"
        return f"Only {listed} queries are allowed."
