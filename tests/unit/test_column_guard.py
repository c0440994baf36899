"""
Unit Tests for ColumnSecuritySanitizer
======================================

Column extraction, classification and projection rewriting.
"""

import pytest

from sql_guard.catalog import SensitiveColumnCatalog
from sql_guard.guards.columns import (
    TABLE_NOT_FOUND_MESSAGE,
    ColumnSecuritySanitizer,
    column_reference,
    split_projection,
)


class TestColumnReference:
    """Projection items reduce to the column they read."""

    @pytest.mark.parametrize(
        "item, expected",
        [
            ("email", "email"),
            ("u.email AS contact", "email"),
            ("`users`.`password`", "password"),
            ('"ssn"', "ssn"),
            ("LOWER(email) email_lower", "email"),
            ("MAX(DISTINCT amount)", "amount"),
            ("DISTINCT name", "name"),
            ("*", "*"),
            ("t.*", "*"),
            ("ALL password", "password"),
            ("TOP 5 password", "password"),
            ("TOP (10) PERCENT u.email", "email"),
            ("SQL_NO_CACHE ssn", "ssn"),
        ],
    )
    def test_reference(self, item: str, expected: str) -> None:
        assert column_reference(item) == expected

    @pytest.mark.parametrize("item", ["COUNT(*)", "1", "COUNT()", "count( * ) AS n"])
    def test_items_reading_no_column(self, item: str) -> None:
        """Test that row-level aggregates and literals are ignored."""
        assert column_reference(item) is None

    def test_split_respects_parens_and_quotes(self) -> None:
        items = split_projection("a, COUNT(b, c), 'x,y', d")
        assert items == ["a", "COUNT(b, c)", "'x,y'", "d"]


class TestExtraction:
    """Column and table extraction."""

    def test_extract_columns_in_order(self, sanitizer: ColumnSecuritySanitizer) -> None:
        columns = sanitizer.extract_columns("SELECT id, password, email FROM users")
        assert columns == ["id", "password", "email"]

    def test_extract_columns_without_projection(self, sanitizer: ColumnSecuritySanitizer) -> None:
        assert sanitizer.extract_columns("SHOW TABLES") == []

    @pytest.mark.parametrize(
        "sql, table",
        [
            ("SELECT * FROM users", "users"),
            ("SELECT * FROM `users` WHERE id = 1", "users"),
            ("SELECT * FROM app.users", "users"),
            ("select id from Orders o join users u on o.user_id = u.id", "Orders"),
        ],
    )
    def test_extract_table_name(self, sanitizer: ColumnSecuritySanitizer, sql: str, table: str) -> None:
        assert sanitizer.extract_table_name(sql) == table

    def test_extract_table_name_missing(self, sanitizer: ColumnSecuritySanitizer) -> None:
        assert sanitizer.extract_table_name("DESCRIBE users") is None


class TestSanitize:
    """Sensitive columns are removed or substituted."""

    def test_partial_projection_is_rewritten(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        """Test that only the sensitive column is dropped."""
        outcome = sanitizer.sanitize("SELECT id, password, email FROM users", sample_schema)
        assert [b.column for b in outcome.blocked_columns] == ["password"]
        assert outcome.sanitized_statement == "SELECT `id`, `email` FROM users"
        assert outcome.rewritten is True

    def test_blocked_column_details(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        outcome = sanitizer.sanitize("SELECT id, password FROM users", sample_schema)
        blocked = outcome.blocked_columns[0]
        assert blocked.category == "sensitive"
        assert blocked.reason == "Access to 'password' is blocked."

    def test_fully_blocked_projection_uses_safe_alternative(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        """Test that a projection with nothing left gets the aggregate."""
        outcome = sanitizer.sanitize("SELECT password FROM users", sample_schema)
        assert outcome.sanitized_statement == "SELECT COUNT(*) as users_with_password FROM users"

    def test_fully_blocked_without_known_alternative(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        """Test that the generic aggregate is used when none is mapped."""
        outcome = sanitizer.sanitize("SELECT user_password_hash FROM users", sample_schema)
        assert outcome.sanitized_statement == "SELECT COUNT(*) AS record_count FROM users"

    def test_wildcard_is_expanded_from_schema(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        """Test that * expands to the declared columns before filtering."""
        outcome = sanitizer.sanitize("SELECT * FROM accounts", sample_schema)
        assert [b.column for b in outcome.blocked_columns] == ["ssn"]
        assert outcome.sanitized_statement == "SELECT `id`, `balance` FROM accounts"

    def test_wildcard_on_unknown_table_is_untouched(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        sql = "SELECT * FROM ghosts"
        outcome = sanitizer.sanitize(sql, sample_schema)
        assert outcome.sanitized_statement == sql
        assert outcome.blocked_columns == []

    def test_clean_statement_is_returned_unchanged(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        """Test that a statement with no sensitive columns is echoed byte for byte."""
        sql = "SELECT id,   email FROM users WHERE id > 10 ORDER BY email"
        outcome = sanitizer.sanitize(sql, sample_schema)
        assert outcome.sanitized_statement == sql
        assert outcome.blocked_columns == []
        assert outcome.warnings == []
        assert outcome.rewritten is False

    def test_sanitize_is_idempotent(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        """Test that sanitizing a sanitized statement changes nothing."""
        first = sanitizer.sanitize("SELECT id, password, email FROM users", sample_schema)
        second = sanitizer.sanitize(first.sanitized_statement, sample_schema)
        assert second.sanitized_statement == first.sanitized_statement
        assert second.blocked_columns == []

    def test_aggregate_over_rows_is_not_a_wildcard(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        sql = "SELECT COUNT(*) FROM accounts"
        assert sanitizer.sanitize(sql, sample_schema).sanitized_statement == sql

    def test_function_over_sensitive_column_is_blocked(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        outcome = sanitizer.sanitize("SELECT MAX(password) FROM users", sample_schema)
        assert [b.column for b in outcome.blocked_columns] == ["password"]

    def test_qualified_and_aliased_columns(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        outcome = sanitizer.sanitize("SELECT u.id, u.password AS pw FROM users u", sample_schema)
        assert outcome.sanitized_statement == "SELECT `id` FROM users u"

    def test_distinct_is_kept(self, sanitizer: ColumnSecuritySanitizer, sample_schema: str) -> None:
        outcome = sanitizer.sanitize("SELECT DISTINCT email, ssn FROM accounts", sample_schema)
        assert outcome.sanitized_statement == "SELECT DISTINCT `email` FROM accounts"

    @pytest.mark.parametrize(
        "sql, expected",
        [
            ("SELECT ALL password FROM users", "SELECT COUNT(*) as users_with_password FROM users"),
            ("SELECT TOP 5 password FROM users", "SELECT COUNT(*) as users_with_password FROM users"),
            ("SELECT TOP 5 id, password FROM users", "SELECT TOP 5 `id` FROM users"),
        ],
    )
    def test_set_quantifier_does_not_hide_column(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str, sql: str, expected: str
    ) -> None:
        """Test that ALL and TOP n in front of a column are not mistaken for it."""
        outcome = sanitizer.sanitize(sql, sample_schema)
        assert [b.column for b in outcome.blocked_columns] == ["password"]
        assert outcome.sanitized_statement == expected

    def test_sensitive_name_anywhere_in_item_is_blocked(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        outcome = sanitizer.sanitize("SELECT id, username AS password_hint FROM users", sample_schema)
        assert [b.column for b in outcome.blocked_columns] == ["username"]
        assert outcome.sanitized_statement == "SELECT `id` FROM users"

    def test_multiline_projection(self, sanitizer: ColumnSecuritySanitizer, sample_schema: str) -> None:
        """Test that line breaks inside the projection do not hide columns."""
        outcome = sanitizer.sanitize("SELECT id,\n  password\nFROM users", sample_schema)
        assert outcome.sanitized_statement == "SELECT `id` FROM users"

    def test_rest_of_statement_is_preserved(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        outcome = sanitizer.sanitize(
            "SELECT id, card_number FROM orders WHERE amount > 10 LIMIT 5", sample_schema
        )
        assert outcome.sanitized_statement == "SELECT `id` FROM orders WHERE amount > 10 LIMIT 5"

    def test_blocked_order_follows_projection(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        outcome = sanitizer.sanitize("SELECT api_key, id, ssn FROM accounts", sample_schema)
        assert [b.column for b in outcome.blocked_columns] == ["api_key", "ssn"]

    def test_missing_table_fails_open_with_warning(
        self, sanitizer: ColumnSecuritySanitizer, sample_schema: str
    ) -> None:
        """Test that an unresolvable table leaves the statement alone and warns."""
        sql = "SHOW TABLES"
        outcome = sanitizer.sanitize(sql, sample_schema)
        assert outcome.sanitized_statement == sql
        assert outcome.blocked_columns == []
        assert len(outcome.warnings) == 1
        assert outcome.warnings[0].message == TABLE_NOT_FOUND_MESSAGE
        assert outcome.warnings[0].code == "sanitization_degraded"


class TestCustomCatalog:
    """Catalog is injected, not global."""

    def test_alternate_catalog(self) -> None:
        catalog = SensitiveColumnCatalog(categories={"hr": ("salary",)})
        sanitizer = ColumnSecuritySanitizer(catalog=catalog)
        outcome = sanitizer.sanitize("SELECT name, salary, password FROM staff", "")
        assert [b.column for b in outcome.blocked_columns] == ["salary"]
        assert outcome.sanitized_statement == "SELECT `name`, `password` FROM staff"


class TestReporting:
    """Alternatives and security reports."""

    def test_suggest_alternatives(self, sanitizer: ColumnSecuritySanitizer, sample_schema: str) -> None:
        outcome = sanitizer.sanitize("SELECT password, refresh_token, id FROM users", sample_schema)
        suggestions = sanitizer.suggest_alternatives(outcome.blocked_columns)
        assert suggestions[0]["original"] == "password"
        assert suggestions[0]["safe"] == "COUNT(*) as users_with_password"
        assert suggestions[1]["safe"] == "COUNT(*) as refresh_token_records"

    def test_security_report(self, sanitizer: ColumnSecuritySanitizer, sample_schema: str) -> None:
        sql = "SELECT id, password FROM users"
        outcome = sanitizer.sanitize(sql, sample_schema)
        report = sanitizer.security_report(sql, outcome)
        assert report["allowed"] is False
        assert report["reason"] == "Query blocked due to 1 sensitive column(s)"
        assert report["query"] == sql
        assert report["sanitized_query"] == "SELECT `id` FROM users"
        assert report["blocked_columns"][0]["column"] == "password"
