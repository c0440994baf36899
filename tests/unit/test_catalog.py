"""
Unit Tests for the Sensitive Column Catalog
===========================================
"""

import json

import pytest
from pydantic import ValidationError

from sql_guard.catalog import DEFAULT_CATALOG, SensitiveColumnCatalog, load_catalog


class TestDefaultCatalog:
    """Built-in catalog behavior."""

    @pytest.mark.parametrize(
        "column",
        ["password", "USER_PASSWORD_HASH", "card_number", "ssn", "api_key", "refresh_token", "cvv"],
    )
    def test_sensitive_columns(self, column: str) -> None:
        assert DEFAULT_CATALOG.is_sensitive(column) is True

    @pytest.mark.parametrize("column", ["id", "email", "name", "amount", "created_at"])
    def test_ordinary_columns(self, column: str) -> None:
        assert DEFAULT_CATALOG.is_sensitive(column) is False

    def test_category_of(self) -> None:
        assert DEFAULT_CATALOG.category_of("ssn") == "pii"
        assert DEFAULT_CATALOG.category_of("password_hash") == "credentials"
        assert DEFAULT_CATALOG.category_of("email") is None

    def test_matching_pattern(self) -> None:
        assert DEFAULT_CATALOG.matching_pattern("old_api_key") == "api_key"

    def test_safe_alternative_is_exact_match(self) -> None:
        assert DEFAULT_CATALOG.safe_alternative_for("PASSWORD") == "COUNT(*) as users_with_password"
        assert DEFAULT_CATALOG.safe_alternative_for("user_password") is None

    def test_catalog_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            DEFAULT_CATALOG.categories["extra"] = ("x",)

    def test_patterns_are_unique(self) -> None:
        patterns = DEFAULT_CATALOG.patterns
        assert len(patterns) == len(set(patterns))
        assert "password" in patterns


class TestLoadCatalog:
    """Catalog files."""

    def test_none_returns_default(self) -> None:
        assert load_catalog(None) is DEFAULT_CATALOG

    def test_load_from_file(self, tmp_path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text(
            json.dumps(
                {
                    "version": "test-1",
                    "categories": {"hr": ["Salary", " bonus "]},
                    "safe_alternatives": {"salary": "AVG(salary) as avg_salary"},
                }
            )
        )
        catalog = load_catalog(path)
        assert isinstance(catalog, SensitiveColumnCatalog)
        assert catalog.version == "test-1"
        assert catalog.patterns == ("salary", "bonus")
        assert catalog.is_sensitive("annual_bonus") is True
        assert catalog.safe_alternative_for("salary") == "AVG(salary) as avg_salary"

    def test_blank_pattern_is_rejected(self, tmp_path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"version": "1", "categories": {"hr": ["  "]}}))
        with pytest.raises(ValidationError):
            load_catalog(path)
