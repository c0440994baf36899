"""
Sensitive Column Catalog
========================

Read-only catalog of column-name patterns that must never be selected,
plus aggregate expressions that can be offered in their place.

The catalog is built once at process start and passed explicitly to the
components that need it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

CATALOG_VERSION = "2024.1"

GENERIC_SAFE_ALTERNATIVE = "COUNT(*) AS record_count"

_DEFAULT_CATEGORIES: dict[str, tuple[str, ...]] = {
    "credentials": (
        "password",
        "password_hash",
        "hashed_password",
        "pwd",
        "passwd",
        "user_password",
    ),
    "payment": (
        "credit_card",
        "card_number",
        "cvv",
        "card_cvv",
        "expiry",
        "card_expiry",
        "account_number",
        "routing_number",
        "bank_account",
    ),
    "pii": (
        "ssn",
        "social_security",
        "social_security_number",
    ),
    "secrets": (
        "api_key",
        "secret_key",
        "private_key",
        "encryption_key",
    ),
    "tokens": (
        "token",
        "access_token",
        "refresh_token",
        "auth_token",
    ),
}

_DEFAULT_SAFE_ALTERNATIVES: dict[str, str] = {
    "password": "COUNT(*) as users_with_password",
    "password_hash": "COUNT(*) as users_count",
    "hashed_password": "COUNT(*) as users_count",
    "credit_card": "COUNT(DISTINCT LEFT(credit_card, 4)) as card_types_count",
    "card_number": "COUNT(*) as cards_count",
    "cvv": "COUNT(*) as records_with_cvv",
    "ssn": "COUNT(*) as records_with_ssn",
    "social_security": "COUNT(*) as records_with_ssn",
    "api_key": "COUNT(*) as active_api_keys",
    "secret_key": "COUNT(*) as secret_keys_count",
    "token": "COUNT(*) as active_tokens",
}


@dataclass(frozen=True, eq=False)
class SensitiveColumnCatalog:
    """
    Immutable set of case-insensitive substring patterns for sensitive columns.

    A column is sensitive when its lowercase name *contains* any pattern,
    so ``user_password_hash`` is caught by ``password``.
    """

    categories: Mapping[str, tuple[str, ...]]
    safe_alternatives: Mapping[str, str] = field(default_factory=dict)
    version: str = CATALOG_VERSION

    def __post_init__(self) -> None:
        categories = {
            name: tuple(p.lower() for p in patterns)
            for name, patterns in self.categories.items()
        }
        alternatives = {k.lower(): v for k, v in self.safe_alternatives.items()}
        object.__setattr__(self, "categories", MappingProxyType(categories))
        object.__setattr__(self, "safe_alternatives", MappingProxyType(alternatives))

    @property
    def patterns(self) -> tuple[str, ...]:
        """All patterns in declaration order, without duplicates."""
        seen: dict[str, None] = {}
        for patterns in self.categories.values():
            for pattern in patterns:
                seen.setdefault(pattern, None)
        return tuple(seen)

    def matching_pattern(self, column: str) -> Optional[str]:
        """Return the first pattern contained in ``column``, if any."""
        lowered = column.lower()
        for pattern in self.patterns:
            if pattern in lowered:
                return pattern
        return None

    def is_sensitive(self, column: str) -> bool:
        return self.matching_pattern(column) is not None

    def category_of(self, column: str) -> Optional[str]:
        """Return the catalog category of the first matching pattern."""
        lowered = column.lower()
        for category, patterns in self.categories.items():
            if any(pattern in lowered for pattern in patterns):
                return category
        return None

    def safe_alternative_for(self, column: str) -> Optional[str]:
        """Exact (case-insensitive) lookup of a safe aggregate for ``column``."""
        return self.safe_alternatives.get(column.lower())


DEFAULT_CATALOG = SensitiveColumnCatalog(
    categories=_DEFAULT_CATEGORIES,
    safe_alternatives=_DEFAULT_SAFE_ALTERNATIVES,
)


class CatalogFile(BaseModel):
    """On-disk catalog format."""

    version: str = Field(..., min_length=1)
    categories: dict[str, list[str]] = Field(..., min_length=1)
    safe_alternatives: dict[str, str] = Field(default_factory=dict)

    @field_validator("categories")
    @classmethod
    def _patterns_not_blank(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        for category, patterns in value.items():
            if any(not p.strip() for p in patterns):
                raise ValueError(f"Category '{category}' contains a blank pattern")
        return value


def load_catalog(path: Optional[str | Path] = None) -> SensitiveColumnCatalog:
    """
    Load a catalog from a JSON file.

    Args:
        path: Path to a JSON document matching :class:`CatalogFile`.
              ``None`` returns the built-in default catalog.

    Returns:
        SensitiveColumnCatalog ready to be injected into the guards

    Raises:
        pydantic.ValidationError: If the file does not match the format
        OSError: If the file cannot be read
    """
    if path is None:
        return DEFAULT_CATALOG

    document = CatalogFile.model_validate_json(Path(path).read_text(encoding="utf-8"))
    return SensitiveColumnCatalog(
        categories={
            name: tuple(p.strip() for p in patterns)
            for name, patterns in document.categories.items()
        },
        safe_alternatives=document.safe_alternatives,
        version=document.version,
    )
