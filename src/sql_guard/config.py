"""
Configuration
=============

Process-wide settings, read once from the environment at startup.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "SQL_GUARD_"


class Settings(BaseModel):
    """Runtime configuration for the pipeline and the API."""

    environment: str = Field(default="development")
    audit_dir: str = Field(default="logs", description="Directory for audit partitions")
    audit_window_days: int = Field(default=7, ge=1)
    execution_timeout_seconds: float = Field(default=30.0, gt=0)
    catalog_path: Optional[str] = Field(default=None, description="JSON catalog file")
    sqlite_path: Optional[str] = Field(default=None, description="SQLite database to query")
    database_name: Optional[str] = None
    row_limit: int = Field(default=100, ge=1)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``SQL_GUARD_*`` variables and ``ENVIRONMENT``."""

        def env(name: str) -> Optional[str]:
            value = os.getenv(ENV_PREFIX + name)
            return value if value else None

        values: dict[str, object] = {"environment": os.getenv("ENVIRONMENT", "development")}
        for field_name, var in (
            ("audit_dir", "AUDIT_DIR"),
            ("audit_window_days", "AUDIT_WINDOW_DAYS"),
            ("execution_timeout_seconds", "EXECUTION_TIMEOUT"),
            ("catalog_path", "CATALOG_PATH"),
            ("sqlite_path", "SQLITE_PATH"),
            ("database_name", "DATABASE_NAME"),
            ("row_limit", "ROW_LIMIT"),
        ):
            value = env(var)
            if value is not None:
                values[field_name] = value

        return cls.model_validate(values)
