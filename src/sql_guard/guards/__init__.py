"""
Guards Module
=============

Statement-level validation and column-level sanitization.
"""

from sql_guard.guards.columns import ColumnSecuritySanitizer
from sql_guard.guards.statement import StatementSafetyValidator

__all__ = [
    "StatementSafetyValidator",
    "ColumnSecuritySanitizer",
]
