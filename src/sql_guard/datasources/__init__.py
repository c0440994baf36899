"""
Data Sources
============

Adapters for the databases that vetted statements run against.
"""

from sql_guard.datasources.base import DataSource
from sql_guard.datasources.memory import InMemoryDataSource
from sql_guard.datasources.sqlite import SQLiteDataSource

__all__ = [
    "DataSource",
    "InMemoryDataSource",
    "SQLiteDataSource",
]
