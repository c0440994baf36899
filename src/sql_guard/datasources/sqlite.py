"""
SQLite Data Source
==================

Local SQLite database opened read-only.
"""

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Any

from sql_guard.datasources.base import DataSource

# VM instructions between cancellation checks
PROGRESS_INTERVAL = 1000


class SQLiteDataSource(DataSource):
    """
    SQLite file queried through a read-only connection.

    Queries run in a worker thread. When the awaiting coroutine is cancelled
    (for instance by the pipeline deadline) the statement is aborted at the
    next progress check instead of running to completion.
    """

    kind = "sqlite"

    def __init__(self, path: str | Path, name: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(name or self.path.stem)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(f"file:{self.path}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        return conn

    def _describe(self) -> str:
        conn = self._connect()
        try:
            tables = [
                row["name"]
                for row in conn.execute(
                    "SELECT name FROM sqlite_master "
                    "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
                )
            ]
            schema = f"Database: {self.name}\n\nTables:\n"
            for table in tables:
                quoted = table.replace('"', '""')
                schema += f"\nTable: {table}\n"
                for col in conn.execute(f'PRAGMA table_info("{quoted}")'):
                    attributes = []
                    if col["pk"]:
                        attributes.append("PRIMARY KEY")
                    if col["notnull"]:
                        attributes.append("NOT NULL")
                    col_type = col["type"] or "TEXT"
                    schema += f"  - {col['name']} ({col_type}) {', '.join(attributes)}\n"
            return schema
        finally:
            conn.close()

    def _execute(self, statement: str, cancelled: threading.Event) -> list[dict[str, Any]]:
        conn = self._connect()
        # a non-zero return aborts the running statement
        conn.set_progress_handler(lambda: int(cancelled.is_set()), PROGRESS_INTERVAL)
        try:
            return [dict(row) for row in conn.execute(statement).fetchall()]
        finally:
            conn.close()

    async def describe_schema(self) -> str:
        return await asyncio.to_thread(self._describe)

    async def execute(self, statement: str) -> list[dict[str, Any]]:
        cancelled = threading.Event()
        try:
            return await asyncio.to_thread(self._execute, statement, cancelled)
        except asyncio.CancelledError:
            cancelled.set()
            raise
