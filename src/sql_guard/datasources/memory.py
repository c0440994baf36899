"""
In-Memory Data Source
=====================

Canned schema and rows, for tests and demos.
"""

import asyncio
from typing import Any

from sql_guard.datasources.base import DataSource


class InMemoryDataSource(DataSource):
    """
    Serves a fixed schema text and fixed result rows.

    Every executed statement is recorded, so callers can check exactly what
    reached the "database".
    """

    def __init__(
        self,
        schema_text: str,
        rows: list[dict[str, Any]] | None = None,
        name: str = "memory",
        kind: str = "memory",
        delay_seconds: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        """
        Args:
            schema_text: Returned by :meth:`describe_schema`
            rows: Returned by every :meth:`execute` call
            name: Database name
            kind: Backend kind reported in audit entries
            delay_seconds: Simulated query latency
            error: Raised from :meth:`execute` to simulate backend failures
        """
        super().__init__(name)
        self.kind = kind
        self.schema_text = schema_text
        self.rows = rows or []
        self.delay_seconds = delay_seconds
        self.error = error
        self.executed: list[str] = []

    async def describe_schema(self) -> str:
        return self.schema_text

    async def execute(self, statement: str) -> list[dict[str, Any]]:
        self.executed.append(statement)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.rows]
