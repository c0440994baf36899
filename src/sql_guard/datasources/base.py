"""
Base Data Source
================

Abstract interface for the database a vetted statement runs against.
"""

from abc import ABC, abstractmethod
from typing import Any


class DataSource(ABC):
    """A read-only view of one database."""

    #: Backend kind recorded in audit entries (``sqlite``, ``mysql`` ...)
    kind: str = "unknown"

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def describe_schema(self) -> str:
        """
        Describe the database in the schema text format.

        Returns:
            ``Table: <name>`` blocks with ``- <column> (<type>) [attrs]`` lines
        """
        pass

    @abstractmethod
    async def execute(self, statement: str) -> list[dict[str, Any]]:
        """
        Run a statement that has already passed the safety pipeline.

        Returns:
            Result rows as column -> value mappings
        """
        pass
