"""
Schema Column Resolver
======================

Reads the textual schema description handed to the pipeline::

    Table: users
      - id (INTEGER) [PRIMARY KEY]
      - email (TEXT)

    Table: orders
      - id (INTEGER)

Blocks are separated by blank lines. Document stores use ``Collection:``
headers with the same column lines.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator

_HEADER_RE = re.compile(r"^(?:Table|Collection):\s+(.+?)\s*$")
_COLUMN_RE = re.compile(r"^\s*-\s+(\w+)\s+\((.*)\)([^)]*)$")


@dataclass
class ColumnSchema:
    """One column line of a table block."""

    name: str
    type: str
    attributes: str = ""


@dataclass
class TableSchema:
    """One table block."""

    name: str
    columns: list[ColumnSchema] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


def _iter_blocks(schema_text: str) -> Iterator[TableSchema]:
    current: TableSchema | None = None

    for line in schema_text.splitlines():
        header = _HEADER_RE.match(line)
        if header:
            if current is not None:
                yield current
            current = TableSchema(name=header.group(1))
            continue

        if current is None:
            continue

        if not line.strip():
            yield current
            current = None
            continue

        column = _COLUMN_RE.match(line)
        if column:
            current.columns.append(
                ColumnSchema(
                    name=column.group(1),
                    type=column.group(2).strip(),
                    attributes=column.group(3).strip(),
                )
            )

    if current is not None:
        yield current


def parse_schema(schema_text: str) -> list[TableSchema]:
    """Parse every table block of a schema description."""
    return list(_iter_blocks(schema_text or ""))


def columns_for_table(schema_text: str, table_name: str) -> list[str]:
    """
    Return the declared column names of ``table_name``.

    The header must name the table exactly (case-sensitive). An unknown table
    yields an empty list, which callers treat as "no columns known".
    """
    for table in _iter_blocks(schema_text or ""):
        if table.name == table_name:
            return table.column_names
    return []


class SchemaColumnResolver:
    """Resolves table columns from schema text; used to expand ``*``."""

    def columns_for_table(self, schema_text: str, table_name: str) -> list[str]:
        return columns_for_table(schema_text, table_name)

    def tables(self, schema_text: str) -> list[TableSchema]:
        return parse_schema(schema_text)
