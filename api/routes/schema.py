"""
Schema Routes
=============

Describes the configured data source.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies import get_data_source
from api.schemas import ColumnResponse, SchemaResponse, TableResponse
from sql_guard.datasources.base import DataSource
from sql_guard.schema import parse_schema

router = APIRouter(prefix="/api/v1", tags=["Schema"])


@router.get(
    "/schema",
    response_model=SchemaResponse,
    summary="Database schema",
    description="Parsed and raw schema of the database queries run against",
)
async def describe_schema(
    data_source: Annotated[DataSource, Depends(get_data_source)],
) -> SchemaResponse:
    raw = await data_source.describe_schema()

    return SchemaResponse(
        database=data_source.name,
        db_type=data_source.kind,
        raw=raw,
        tables=[
            TableResponse(
                name=table.name,
                columns=[
                    ColumnResponse(name=c.name, type=c.type, attributes=c.attributes)
                    for c in table.columns
                ],
            )
            for table in parse_schema(raw)
        ],
    )
