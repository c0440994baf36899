"""
Query Routes
============

Natural-language querying and dry-run validation.
"""

import time
from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies import (
    Identity,
    get_data_source,
    get_identity,
    get_pipeline,
    get_request_id,
    get_service,
)
from api.schemas import (
    BlockedColumnResponse,
    ErrorResponse,
    QueryRequest,
    QueryResponse,
    ValidateRequest,
    ValidateResponse,
    WarningResponse,
)
from observability.metrics import track_pipeline_metrics
from sql_guard.datasources.base import DataSource
from sql_guard.pipeline import SafetyPipeline
from sql_guard.service import QueryService

router = APIRouter(prefix="/api/v1", tags=["Query"])


@router.post(
    "/query",
    response_model=QueryResponse,
    responses={
        422: {"description": "Invalid request"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Answer a natural language question",
    description=(
        "Translates the question to SQL, runs it through the safety pipeline "
        "and returns the rows of the vetted statement"
    ),
)
async def process_query(
    request: QueryRequest,
    identity: Annotated[Identity, Depends(get_identity)],
    request_id: Annotated[str, Depends(get_request_id)],
    service: Annotated[QueryService, Depends(get_service)],
    data_source: Annotated[DataSource, Depends(get_data_source)],
) -> QueryResponse:
    """
    Process a natural language question.

    Pipeline outcomes (blocked, timeout, backend failure) are reported in
    the body with ``success=false``; they are not HTTP errors.
    """
    start_time = time.perf_counter()

    result = await service.ask(
        request.query,
        data_source,
        user_id=identity.user_id,
        user_email=identity.user_email,
    )

    processing_time_ms = (time.perf_counter() - start_time) * 1000
    track_pipeline_metrics(
        status=result.status.value,
        duration_seconds=processing_time_ms / 1000,
        error_kind=result.error_kind,
        blocked_categories=[
            service.pipeline.catalog.category_of(b.column) or b.category
            for b in result.blocked_columns
        ],
    )

    return QueryResponse.from_result(
        request.query,
        result,
        request_id=request_id,
        processing_time_ms=processing_time_ms,
    )


@router.post(
    "/validate",
    response_model=ValidateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Statement rejected"},
    },
    summary="Dry-run the safety checks",
    description="Validates and sanitizes a SQL statement without executing or auditing it",
)
async def validate_statement(
    request: ValidateRequest,
    pipeline: Annotated[SafetyPipeline, Depends(get_pipeline)],
    data_source: Annotated[DataSource, Depends(get_data_source)],
) -> ValidateResponse:
    """
    Show what the pipeline would execute for ``request.sql``.

    A rejected statement raises ``RejectedStatement``, which the app's
    error handler turns into a 400 response.
    """
    schema_text = await data_source.describe_schema()
    outcome = pipeline.prepare(request.sql, schema_text)

    return ValidateResponse(
        safe=True,
        original_sql=request.sql,
        sanitized_sql=outcome.sanitized_statement,
        blocked_columns=[BlockedColumnResponse.from_blocked(b) for b in outcome.blocked_columns],
        warnings=[WarningResponse.from_warning(w) for w in outcome.warnings],
        security_report=pipeline.sanitizer.security_report(request.sql, outcome),
    )
