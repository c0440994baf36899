"""
FastAPI Application
===================

Main FastAPI application for the SQL Guard service.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.middleware.telemetry import TelemetryMiddleware
from api.routes import audit_router, health_router, query_router, schema_router
from api.schemas import ErrorResponse
from observability.logging_config import get_logger, setup_logging
from observability.metrics import metrics_endpoint, setup_metrics
from observability.tracing import setup_tracing
from sql_guard.audit import AuditTrail
from sql_guard.catalog import load_catalog
from sql_guard.config import Settings
from sql_guard.datasources import DataSource, InMemoryDataSource, SQLiteDataSource
from sql_guard.errors import ErrorCode, SqlGuardError
from sql_guard.llm import LLMInterface, MockLLM
from sql_guard.pipeline import SafetyPipeline
from sql_guard.service import QueryService
from sql_guard.translator import SQLTranslator

DEMO_SCHEMA = """Database: demo

Tables:

Table: customers
  - id (INTEGER) PRIMARY KEY
  - name (TEXT) NOT NULL
  - email (TEXT)
  - tier (TEXT)
  - created_at (TIMESTAMP)

Table: users
  - id (INTEGER) PRIMARY KEY
  - username (TEXT) NOT NULL
  - email (TEXT)
  - password (TEXT)
  - api_key (TEXT)

Table: orders
  - id (INTEGER) PRIMARY KEY
  - customer_id (INTEGER)
  - amount (DECIMAL)
  - card_number (TEXT)
  - status (TEXT)
"""

ERROR_STATUS_CODES = {
    ErrorCode.REJECTED: 400,
    ErrorCode.TRANSLATION_FAILURE: 502,
    ErrorCode.TIMEOUT: 504,
}


def create_demo_data_source() -> DataSource:
    """In-memory database used when no SQLite file is configured."""
    return InMemoryDataSource(
        schema_text=DEMO_SCHEMA,
        rows=[
            {"id": 1, "name": "Alice", "tier": "premium"},
            {"id": 2, "name": "Bob", "tier": "basic"},
        ],
        name="demo",
    )


def create_demo_llm() -> LLMInterface:
    """Create the translation model."""
    # For demo purposes, use MockLLM
    # In production, configure with real LLM
    return MockLLM(
        responses={
            "premium": "SELECT name, email FROM customers WHERE tier = 'premium' LIMIT 100",
            "customers": "SELECT * FROM customers LIMIT 100",
            "users": "SELECT * FROM users LIMIT 100",
            "passwords": "SELECT username, password FROM users",
            "revenue": "SELECT SUM(amount) FROM orders",
            "orders": "SELECT * FROM orders LIMIT 100",
        },
        default="SELECT * FROM customers LIMIT 10",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    logger = get_logger(__name__)
    logger.info(
        "starting_sql_guard_api",
        version=__version__,
        environment=app.state.settings.environment,
        database=app.state.data_source.name,
        audit_dir=app.state.settings.audit_dir,
    )

    yield

    logger.info("shutting_down_sql_guard_api")


def create_app(
    settings: Settings | None = None,
    data_source: DataSource | None = None,
    llm: LLMInterface | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Runtime settings (default: read from the environment)
        data_source: Database to query (default: ``settings.sqlite_path``
            or the in-memory demo database)
        llm: Translation model (default: the demo mock)
    """
    settings = settings or Settings.from_env()
    setup_logging()

    if data_source is None:
        if settings.sqlite_path:
            data_source = SQLiteDataSource(settings.sqlite_path, name=settings.database_name)
        else:
            data_source = create_demo_data_source()

    catalog = load_catalog(settings.catalog_path)
    audit_trail = AuditTrail(
        settings.audit_dir,
        window_days=settings.audit_window_days,
        mirror_to_log=not settings.is_production,
    )
    pipeline = SafetyPipeline(
        audit_trail=audit_trail,
        catalog=catalog,
        execution_timeout=settings.execution_timeout_seconds,
    )
    translator = SQLTranslator(llm or create_demo_llm(), catalog=catalog, row_limit=settings.row_limit)

    app = FastAPI(
        title="SQL Guard API",
        description=(
            "Safety pipeline for machine-generated SQL. "
            "Validates, sanitizes, executes and audits read-only queries."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.data_source = data_source
    app.state.audit_trail = audit_trail
    app.state.pipeline = pipeline
    app.state.service = QueryService(translator, pipeline)

    # Add middleware
    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add routes
    app.include_router(health_router)
    app.include_router(query_router)
    app.include_router(audit_router)
    app.include_router(schema_router)

    setup_metrics(app, version=__version__, environment=settings.environment)
    app.add_route("/metrics", metrics_endpoint)
    setup_tracing(app, version=__version__)

    @app.exception_handler(SqlGuardError)
    async def sql_guard_exception_handler(request: Request, exc: SqlGuardError) -> JSONResponse:
        """Map pipeline errors to structured responses."""
        return JSONResponse(
            status_code=ERROR_STATUS_CODES.get(exc.code, 500),
            content=ErrorResponse(
                error=type(exc).__name__,
                message=exc.message,
                request_id=getattr(request.state, "request_id", None),
                details=exc.to_dict(),
            ).model_dump(),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        get_logger(__name__).exception("unhandled_exception", path=request.url.path)
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                request_id=request_id,
            ).model_dump(),
        )

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
