"""API Routes."""

from api.routes.audit import router as audit_router
from api.routes.health import router as health_router
from api.routes.query import router as query_router
from api.routes.schema import router as schema_router

__all__ = ["audit_router", "health_router", "query_router", "schema_router"]
