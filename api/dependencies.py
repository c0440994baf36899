"""
Route Dependencies
==================

Accessors for the objects wired into ``app.state`` by ``create_app``.
"""

import uuid
from dataclasses import dataclass

from fastapi import Request

from sql_guard.audit import AuditTrail
from sql_guard.datasources.base import DataSource
from sql_guard.pipeline import SafetyPipeline
from sql_guard.service import QueryService

ANONYMOUS_USER = "anonymous"


@dataclass
class Identity:
    """Caller identity as forwarded by the upstream gateway."""

    user_id: str
    user_email: str | None = None


def get_identity(request: Request) -> Identity:
    """Read ``X-User-ID`` / ``X-User-Email``; authentication happens upstream."""
    return Identity(
        user_id=request.headers.get("X-User-ID") or ANONYMOUS_USER,
        user_email=request.headers.get("X-User-Email") or None,
    )


def get_request_id(request: Request) -> str:
    """Request ID set by the telemetry middleware, or a fresh one."""
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def get_service(request: Request) -> QueryService:
    return request.app.state.service


def get_pipeline(request: Request) -> SafetyPipeline:
    return request.app.state.pipeline


def get_audit_trail(request: Request) -> AuditTrail:
    return request.app.state.audit_trail


def get_data_source(request: Request) -> DataSource:
    return request.app.state.data_source
