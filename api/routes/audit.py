"""
Audit Routes
============

Read access to the audit trail and the security violation series.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from api.dependencies import Identity, get_audit_trail, get_identity
from api.schemas import AuditHistoryResponse, ViolationsResponse
from observability.metrics import AUDIT_READS_TOTAL
from sql_guard.audit import AuditTrail

router = APIRouter(prefix="/api/v1/audit", tags=["Audit"])


@router.get(
    "/history",
    response_model=AuditHistoryResponse,
    summary="Caller's query history",
    description="Most recent audit entries for the calling user, newest first",
)
async def audit_history(
    identity: Annotated[Identity, Depends(get_identity)],
    audit_trail: Annotated[AuditTrail, Depends(get_audit_trail)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
) -> AuditHistoryResponse:
    entries = audit_trail.query_by_user(identity.user_id, limit=limit)
    AUDIT_READS_TOTAL.labels(kind="history").inc()

    return AuditHistoryResponse(
        user_id=identity.user_id,
        count=len(entries),
        entries=[entry.to_dict() for entry in entries],
    )


@router.get(
    "/violations",
    response_model=ViolationsResponse,
    summary="Security violations",
    description="Most recent security violations across all users, newest first",
)
async def security_violations(
    audit_trail: Annotated[AuditTrail, Depends(get_audit_trail)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> ViolationsResponse:
    violations = audit_trail.query_violations(limit=limit)
    AUDIT_READS_TOTAL.labels(kind="violations").inc()

    return ViolationsResponse(
        count=len(violations),
        violations=[v.to_dict() for v in violations],
    )
