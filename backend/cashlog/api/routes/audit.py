from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import select

from cashlog.api.deps import db, require_org
from cashlog.core.security import Principal
from cashlog.models.audit_log import AuditLog
from cashlog.schemas.audit import AuditOut

router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("", response_model=list[AuditOut])
def list_audit(
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
    user_id: str | None = Query(default=None, alias="userId"),
    entity_type: str | None = Query(default=None, alias="entityType"),
    action: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
):
    q = (
        select(AuditLog)
        .where(AuditLog.organization_id == u.organization_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    )

    if user_id:
        q = q.where(AuditLog.user_id == user_id)
    if entity_type:
        q = q.where(AuditLog.entity_type == entity_type)
    if action:
        q = q.where(AuditLog.action == action)

    q = q.limit(limit)
    return s.execute(q).scalars().all()
