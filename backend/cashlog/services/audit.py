from sqlalchemy.orm import Session
from cashlog.models.audit_log import AuditLog


def log_event(
    s: Session,
    organization_id: str,
    user_id: str,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    details: dict | None = None,
):
    # joins the caller's unit of work; committed (or rolled back) with it
    row = AuditLog(
        organization_id=organization_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    s.add(row)
    return row
