from datetime import datetime

from cashlog.schemas.common import ApiModel


class AuditOut(ApiModel):
    id: int
    created_at: datetime
    user_id: str
    action: str
    entity_type: str
    entity_id: str | None
    details: dict | None
