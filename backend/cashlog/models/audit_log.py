from datetime import datetime

from sqlalchemy import Integer, DateTime, func, String, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from cashlog.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), index=True)

    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    action: Mapped[str] = mapped_column(String(64), index=True)

    entity_type: Mapped[str] = mapped_column(String(64), index=True)
    entity_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)

    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)


Index("ix_audit_logs_entity", AuditLog.entity_type, AuditLog.entity_id)
