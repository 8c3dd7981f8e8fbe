from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, func, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cashlog.db.base import Base
from cashlog.models.ids import new_id


class MasterItem(Base):
    __tablename__ = "master_items"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128))
    description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    type: Mapped[str] = mapped_column(String(16), default="expense")
    default_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("organization_id", "type", "name", name="uq_master_items_org_type_name"),
    )
