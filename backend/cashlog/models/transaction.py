from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import String, Integer, Date, DateTime, func, ForeignKey, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashlog.db.base import Base
from cashlog.models.category import Category
from cashlog.models.ids import new_id
from cashlog.models.related_party import RelatedParty


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    date: Mapped[date] = mapped_column(Date, index=True)
    type: Mapped[str] = mapped_column(String(16), default="expense")
    description: Mapped[str] = mapped_column(String(512))
    amount_total: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    payment_img: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str] = mapped_column(String(64))

    # restricted: master records referenced here cannot be deleted
    category_id: Mapped[str] = mapped_column(ForeignKey("categories.id", ondelete="RESTRICT"), index=True)
    related_party_id: Mapped[str] = mapped_column(ForeignKey("related_parties.id", ondelete="RESTRICT"), index=True)
    month_history_id: Mapped[str | None] = mapped_column(
        ForeignKey("month_histories.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    items: Mapped[list["Item"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="Item.position",
    )
    category: Mapped[Category] = relationship(lazy="joined")
    related_party: Mapped[RelatedParty] = relationship(lazy="joined")


class Item(Base):
    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(256))
    item_price: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    quantity: Mapped[int] = mapped_column(Integer)
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    position: Mapped[int] = mapped_column(Integer, default=0)

    transaction_id: Mapped[str] = mapped_column(ForeignKey("transactions.id", ondelete="CASCADE"), index=True)
    master_item_id: Mapped[str | None] = mapped_column(
        ForeignKey("master_items.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str] = mapped_column(String(64))

    transaction: Mapped[Transaction] = relationship(back_populates="items")


Index("ix_transactions_org_date", Transaction.organization_id, Transaction.date)
