from decimal import Decimal

from sqlalchemy import String, Integer, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cashlog.db.base import Base
from cashlog.models.ids import new_id


class YearHistory(Base):
    __tablename__ = "year_histories"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    year: Mapped[int] = mapped_column(Integer)
    total_income: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)
    total_expense: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)

    __table_args__ = (
        UniqueConstraint("organization_id", "year", name="uq_year_histories_org_year"),
    )


class MonthHistory(Base):
    __tablename__ = "month_histories"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    year: Mapped[int] = mapped_column(Integer)
    month: Mapped[int] = mapped_column(Integer)
    total_income: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)
    total_expense: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)
    year_history_id: Mapped[str] = mapped_column(ForeignKey("year_histories.id", ondelete="CASCADE"), index=True)

    __table_args__ = (
        UniqueConstraint("organization_id", "year", "month", name="uq_month_histories_org_year_month"),
    )
