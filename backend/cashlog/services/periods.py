"""Month/year income and expense aggregates per organization.

Counters are only ever changed with a single ``INSERT .. ON CONFLICT DO UPDATE``
statement that adds to the stored value inside the database, so concurrent
postings for the same period cannot lose updates. Callers own the enclosing
transaction.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from cashlog.models.history import MonthHistory, YearHistory
from cashlog.models.ids import new_id
from cashlog.models.transaction import Transaction
from cashlog.utils.money import ZERO, to_dec

TX_TYPES = ("income", "expense")


def _split(amount: Decimal, tx_type: str) -> tuple[Decimal, Decimal]:
    if tx_type not in TX_TYPES:
        raise ValueError(f"unknown transaction type: {tx_type!r}")
    return (amount, ZERO) if tx_type == "income" else (ZERO, amount)


def _dialect_insert(s: Session):
    name = s.get_bind().dialect.name
    if name == "postgresql":
        return pg_insert
    if name == "sqlite":
        return sqlite_insert
    return None


def _upsert_increment(s: Session, model, keys: dict, income: Decimal, expense: Decimal, extra: dict | None = None) -> str:
    extra = extra or {}
    ins = _dialect_insert(s)
    if ins is not None:
        stmt = ins(model).values(
            id=new_id(), total_income=income, total_expense=expense, **keys, **extra
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(keys.keys()),
            set_={
                "total_income": model.total_income + stmt.excluded.total_income,
                "total_expense": model.total_expense + stmt.excluded.total_expense,
                **{k: stmt.excluded[k] for k in extra},
            },
        )
        s.execute(stmt)
    else:
        res = s.execute(
            update(model)
            .where(*[getattr(model, k) == v for k, v in keys.items()])
            .values(
                total_income=model.total_income + income,
                total_expense=model.total_expense + expense,
                **extra,
            )
        )
        if res.rowcount == 0:
            s.execute(
                model.__table__.insert().values(
                    id=new_id(), total_income=income, total_expense=expense, **keys, **extra
                )
            )

    return s.execute(
        select(model.id).where(*[getattr(model, k) == v for k, v in keys.items()])
    ).scalar_one()


def apply_to_period(s: Session, organization_id: str, d: date, amount, tx_type: str) -> str:
    """Add ``amount`` to the matching counter of the year and month holding ``d``.

    Returns the id of the month row so it can be stamped on the transaction.
    """
    income, expense = _split(to_dec(amount), tx_type)

    year_id = _upsert_increment(
        s,
        YearHistory,
        {"organization_id": organization_id, "year": d.year},
        income,
        expense,
    )
    return _upsert_increment(
        s,
        MonthHistory,
        {"organization_id": organization_id, "year": d.year, "month": d.month},
        income,
        expense,
        extra={"year_history_id": year_id},
    )


def reverse_from_period(s: Session, organization_id: str, d: date, amount, tx_type: str) -> str:
    return apply_to_period(s, organization_id, d, -to_dec(amount), tx_type)


def rebuild_periods(s: Session, organization_id: str) -> int:
    """Recompute every aggregate of an organization from its transactions.

    Returns the number of month rows written.
    """
    s.execute(
        update(Transaction)
        .where(Transaction.organization_id == organization_id)
        .values(month_history_id=None)
    )
    s.execute(delete(MonthHistory).where(MonthHistory.organization_id == organization_id))
    s.execute(delete(YearHistory).where(YearHistory.organization_id == organization_id))

    rows = s.execute(
        select(Transaction.id, Transaction.date, Transaction.type, Transaction.amount_total)
        .where(Transaction.organization_id == organization_id)
        .order_by(Transaction.date.asc())
    ).all()

    by_month: dict[tuple[int, int], list] = defaultdict(list)
    for r in rows:
        by_month[(r.date.year, r.date.month)].append(r)

    for (yy, mm), txs in by_month.items():
        income = sum((to_dec(t.amount_total) for t in txs if t.type == "income"), ZERO)
        expense = sum((to_dec(t.amount_total) for t in txs if t.type != "income"), ZERO)
        year_id = _upsert_increment(
            s, YearHistory, {"organization_id": organization_id, "year": yy}, income, expense
        )
        month_id = _upsert_increment(
            s,
            MonthHistory,
            {"organization_id": organization_id, "year": yy, "month": mm},
            income,
            expense,
            extra={"year_history_id": year_id},
        )
        s.execute(
            update(Transaction)
            .where(Transaction.id.in_([t.id for t in txs]))
            .values(month_history_id=month_id)
        )

    return len(by_month)
