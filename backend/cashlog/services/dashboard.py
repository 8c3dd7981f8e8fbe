from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from cashlog.core.config import settings
from cashlog.models.category import Category
from cashlog.models.history import MonthHistory, YearHistory
from cashlog.models.transaction import Transaction
from cashlog.utils.money import ZERO, to_dec


def _range(q, start: date | None, end: date | None):
    if start is not None:
        q = q.where(Transaction.date >= start)
    if end is not None:
        q = q.where(Transaction.date <= end)
    return q


def stats(s: Session, organization_id: str, start: date | None = None, end: date | None = None) -> dict:
    q = _range(
        select(Transaction.type, func.coalesce(func.sum(Transaction.amount_total), 0), func.count(Transaction.id))
        .where(Transaction.organization_id == organization_id)
        .group_by(Transaction.type),
        start,
        end,
    )
    income, expense, count = ZERO, ZERO, 0
    for tx_type, total, n in s.execute(q).all():
        if tx_type == "income":
            income += to_dec(total)
        else:
            expense += to_dec(total)
        count += int(n)
    return {
        "total_income": income,
        "total_expense": expense,
        "balance": income - expense,
        "transaction_count": count,
    }


def category_stats(s: Session, organization_id: str, start: date | None = None, end: date | None = None) -> dict:
    q = _range(
        select(
            Transaction.type,
            Transaction.category_id,
            Category.name,
            func.coalesce(func.sum(Transaction.amount_total), 0),
        )
        .select_from(Transaction)
        .outerjoin(Category, Category.id == Transaction.category_id)
        .where(Transaction.organization_id == organization_id)
        .group_by(Transaction.type, Transaction.category_id, Category.name)
        .order_by(Category.name.asc()),
        start,
        end,
    )
    out: dict[str, list[dict]] = {"income": [], "expense": []}
    for tx_type, cat_id, cat_name, total in s.execute(q).all():
        bucket = out["income"] if tx_type == "income" else out["expense"]
        bucket.append({"category_id": cat_id, "category": cat_name or "(deleted)", "total": to_dec(total)})
    return out


def daily_history(s: Session, organization_id: str, today: date, days: int = 90) -> list[dict]:
    """Income/expense per day for the trailing window, zero-filled."""
    start = today - timedelta(days=days)
    rows = s.execute(
        select(Transaction.date, Transaction.type, func.coalesce(func.sum(Transaction.amount_total), 0))
        .where(
            Transaction.organization_id == organization_id,
            Transaction.date >= start,
            Transaction.date <= today,
        )
        .group_by(Transaction.date, Transaction.type)
    ).all()

    by_day: dict[date, dict[str, Decimal]] = {}
    for d, tx_type, total in rows:
        slot = by_day.setdefault(d, {"income": ZERO, "expense": ZERO})
        slot["income" if tx_type == "income" else "expense"] += to_dec(total)

    out = []
    cur = start
    while cur <= today:
        slot = by_day.get(cur, {"income": ZERO, "expense": ZERO})
        out.append({"date": cur, "income": slot["income"], "expense": slot["expense"]})
        cur += timedelta(days=1)
    return out


def profit_loss(s: Session, organization_id: str, start: date, end: date) -> dict:
    cogs = settings.cogs_categories()
    rows = s.execute(
        select(Transaction.type, Category.name, func.coalesce(func.sum(Transaction.amount_total), 0))
        .select_from(Transaction)
        .outerjoin(Category, Category.id == Transaction.category_id)
        .where(
            Transaction.organization_id == organization_id,
            Transaction.date >= start,
            Transaction.date <= end,
        )
        .group_by(Transaction.type, Category.name)
    ).all()

    revenue, cost_of_goods, operating = ZERO, ZERO, ZERO
    for tx_type, cat_name, total in rows:
        amt = to_dec(total)
        if tx_type == "income":
            revenue += amt
        elif (cat_name or "").strip().lower() in cogs:
            cost_of_goods += amt
        else:
            operating += amt

    gross = revenue - cost_of_goods
    return {
        "revenue": revenue,
        "cost_of_goods": cost_of_goods,
        "gross_profit": gross,
        "operating_expense": operating,
        "profit": gross - operating,
    }


def recent(s: Session, organization_id: str, limit: int = 10) -> list[Transaction]:
    return (
        s.execute(
            select(Transaction)
            .options(selectinload(Transaction.items))
            .where(Transaction.organization_id == organization_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
        )
        .scalars()
        .all()
    )


def period_history(s: Session, organization_id: str, year: int | None = None) -> list[dict]:
    yq = select(YearHistory).where(YearHistory.organization_id == organization_id)
    if year is not None:
        yq = yq.where(YearHistory.year == year)
    years = s.execute(yq.order_by(YearHistory.year.asc())).scalars().all()
    if not years:
        return []

    months = (
        s.execute(
            select(MonthHistory)
            .where(
                MonthHistory.organization_id == organization_id,
                MonthHistory.year_history_id.in_([y.id for y in years]),
            )
            .order_by(MonthHistory.year.asc(), MonthHistory.month.asc())
        )
        .scalars()
        .all()
    )
    by_year: dict[str, list[MonthHistory]] = {}
    for m in months:
        by_year.setdefault(m.year_history_id, []).append(m)

    return [{"year": y, "months": by_year.get(y.id, [])} for y in years]
