from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cashlog.core.errors import ValidationError
from cashlog.models.category import Category
from cashlog.models.related_party import RelatedParty
from cashlog.models.transaction import Item, Transaction
from cashlog.utils.money import ZERO, to_dec

AGGREGATE_KINDS = ("monthly", "yearly", "category", "related-party")
REPORT_KINDS = AGGREGATE_KINDS + ("items", "summary")
TYPE_FILTERS = ("all", "income", "expense")

MISSING_LABEL = "(deleted)"


@dataclass
class ReportRow:
    key: str
    label: str
    income: Decimal = ZERO
    expense: Decimal = ZERO
    type: str | None = None
    year: int | None = None
    month: int | None = None

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass
class ItemRow:
    key: str
    label: str
    type: str
    quantity: int = 0
    total_amount: Decimal = ZERO


@dataclass
class NamedTotal:
    name: str
    total: Decimal = ZERO
    quantity: int | None = None


@dataclass
class TypeSummary:
    type: str
    total: Decimal = ZERO
    transaction_count: int = 0
    categories: list[NamedTotal] = field(default_factory=list)
    related_parties: list[NamedTotal] = field(default_factory=list)
    items: list[NamedTotal] = field(default_factory=list)


def _check(kind: str, transaction_type: str) -> None:
    errs = {}
    if kind not in REPORT_KINDS:
        errs["type"] = [f"report type must be one of: {', '.join(REPORT_KINDS)}"]
    if transaction_type not in TYPE_FILTERS:
        errs["transaction_type"] = [f"transaction type must be one of: {', '.join(TYPE_FILTERS)}"]
    if errs:
        raise ValidationError(errs)


def _fetch(s: Session, organization_id: str, start: date, end: date):
    # scalar columns only; names come from outer joins so an orphaned id still aggregates
    return s.execute(
        select(
            Transaction.id,
            Transaction.date,
            Transaction.type,
            Transaction.amount_total,
            Transaction.category_id,
            Category.name.label("category_name"),
            Transaction.related_party_id,
            RelatedParty.name.label("related_party_name"),
        )
        .select_from(Transaction)
        .outerjoin(Category, Category.id == Transaction.category_id)
        .outerjoin(RelatedParty, RelatedParty.id == Transaction.related_party_id)
        .where(
            Transaction.organization_id == organization_id,
            Transaction.date >= start,
            Transaction.date <= end,
        )
        .order_by(Transaction.date.asc(), Transaction.created_at.asc(), Transaction.id.asc())
    ).all()


def _bucket_of(kind: str, r) -> tuple[tuple, dict]:
    if kind == "monthly":
        key = f"{r.date.year:04d}-{r.date.month:02d}"
        return (key,), {"key": key, "label": key, "year": r.date.year, "month": r.date.month}
    if kind == "yearly":
        key = f"{r.date.year:04d}"
        return (key,), {"key": key, "label": key, "year": r.date.year}
    if kind == "category":
        return (r.category_id, r.type), {
            "key": r.category_id,
            "label": r.category_name or MISSING_LABEL,
            "type": r.type,
        }
    return (r.related_party_id, r.type), {
        "key": r.related_party_id,
        "label": r.related_party_name or MISSING_LABEL,
        "type": r.type,
    }


def aggregate(s: Session, kind: str, organization_id: str, start: date, end: date) -> list[ReportRow]:
    """Fold the organization's transactions in ``[start, end]`` into income/expense buckets.

    Buckets appear in the order they are first seen in a date-ascending scan.
    """
    if kind not in AGGREGATE_KINDS:
        raise ValidationError({"type": [f"report type must be one of: {', '.join(AGGREGATE_KINDS)}"]})

    buckets: dict[tuple, ReportRow] = {}
    for r in _fetch(s, organization_id, start, end):
        bk, init = _bucket_of(kind, r)
        row = buckets.get(bk)
        if row is None:
            row = buckets[bk] = ReportRow(**init)
        amt = to_dec(r.amount_total)
        if r.type == "income":
            row.income += amt
        else:
            row.expense += amt
    return list(buckets.values())


def item_report(s: Session, organization_id: str, start: date, end: date) -> list[ItemRow]:
    rows = s.execute(
        select(Item.name, Item.quantity, Item.total_price, Transaction.type)
        .join(Transaction, Transaction.id == Item.transaction_id)
        .where(
            Transaction.organization_id == organization_id,
            Transaction.date >= start,
            Transaction.date <= end,
        )
        .order_by(Transaction.date.asc(), Transaction.created_at.asc(), Item.position.asc())
    ).all()

    buckets: dict[tuple[str, str], ItemRow] = {}
    for r in rows:
        tx_type = "income" if r.type == "income" else "expense"
        bk = (r.name, tx_type)
        row = buckets.get(bk)
        if row is None:
            row = buckets[bk] = ItemRow(key=f"{r.name}-{tx_type}", label=r.name, type=tx_type)
        row.quantity += int(r.quantity)
        row.total_amount += to_dec(r.total_price)
    return list(buckets.values())


def _add_named(lst: list[NamedTotal], name: str, amount: Decimal, quantity: int | None = None) -> None:
    for n in lst:
        if n.name == name:
            n.total += amount
            if quantity is not None:
                n.quantity = (n.quantity or 0) + quantity
            return
    lst.append(NamedTotal(name=name, total=amount, quantity=quantity))


def summary_report(s: Session, organization_id: str, start: date, end: date) -> dict[str, TypeSummary]:
    out = {"income": TypeSummary(type="income"), "expense": TypeSummary(type="expense")}

    txs = _fetch(s, organization_id, start, end)
    for r in txs:
        data = out["income"] if r.type == "income" else out["expense"]
        amt = to_dec(r.amount_total)
        data.total += amt
        data.transaction_count += 1
        _add_named(data.categories, r.category_name or MISSING_LABEL, amt)
        _add_named(data.related_parties, r.related_party_name or MISSING_LABEL, amt)

    if txs:
        items = s.execute(
            select(Item.name, Item.quantity, Item.total_price, Transaction.type)
            .join(Transaction, Transaction.id == Item.transaction_id)
            .where(
                Transaction.organization_id == organization_id,
                Transaction.date >= start,
                Transaction.date <= end,
            )
            .order_by(Transaction.date.asc(), Transaction.created_at.asc(), Item.position.asc())
        ).all()
        for it in items:
            data = out["income"] if it.type == "income" else out["expense"]
            _add_named(data.items, it.name, to_dec(it.total_price), int(it.quantity))

    return out


def build_report(
    s: Session,
    kind: str,
    organization_id: str,
    start: date,
    end: date,
    transaction_type: str = "all",
):
    """Dispatch a report request the way the HTTP layer exposes it.

    Returns a list of rows, or for ``summary`` either a ``{type: TypeSummary}``
    mapping or a single TypeSummary when ``transaction_type`` narrows it.
    """
    _check(kind, transaction_type)

    if kind == "summary":
        data = summary_report(s, organization_id, start, end)
        return data[transaction_type] if transaction_type != "all" else data

    if kind == "items":
        rows = item_report(s, organization_id, start, end)
    else:
        rows = aggregate(s, kind, organization_id, start, end)

    if transaction_type != "all" and kind in ("category", "related-party", "items"):
        rows = [r for r in rows if r.type == transaction_type]
    return rows
