"""Posting, editing and removing ledger transactions.

Each public function here is one unit of work: the transaction row, its items
and the period aggregates change together or not at all.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from cashlog.core.errors import ErrorCollector, Forbidden, NotFound, ValidationError
from cashlog.db.uow import unit_of_work
from cashlog.models.category import Category
from cashlog.models.master_item import MasterItem
from cashlog.models.related_party import RelatedParty
from cashlog.models.transaction import Item, Transaction
from cashlog.services.audit import log_event
from cashlog.services.periods import TX_TYPES, apply_to_period, reverse_from_period
from cashlog.utils.money import ZERO, d2, to_dec

logger = logging.getLogger(__name__)

MIN_DATE = date(2000, 1, 1)
MAX_DATE = date(2100, 12, 31)


@dataclass
class PostingItem:
    name: str
    item_price: Decimal
    quantity: int
    master_item_id: str | None = None


@dataclass
class Posting:
    organization_id: str
    user_id: str
    date: date
    type: str
    description: str
    category_id: str
    related_party_id: str
    items: list[PostingItem] = field(default_factory=list)
    amount_total: Decimal | None = None
    payment_img: str | None = None


@dataclass
class TransactionChanges:
    date: date | None = None
    type: str | None = None
    description: str | None = None
    category_id: str | None = None
    related_party_id: str | None = None
    amount_total: Decimal | None = None
    payment_img: str | None = None
    items: list[PostingItem] | None = None


def _blank(v) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _validate_items(items: list[PostingItem] | None, errs: ErrorCollector) -> Decimal:
    if not items:
        errs.add("items", "at least one item is required")
        return ZERO

    total = ZERO
    for i, it in enumerate(items):
        prefix = f"items.{i}"
        if _blank(it.name):
            errs.add(f"{prefix}.name", "item name is required")

        price = None
        try:
            price = to_dec(it.item_price) if it.item_price is not None else None
        except ArithmeticError:
            price = None
        if price is None or not price.is_finite():
            errs.add(f"{prefix}.item_price", "item price must be a number")
            price = None
        elif price < 0:
            errs.add(f"{prefix}.item_price", "item price must not be negative")
            price = None

        qty = it.quantity
        if isinstance(qty, bool) or not isinstance(qty, int):
            errs.add(f"{prefix}.quantity", "quantity must be a whole number")
            qty = None
        elif qty < 1:
            errs.add(f"{prefix}.quantity", "quantity must be at least 1")
            qty = None

        if price is not None and qty is not None:
            total += price * qty
    return d2(total)


def _validate_amount(amount_total, computed: Decimal, errs: ErrorCollector, items_ok: bool) -> None:
    if amount_total is None:
        return
    amt = to_dec(amount_total)
    if not amt.is_finite() or amt < 0:
        errs.add("amount_total", "amount total must not be negative")
    elif items_ok and d2(amt) != computed:
        errs.add("amount_total", f"amount total {d2(amt)} does not match item total {computed}")


def validate_posting(p: Posting) -> Decimal:
    """Check every precondition and return the computed amount total.

    Raises ValidationError listing all violated fields.
    """
    errs = ErrorCollector()

    for fname in ("organization_id", "user_id", "category_id", "related_party_id"):
        if _blank(getattr(p, fname)):
            errs.add(fname, f"{fname} is required")
    if _blank(p.description):
        errs.add("description", "description is required")
    if p.type not in TX_TYPES:
        errs.add("type", "type must be income or expense")
    if p.date is None:
        errs.add("date", "date is required")
    elif not (MIN_DATE <= p.date <= MAX_DATE):
        errs.add("date", f"date must be between {MIN_DATE} and {MAX_DATE}")

    before = len(errs.errors)
    computed = _validate_items(p.items, errs)
    items_ok = len(errs.errors) == before
    _validate_amount(p.amount_total, computed, errs, items_ok)

    errs.raise_if_any()
    return computed


def _resolve_refs(
    s: Session,
    organization_id: str,
    tx_type: str,
    category_id: str,
    related_party_id: str,
    items: list[PostingItem] | None,
) -> None:
    cat = s.execute(
        select(Category).where(Category.id == category_id, Category.organization_id == organization_id)
    ).scalar_one_or_none()
    if cat is None:
        raise NotFound("Category not found", code="category_not_found")

    rp = s.execute(
        select(RelatedParty).where(
            RelatedParty.id == related_party_id, RelatedParty.organization_id == organization_id
        )
    ).scalar_one_or_none()
    if rp is None:
        raise NotFound("Related party not found", code="related_party_not_found")

    errs = ErrorCollector()
    if cat.type != tx_type:
        errs.add("category_id", f"category is for {cat.type} transactions")
    if rp.type != tx_type:
        errs.add("related_party_id", f"related party is for {rp.type} transactions")

    master_ids = {it.master_item_id for it in (items or []) if it.master_item_id}
    if master_ids:
        found = dict(
            s.execute(
                select(MasterItem.id, MasterItem.type).where(
                    MasterItem.id.in_(master_ids), MasterItem.organization_id == organization_id
                )
            ).all()
        )
        if set(found) != master_ids:
            raise NotFound("Master item not found", code="master_item_not_found")
        for i, it in enumerate(items):
            mi_type = found.get(it.master_item_id) if it.master_item_id else None
            if mi_type is not None and mi_type != tx_type:
                errs.add(f"items.{i}.master_item_id", f"master item is for {mi_type} transactions")

    errs.raise_if_any()


def _build_items(items: list[PostingItem], organization_id: str, user_id: str) -> list[Item]:
    out = []
    for pos, it in enumerate(items):
        price = d2(to_dec(it.item_price))
        out.append(
            Item(
                name=it.name.strip(),
                item_price=price,
                quantity=int(it.quantity),
                total_price=d2(price * int(it.quantity)),
                position=pos,
                master_item_id=it.master_item_id or None,
                organization_id=organization_id,
                user_id=user_id,
            )
        )
    return out


def load_transaction(s: Session, tx_id: str) -> Transaction | None:
    return s.execute(
        select(Transaction)
        .options(selectinload(Transaction.items))
        .where(Transaction.id == tx_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def get_owned_transaction(s: Session, organization_id: str, tx_id: str) -> Transaction:
    t = load_transaction(s, tx_id)
    if t is None:
        raise NotFound("Transaction not found", code="transaction_not_found")
    if t.organization_id != organization_id:
        raise Forbidden("You do not have permission to access this transaction")
    return t


def post_transaction(s: Session, p: Posting) -> Transaction:
    computed = validate_posting(p)

    with unit_of_work(s):
        _resolve_refs(s, p.organization_id, p.type, p.category_id, p.related_party_id, p.items)

        t = Transaction(
            date=p.date,
            type=p.type,
            description=p.description.strip(),
            amount_total=computed,
            payment_img=p.payment_img or None,
            organization_id=p.organization_id,
            user_id=p.user_id,
            category_id=p.category_id,
            related_party_id=p.related_party_id,
        )
        t.items = _build_items(p.items, p.organization_id, p.user_id)
        s.add(t)
        s.flush()

        t.month_history_id = apply_to_period(s, p.organization_id, p.date, computed, p.type)
        s.flush()

        log_event(
            s,
            organization_id=p.organization_id,
            user_id=p.user_id,
            action="tx.create",
            entity_type="transaction",
            entity_id=t.id,
            details={"date": str(t.date), "type": t.type, "amount_total": str(computed), "items": len(t.items)},
        )
        tx_id = t.id

    logger.info("posted transaction %s org=%s amount=%s", tx_id, p.organization_id, computed)
    return load_transaction(s, tx_id)


def update_transaction(
    s: Session,
    organization_id: str,
    user_id: str,
    tx_id: str,
    changes: TransactionChanges,
) -> Transaction:
    t = get_owned_transaction(s, organization_id, tx_id)

    merged = Posting(
        organization_id=organization_id,
        user_id=user_id,
        date=changes.date if changes.date is not None else t.date,
        type=changes.type if changes.type is not None else t.type,
        description=changes.description if changes.description is not None else t.description,
        category_id=changes.category_id if changes.category_id is not None else t.category_id,
        related_party_id=changes.related_party_id if changes.related_party_id is not None else t.related_party_id,
        items=(
            changes.items
            if changes.items is not None
            else [PostingItem(i.name, to_dec(i.item_price), int(i.quantity), i.master_item_id) for i in t.items]
        ),
        amount_total=changes.amount_total,
        payment_img=changes.payment_img if changes.payment_img is not None else t.payment_img,
    )
    computed = validate_posting(merged)

    old_date, old_type, old_amount = t.date, t.type, to_dec(t.amount_total)

    with unit_of_work(s):
        _resolve_refs(
            s,
            organization_id,
            merged.type,
            merged.category_id,
            merged.related_party_id,
            merged.items,
        )

        t.date = merged.date
        t.type = merged.type
        t.description = merged.description.strip()
        t.category_id = merged.category_id
        t.related_party_id = merged.related_party_id
        t.payment_img = merged.payment_img or None
        t.amount_total = computed

        if changes.items is not None:
            # wholesale replacement; delete-orphan removes the old rows
            t.items.clear()
            s.flush()
            t.items.extend(_build_items(changes.items, organization_id, user_id))

        reverse_from_period(s, organization_id, old_date, old_amount, old_type)
        t.month_history_id = apply_to_period(s, organization_id, merged.date, computed, merged.type)
        s.flush()

        log_event(
            s,
            organization_id=organization_id,
            user_id=user_id,
            action="tx.update",
            entity_type="transaction",
            entity_id=t.id,
            details={
                "from": {"date": str(old_date), "type": old_type, "amount_total": str(old_amount)},
                "to": {"date": str(t.date), "type": t.type, "amount_total": str(computed)},
                "items_replaced": changes.items is not None,
            },
        )

    logger.info("updated transaction %s org=%s", tx_id, organization_id)
    return load_transaction(s, tx_id)


def _remove(s: Session, t: Transaction) -> None:
    reverse_from_period(s, t.organization_id, t.date, to_dec(t.amount_total), t.type)
    s.delete(t)


def delete_transaction(s: Session, organization_id: str, user_id: str, tx_id: str) -> None:
    t = get_owned_transaction(s, organization_id, tx_id)
    details = {"date": str(t.date), "type": t.type, "amount_total": str(t.amount_total)}

    with unit_of_work(s):
        _remove(s, t)
        log_event(
            s,
            organization_id=organization_id,
            user_id=user_id,
            action="tx.delete",
            entity_type="transaction",
            entity_id=tx_id,
            details=details,
        )

    logger.info("deleted transaction %s org=%s", tx_id, organization_id)


def bulk_delete_transactions(
    s: Session, organization_id: str, user_id: str, ids: list[str]
) -> tuple[list[str], list[str]]:
    """Delete the caller's transactions among ``ids``.

    Returns ``(deleted, skipped)``; ids that are unknown or belong to another
    organization are skipped rather than failing the batch.
    """
    wanted = list(dict.fromkeys(i for i in ids if i))
    if not wanted:
        raise ValidationError({"ids": ["at least one id is required"]})

    txs = (
        s.execute(
            select(Transaction)
            .options(selectinload(Transaction.items))
            .where(Transaction.id.in_(wanted), Transaction.organization_id == organization_id)
        )
        .scalars()
        .all()
    )
    found = {t.id for t in txs}
    deleted = [i for i in wanted if i in found]
    skipped = [i for i in wanted if i not in found]

    with unit_of_work(s):
        for t in txs:
            _remove(s, t)
        log_event(
            s,
            organization_id=organization_id,
            user_id=user_id,
            action="tx.bulk_delete",
            entity_type="transaction",
            entity_id=None,
            details={"deleted": deleted, "skipped": skipped},
        )

    logger.info("bulk deleted %d transactions org=%s (skipped %d)", len(deleted), organization_id, len(skipped))
    return deleted, skipped
