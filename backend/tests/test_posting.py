from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from cashlog.core.errors import NotFound, ValidationError
from cashlog.models.audit_log import AuditLog
from cashlog.models.category import Category
from cashlog.models.history import MonthHistory
from cashlog.models.master_item import MasterItem
from cashlog.models.related_party import RelatedParty
from cashlog.models.transaction import Item, Transaction
from cashlog.services.posting import (
    Posting,
    PostingItem,
    TransactionChanges,
    post_transaction,
    update_transaction,
    validate_posting,
)


def _mk_refs(session, org: str, tx_type: str = "income"):
    cat = Category(name=f"Cat-{uuid4().hex[:8]}", type=tx_type, organization_id=org, user_id="u1")
    rp = RelatedParty(name=f"Party-{uuid4().hex[:8]}", type=tx_type, organization_id=org, user_id="u1")
    session.add_all([cat, rp])
    session.commit()
    return cat, rp


def _posting(org, cat, rp, items, d=date(2024, 12, 5), tx_type="income", amount_total=None):
    return Posting(
        organization_id=org,
        user_id="u1",
        date=d,
        type=tx_type,
        description="Sale of goods",
        category_id=cat.id,
        related_party_id=rp.id,
        items=items,
        amount_total=amount_total,
    )


def _counts(session):
    tx = session.execute(select(func.count(Transaction.id))).scalar_one()
    it = session.execute(select(func.count(Item.id))).scalar_one()
    mh = session.execute(select(func.count(MonthHistory.id))).scalar_one()
    return tx, it, mh


def test_amount_total_is_sum_of_item_lines(session):
    cat, rp = _mk_refs(session, "org-a")
    t = post_transaction(
        session,
        _posting(
            "org-a",
            cat,
            rp,
            [PostingItem("Widget", Decimal("1000"), 2), PostingItem("Bolt", Decimal("500"), 1)],
        ),
    )

    assert Decimal(str(t.amount_total)) == Decimal("2500")
    assert [i.name for i in t.items] == ["Widget", "Bolt"]
    assert [Decimal(str(i.total_price)) for i in t.items] == [Decimal("2000"), Decimal("500")]

    persisted = session.execute(select(Item).where(Item.transaction_id == t.id)).scalars().all()
    assert sum(Decimal(str(i.item_price)) * i.quantity for i in persisted) == Decimal(str(t.amount_total))


def test_posted_transaction_is_hydrated_and_stamped(session):
    cat, rp = _mk_refs(session, "org-a")
    t = post_transaction(session, _posting("org-a", cat, rp, [PostingItem("Widget", Decimal("10"), 3)]))

    assert t.id
    assert t.category.name == cat.name
    assert t.related_party.name == rp.name
    assert t.month_history_id is not None

    mh = session.get(MonthHistory, t.month_history_id)
    assert (mh.year, mh.month) == (2024, 12)

    audit = session.execute(select(AuditLog).where(AuditLog.entity_id == t.id)).scalars().all()
    assert [a.action for a in audit] == ["tx.create"]


def test_invalid_second_item_creates_nothing(session):
    cat, rp = _mk_refs(session, "org-a")

    with pytest.raises(ValidationError) as ei:
        post_transaction(
            session,
            _posting(
                "org-a",
                cat,
                rp,
                [PostingItem("Widget", Decimal("1000"), 2), PostingItem("Broken", Decimal("-1"), 0)],
            ),
        )

    assert set(ei.value.errors) == {"items.1.item_price", "items.1.quantity"}
    assert _counts(session) == (0, 0, 0)


@pytest.mark.parametrize(
    "item, field",
    [
        (PostingItem("Zero qty", Decimal("100"), 0), "items.0.quantity"),
        (PostingItem("Negative", Decimal("-5"), 1), "items.0.item_price"),
    ],
)
def test_non_positive_quantity_or_negative_price_rejected(session, item, field):
    cat, rp = _mk_refs(session, "org-a")

    with pytest.raises(ValidationError) as ei:
        post_transaction(session, _posting("org-a", cat, rp, [item]))

    assert field in ei.value.errors
    assert _counts(session) == (0, 0, 0)


def test_validation_enumerates_every_violation():
    p = Posting(
        organization_id="",
        user_id="u1",
        date=date(1999, 1, 1),
        type="transfer",
        description="  ",
        category_id="",
        related_party_id="rp",
        items=[],
        amount_total=Decimal("-1"),
    )
    with pytest.raises(ValidationError) as ei:
        validate_posting(p)

    assert set(ei.value.errors) == {
        "organization_id",
        "category_id",
        "description",
        "type",
        "date",
        "items",
        "amount_total",
    }


def test_amount_total_must_match_items(session):
    cat, rp = _mk_refs(session, "org-a")

    with pytest.raises(ValidationError) as ei:
        post_transaction(
            session,
            _posting("org-a", cat, rp, [PostingItem("Widget", Decimal("1000"), 2)], amount_total=Decimal("1999")),
        )
    assert "amount_total" in ei.value.errors

    ok = post_transaction(
        session,
        _posting("org-a", cat, rp, [PostingItem("Widget", Decimal("1000"), 2)], amount_total=Decimal("2000")),
    )
    assert Decimal(str(ok.amount_total)) == Decimal("2000")


def test_references_from_another_organization_are_not_found(session):
    cat, rp = _mk_refs(session, "org-b")

    with pytest.raises(NotFound):
        post_transaction(session, _posting("org-a", cat, rp, [PostingItem("Widget", Decimal("1"), 1)]))

    assert _counts(session) == (0, 0, 0)


def test_category_type_must_match_transaction_type(session):
    cat, rp = _mk_refs(session, "org-a", tx_type="expense")

    with pytest.raises(ValidationError) as ei:
        post_transaction(session, _posting("org-a", cat, rp, [PostingItem("Widget", Decimal("1"), 1)]))

    assert set(ei.value.errors) == {"category_id", "related_party_id"}
    assert _counts(session) == (0, 0, 0)


def test_master_item_reference_is_kept_on_item(session):
    cat, rp = _mk_refs(session, "org-a")
    mi = MasterItem(name="Coffee", type="income", default_price=Decimal("25"), organization_id="org-a", user_id="u1")
    session.add(mi)
    session.commit()

    t = post_transaction(
        session,
        _posting("org-a", cat, rp, [PostingItem("Coffee", Decimal("25"), 4, master_item_id=mi.id)]),
    )
    assert t.items[0].master_item_id == mi.id

    with pytest.raises(NotFound):
        post_transaction(
            session,
            _posting("org-a", cat, rp, [PostingItem("Tea", Decimal("5"), 1, master_item_id="missing")]),
        )


def _mk_master_item(session, org: str, tx_type: str, name: str = "Coffee"):
    mi = MasterItem(name=name, type=tx_type, default_price=Decimal("25"), organization_id=org, user_id="u1")
    session.add(mi)
    session.commit()
    return mi


def test_master_item_type_must_match_transaction_type(session):
    cat, rp = _mk_refs(session, "org-a")
    mi = _mk_master_item(session, "org-a", "expense")

    with pytest.raises(ValidationError) as ei:
        post_transaction(
            session,
            _posting(
                "org-a",
                cat,
                rp,
                [PostingItem("Plain", Decimal("5"), 1), PostingItem("Coffee", Decimal("25"), 1, master_item_id=mi.id)],
            ),
        )

    assert set(ei.value.errors) == {"items.1.master_item_id"}
    assert _counts(session) == (0, 0, 0)


def test_type_change_rechecks_kept_master_items(session):
    cat, rp = _mk_refs(session, "org-a")
    exp_cat, exp_rp = _mk_refs(session, "org-a", tx_type="expense")
    mi = _mk_master_item(session, "org-a", "income")
    t = post_transaction(
        session,
        _posting("org-a", cat, rp, [PostingItem("Coffee", Decimal("25"), 2, master_item_id=mi.id)]),
    )

    with pytest.raises(ValidationError) as ei:
        update_transaction(
            session,
            "org-a",
            "u1",
            t.id,
            TransactionChanges(type="expense", category_id=exp_cat.id, related_party_id=exp_rp.id),
        )
    assert set(ei.value.errors) == {"items.0.master_item_id"}

    session.expire_all()
    kept = session.get(Transaction, t.id)
    assert kept.type == "income"
    mh = session.get(MonthHistory, kept.month_history_id)
    assert Decimal(str(mh.total_income)) == Decimal("50")
    assert Decimal(str(mh.total_expense)) == Decimal("0")
