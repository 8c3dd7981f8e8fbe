from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from cashlog.core.errors import ConflictError, Forbidden, NotFound, ValidationError
from cashlog.models.audit_log import AuditLog
from cashlog.services import master_data as md
from cashlog.services.posting import Posting, PostingItem, post_transaction


def _mk(session, kind, org="org-a", **fields):
    fields.setdefault("type", "income")
    return md.create_record(session, kind, org, "u1", fields)


def test_create_trims_name_and_writes_audit(session):
    rec = _mk(session, md.CATEGORY, name="  Penjualan  ")

    assert rec.name == "Penjualan"
    assert rec.organization_id == "org-a"
    actions = session.execute(select(AuditLog.action).where(AuditLog.entity_id == rec.id)).scalars().all()
    assert actions == ["category.create"]


def test_duplicate_name_for_same_type_conflicts(session):
    _mk(session, md.CATEGORY, name="Sales")

    with pytest.raises(ConflictError) as ei:
        _mk(session, md.CATEGORY, name="Sales")
    assert ei.value.code == "category_exists"

    # same name is fine for the other type or another organization
    _mk(session, md.CATEGORY, name="Sales", type="expense")
    _mk(session, md.CATEGORY, org="org-b", name="Sales")


def test_blank_name_rejected(session):
    with pytest.raises(ValidationError):
        _mk(session, md.RELATED_PARTY, name="   ")


def test_get_enforces_organization(session):
    rec = _mk(session, md.RELATED_PARTY, name="Alice")

    assert md.get_record(session, md.RELATED_PARTY, "org-a", rec.id).name == "Alice"
    with pytest.raises(Forbidden):
        md.get_record(session, md.RELATED_PARTY, "org-b", rec.id)
    with pytest.raises(NotFound) as ei:
        md.get_record(session, md.RELATED_PARTY, "org-a", "missing")
    assert ei.value.code == "related_party_not_found"


def test_list_filters_and_pages(session):
    for n in ("Apple", "Banana", "Cherry", "Apricot"):
        _mk(session, md.MASTER_ITEM, name=n, default_price=Decimal("1000"))
    _mk(session, md.MASTER_ITEM, name="Anchovy", type="expense")
    _mk(session, md.MASTER_ITEM, org="org-b", name="Avocado")

    rows, total = md.list_records(session, md.MASTER_ITEM, "org-a", "ap", "income", 1, 10)
    assert total == 2
    assert [r.name for r in rows] == ["Apple", "Apricot"]

    rows, total = md.list_records(session, md.MASTER_ITEM, "org-a", None, None, 2, 2)
    assert total == 5
    assert [r.name for r in rows] == ["Apricot", "Banana"]

    assert [r.name for r in md.all_records(session, md.MASTER_ITEM, "org-a", "expense")] == ["Anchovy"]


def test_update_renames_and_checks_uniqueness(session):
    a = _mk(session, md.CATEGORY, name="A")
    _mk(session, md.CATEGORY, name="B")

    with pytest.raises(ConflictError):
        md.update_record(session, md.CATEGORY, "org-a", "u1", a.id, {"name": "B"})

    rec = md.update_record(session, md.CATEGORY, "org-a", "u1", a.id, {"name": "C", "description": "renamed"})
    assert (rec.name, rec.description) == ("C", "renamed")


def _post_with(session, cat, rp, master_item=None):
    return post_transaction(
        session,
        Posting(
            organization_id="org-a",
            user_id="u1",
            date=date(2024, 1, 1),
            type="income",
            description="sale",
            category_id=cat.id,
            related_party_id=rp.id,
            items=[PostingItem("Thing", Decimal("10"), 1, master_item_id=master_item.id if master_item else None)],
        ),
    )


def test_referenced_records_cannot_be_deleted_or_retyped(session):
    cat = _mk(session, md.CATEGORY, name="Sales")
    rp = _mk(session, md.RELATED_PARTY, name="Alice")
    mi = _mk(session, md.MASTER_ITEM, name="Thing")
    _post_with(session, cat, rp, mi)

    for kind, rec in ((md.CATEGORY, cat), (md.RELATED_PARTY, rp), (md.MASTER_ITEM, mi)):
        with pytest.raises(ConflictError) as ei:
            md.delete_record(session, kind, "org-a", "u1", rec.id)
        assert ei.value.code == f"{kind.entity}_in_use"

    with pytest.raises(ConflictError):
        md.update_record(session, md.CATEGORY, "org-a", "u1", cat.id, {"type": "expense"})


def test_unreferenced_record_is_deleted(session):
    rec = _mk(session, md.CATEGORY, name="Unused")

    md.delete_record(session, md.CATEGORY, "org-a", "u1", rec.id)

    with pytest.raises(NotFound):
        md.get_record(session, md.CATEGORY, "org-a", rec.id)
