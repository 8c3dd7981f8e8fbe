from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import delete

from cashlog.core.errors import ValidationError
from cashlog.models.category import Category
from cashlog.models.related_party import RelatedParty
from cashlog.services.posting import Posting, PostingItem, post_transaction
from cashlog.services.reports import MISSING_LABEL, aggregate, build_report, item_report, summary_report


def _mk_ref(session, model, org, name, tx_type):
    rec = model(name=name, type=tx_type, organization_id=org, user_id="u1")
    session.add(rec)
    session.commit()
    return rec


def _post(session, org, d, tx_type, cat, rp, items):
    return post_transaction(
        session,
        Posting(
            organization_id=org,
            user_id="u1",
            date=d,
            type=tx_type,
            description="entry",
            category_id=cat.id,
            related_party_id=rp.id,
            items=[PostingItem(n, Decimal(p), q) for n, p, q in items],
        ),
    )


@pytest.fixture()
def ledger(session):
    sales = _mk_ref(session, Category, "org-a", "Sales", "income")
    rent = _mk_ref(session, Category, "org-a", "Rent", "expense")
    alice = _mk_ref(session, RelatedParty, "org-a", "Alice", "income")
    landlord = _mk_ref(session, RelatedParty, "org-a", "Landlord", "expense")

    _post(session, "org-a", date(2024, 1, 3), "income", sales, alice, [("Cake", "100", 2)])
    _post(session, "org-a", date(2024, 1, 20), "expense", rent, landlord, [("Rent Jan", "50", 1)])
    _post(session, "org-a", date(2024, 2, 1), "income", sales, alice, [("Cake", "100", 1), ("Tea", "25", 2)])
    _post(session, "org-a", date(2025, 1, 1), "expense", rent, landlord, [("Rent Jan", "60", 1)])

    other_cat = _mk_ref(session, Category, "org-b", "Sales", "income")
    other_rp = _mk_ref(session, RelatedParty, "org-b", "Bob", "income")
    _post(session, "org-b", date(2024, 1, 5), "income", other_cat, other_rp, [("Cake", "999", 1)])

    return {"sales": sales, "rent": rent, "alice": alice, "landlord": landlord}


def test_monthly_buckets_in_date_order(session, ledger):
    rows = aggregate(session, "monthly", "org-a", date(2024, 1, 1), date(2024, 12, 31))

    assert [r.key for r in rows] == ["2024-01", "2024-02"]
    assert (rows[0].income, rows[0].expense) == (Decimal("200"), Decimal("50"))
    assert (rows[1].income, rows[1].expense) == (Decimal("150"), Decimal("0"))
    assert rows[0].net == Decimal("150")
    assert (rows[0].year, rows[0].month) == (2024, 1)


def test_yearly_buckets(session, ledger):
    rows = aggregate(session, "yearly", "org-a", date(2024, 1, 1), date(2025, 12, 31))

    assert [r.key for r in rows] == ["2024", "2025"]
    assert rows[0].income == Decimal("350")
    assert rows[1].expense == Decimal("60")


def test_category_and_related_party_buckets_use_names(session, ledger):
    by_cat = aggregate(session, "category", "org-a", date(2024, 1, 1), date(2025, 12, 31))
    assert [(r.label, r.type) for r in by_cat] == [("Sales", "income"), ("Rent", "expense")]
    assert by_cat[0].key == ledger["sales"].id
    assert by_cat[0].income == Decimal("350")
    assert by_cat[1].expense == Decimal("110")

    by_party = aggregate(session, "related-party", "org-a", date(2024, 1, 1), date(2025, 12, 31))
    assert [r.label for r in by_party] == ["Alice", "Landlord"]


def test_reports_are_idempotent(session, ledger):
    args = ("org-a", date(2024, 1, 1), date(2025, 12, 31))
    for kind in ("monthly", "yearly", "category", "related-party"):
        assert aggregate(session, kind, *args) == aggregate(session, kind, *args)


def test_empty_and_reversed_ranges(session, ledger):
    assert aggregate(session, "monthly", "org-a", date(2030, 1, 1), date(2030, 12, 31)) == []
    assert aggregate(session, "monthly", "org-a", date(2024, 12, 31), date(2024, 1, 1)) == []


def test_reports_never_include_other_organizations(session, ledger):
    rows = aggregate(session, "monthly", "org-b", date(2024, 1, 1), date(2025, 12, 31))
    assert len(rows) == 1
    assert rows[0].income == Decimal("999")

    ours = aggregate(session, "monthly", "org-a", date(2024, 1, 1), date(2024, 1, 31))
    assert ours[0].income == Decimal("200")


def test_missing_category_name_falls_back(session, ledger, engine):
    # simulate an orphaned reference left behind by an older schema
    with engine.begin() as conn:
        conn.execute(delete(Category).where(Category.id == ledger["rent"].id))

    rows = aggregate(session, "category", "org-a", date(2024, 1, 1), date(2025, 12, 31))
    assert [r.label for r in rows] == ["Sales", MISSING_LABEL]
    assert rows[1].expense == Decimal("110")


def test_item_report_groups_by_name_and_type(session, ledger):
    rows = item_report(session, "org-a", date(2024, 1, 1), date(2025, 12, 31))

    by_key = {r.key: r for r in rows}
    assert by_key["Cake-income"].quantity == 3
    assert by_key["Cake-income"].total_amount == Decimal("300")
    assert by_key["Tea-income"].total_amount == Decimal("50")
    assert by_key["Rent Jan-expense"].quantity == 2
    assert by_key["Rent Jan-expense"].total_amount == Decimal("110")


def test_summary_report_splits_by_type(session, ledger):
    out = summary_report(session, "org-a", date(2024, 1, 1), date(2024, 12, 31))

    assert out["income"].total == Decimal("350")
    assert out["income"].transaction_count == 2
    assert [(n.name, n.total) for n in out["income"].categories] == [("Sales", Decimal("350"))]
    assert [(n.name, n.quantity) for n in out["income"].items] == [("Cake", 3), ("Tea", 2)]
    assert out["expense"].total == Decimal("50")
    assert [n.name for n in out["expense"].related_parties] == ["Landlord"]


def test_build_report_applies_transaction_type_filter(session, ledger):
    rows = build_report(session, "category", "org-a", date(2024, 1, 1), date(2025, 12, 31), "expense")
    assert [r.label for r in rows] == ["Rent"]

    items = build_report(session, "items", "org-a", date(2024, 1, 1), date(2025, 12, 31), "income")
    assert {r.label for r in items} == {"Cake", "Tea"}

    summary = build_report(session, "summary", "org-a", date(2024, 1, 1), date(2025, 12, 31), "income")
    assert summary.type == "income"


def test_build_report_rejects_unknown_kind_and_filter(session):
    with pytest.raises(ValidationError) as ei:
        build_report(session, "weekly", "org-a", date(2024, 1, 1), date(2024, 1, 2), "both")
    assert set(ei.value.errors) == {"type", "transaction_type"}
