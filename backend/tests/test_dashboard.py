from datetime import date
from decimal import Decimal

from cashlog.models.category import Category
from cashlog.models.related_party import RelatedParty
from cashlog.seed import seed_organization
from cashlog.services import dashboard
from cashlog.services.posting import Posting, PostingItem, post_transaction


def _mk_refs(session, org="org-a"):
    seed_organization(session, org, "u1")
    cats = {c.name: c for c in session.query(Category).filter_by(organization_id=org)}
    parties = {p.type: p for p in session.query(RelatedParty).filter_by(organization_id=org)}
    return cats, parties


def _post(session, cats, parties, d, cat_name, amount, org="org-a"):
    cat = cats[cat_name]
    return post_transaction(
        session,
        Posting(
            organization_id=org,
            user_id="u1",
            date=d,
            type=cat.type,
            description=cat_name,
            category_id=cat.id,
            related_party_id=parties[cat.type].id,
            items=[PostingItem(cat_name, Decimal(amount), 1)],
        ),
    )


def test_seed_is_repeatable(session):
    first = seed_organization(session, "org-a", "u1")
    assert first > 0
    assert seed_organization(session, "org-a", "u1") == 0


def test_stats_and_category_stats(session):
    cats, parties = _mk_refs(session)
    _post(session, cats, parties, date(2024, 4, 1), "Penjualan", "1000")
    _post(session, cats, parties, date(2024, 4, 2), "Bahan Baku", "300")
    _post(session, cats, parties, date(2024, 4, 3), "Operasional", "200")

    st = dashboard.stats(session, "org-a")
    assert st["total_income"] == Decimal("1000")
    assert st["total_expense"] == Decimal("500")
    assert st["balance"] == Decimal("500")
    assert st["transaction_count"] == 3

    assert dashboard.stats(session, "org-a", date(2024, 4, 2), date(2024, 4, 2))["total_expense"] == Decimal("300")

    cs = dashboard.category_stats(session, "org-a")
    assert [(c["category"], c["total"]) for c in cs["income"]] == [("Penjualan", Decimal("1000"))]
    assert [c["category"] for c in cs["expense"]] == ["Bahan Baku", "Operasional"]


def test_profit_loss_separates_cost_of_goods(session):
    cats, parties = _mk_refs(session)
    _post(session, cats, parties, date(2024, 4, 1), "Penjualan", "1000")
    _post(session, cats, parties, date(2024, 4, 2), "Bahan Baku", "300")
    _post(session, cats, parties, date(2024, 4, 3), "Tenaga Kerja", "100")
    _post(session, cats, parties, date(2024, 4, 4), "Operasional", "200")

    pl = dashboard.profit_loss(session, "org-a", date(2024, 4, 1), date(2024, 4, 30))

    assert pl["revenue"] == Decimal("1000")
    assert pl["cost_of_goods"] == Decimal("400")
    assert pl["gross_profit"] == Decimal("600")
    assert pl["operating_expense"] == Decimal("200")
    assert pl["profit"] == Decimal("400")


def test_daily_history_is_zero_filled(session):
    cats, parties = _mk_refs(session)
    _post(session, cats, parties, date(2024, 4, 8), "Penjualan", "75")

    points = dashboard.daily_history(session, "org-a", today=date(2024, 4, 10), days=5)

    assert [p["date"] for p in points][0] == date(2024, 4, 5)
    assert points[-1]["date"] == date(2024, 4, 10)
    assert len(points) == 6
    by_day = {p["date"]: p for p in points}
    assert by_day[date(2024, 4, 8)]["income"] == Decimal("75")
    assert by_day[date(2024, 4, 9)]["income"] == Decimal("0")


def test_recent_and_period_history(session):
    cats, parties = _mk_refs(session)
    _post(session, cats, parties, date(2023, 12, 1), "Penjualan", "10")
    _post(session, cats, parties, date(2024, 1, 1), "Penjualan", "20")
    _post(session, cats, parties, date(2024, 2, 1), "Operasional", "5")

    assert len(dashboard.recent(session, "org-a", limit=2)) == 2

    hist = dashboard.period_history(session, "org-a")
    assert [h["year"].year for h in hist] == [2023, 2024]
    assert [(m.year, m.month) for m in hist[1]["months"]] == [(2024, 1), (2024, 2)]

    only = dashboard.period_history(session, "org-a", year=2024)
    assert len(only) == 1
    assert Decimal(str(only[0]["year"].total_expense)) == Decimal("5")
