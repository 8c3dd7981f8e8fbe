import threading
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import sessionmaker

from cashlog.db.base import Base
from cashlog.models.category import Category
from cashlog.models.history import MonthHistory
from cashlog.models.related_party import RelatedParty
from cashlog.services.posting import Posting, PostingItem, post_transaction


@pytest.fixture()
def locking_factory(tmp_path):
    # sqlite serializes writers; BEGIN IMMEDIATE makes the second one wait instead of deadlocking
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'concurrent.db'}",
        future=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(eng, "connect")
    def _connect(dbapi_conn, _rec):
        dbapi_conn.isolation_level = None

    @event.listens_for(eng, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(eng)
    try:
        yield sessionmaker(bind=eng, autoflush=False, future=True)
    finally:
        eng.dispose()


def test_concurrent_postings_to_same_month_lose_nothing(locking_factory):
    with locking_factory() as s:
        cat = Category(name="Sales", type="income", organization_id="org-a", user_id="u1")
        rp = RelatedParty(name="Walk-in", type="income", organization_id="org-a", user_id="u1")
        s.add_all([cat, rp])
        s.commit()
        cat_id, rp_id = cat.id, rp.id

    workers = 4
    barrier = threading.Barrier(workers)
    errors = []

    def worker():
        barrier.wait()
        with locking_factory() as s:
            try:
                post_transaction(
                    s,
                    Posting(
                        organization_id="org-a",
                        user_id="u1",
                        date=date(2024, 12, 5),
                        type="income",
                        description="counter sale",
                        category_id=cat_id,
                        related_party_id=rp_id,
                        items=[PostingItem("Item", Decimal("100"), 1)],
                    ),
                )
            except Exception as e:  # collected and asserted below
                errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with locking_factory() as s:
        mh = s.execute(
            select(MonthHistory).where(
                MonthHistory.organization_id == "org-a", MonthHistory.year == 2024, MonthHistory.month == 12
            )
        ).scalar_one()
        assert Decimal(str(mh.total_income)) == Decimal("400")
