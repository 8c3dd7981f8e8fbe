import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cashlog.db.base import Base
import cashlog.models.registry  # noqa: F401


@pytest.fixture()
def engine(tmp_path):
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'cashlog.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def session(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()
