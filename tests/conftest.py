# tests/conftest.py
import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from scan_detector.detector import ScanDetector
from tests.helpers import Base, FakeEngine, InlineExecutor, User


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def make_detector(inline_executor):
    """Build a detector over a FakeEngine returning the given plan rows."""
    def _make(rows=(), error=None, close_error=None):
        engine = FakeEngine(rows, error, close_error)
        return ScanDetector(engine, executor=inline_executor), engine
    return _make


@pytest.fixture
def sqlite_engine(tmp_path):
    """File-backed SQLite with a seeded users table."""
    engine = create_engine(f"sqlite:///{tmp_path / 'app.db'}", future=True)
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        s.add_all([
            User(id=42, name="Bob", created_at=datetime.datetime(2019, 3, 25, 14, 25)),
            User(id=7, name="Alice", created_at=datetime.datetime(2020, 1, 1, 9, 0)),
        ])
        s.commit()
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return sessionmaker(bind=sqlite_engine, future=True)
