"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from minyan.config import MinyanConfig
from minyan.database.models import Base, Synagogue, User
from minyan.services.prayer_times import PrayerTimeResolver

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Minyan Finder tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` behind ``run_db`` and by the
    TestClient's worker thread).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cfg() -> MinyanConfig:
    return MinyanConfig()


def add_synagogue(engine: Engine, **overrides) -> str:
    """Insert a synagogue (Jerusalem defaults) and return its id."""
    values = {
        "name": "Beit Knesset HaGadol",
        "address": "King George 56",
        "city": "Jerusalem",
        "latitude": 31.7767,
        "longitude": 35.2345,
        "nusach": "ASHKENAZ",
    }
    values.update(overrides)
    with Session(engine) as session:
        s = Synagogue(**values)
        session.add(s)
        session.commit()
        return s.id


def add_user(engine: Engine, user_id: str, name: str, trust_score: int = 50) -> None:
    with Session(engine) as session:
        session.add(User(id=user_id, name=name, trust_score=trust_score))
        session.commit()


def minutes_ago(n: int) -> datetime:
    return BASE_TIME - timedelta(minutes=n)


@pytest.fixture
def client(db_engine: Engine, cfg: MinyanConfig):
    """FastAPI TestClient wired to the in-memory engine.

    The resolver has no remote providers, so prayer times are always the
    local calculation and no network is touched.
    """
    from fastapi.testclient import TestClient

    from minyan.api.deps import get_config, get_engine, get_resolver
    from minyan.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: cfg
    app.dependency_overrides[get_resolver] = lambda: PrayerTimeResolver([])
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
