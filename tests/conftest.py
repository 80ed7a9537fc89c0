from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from adsync import crud
from adsync.config import Settings
from adsync.db import Database
from adsync.main import create_app

NOW = datetime(2026, 1, 2, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database():
    # one shared in-memory connection so every session sees the same data
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    database = Database(engine=engine)
    database.create_schema()
    yield database
    database.close()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        auth_tokens={"alice-token": "alice", "bob-token": "bob"},
        scheduler_enabled=False,
    )


@pytest.fixture
def client(settings, database, clock):
    app = create_app(settings, database=database, clock=clock)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def alice():
    return {"Authorization": "Bearer alice-token", "X-Device-Id": "alice-phone"}


@pytest.fixture
def bob():
    return {"X-API-Key": "bob-token", "X-Device-Id": "bob-tablet"}


@pytest.fixture
def make_ad(db):
    def _make(ad_id, owner="alice", ts=NOW, **overrides):
        data = {
            "ad_id": ad_id,
            "owner_id": owner,
            "device_id": "alice-phone",
            "title": "Bicycle",
            "description": "Red city bike, barely used",
            "price": "R$ 350,00",
            "category": "Outros",
            "contact": "+55 11 5555-0100",
            "images": [],
            "created_at": ts,
            "updated_at": ts,
            "is_deleted": False,
        }
        data.update(overrides)
        return crud.insert_advertisement(db, data)
    return _make
