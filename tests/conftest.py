import itertools
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

import db
from db import channels

_user_ids = itertools.count(1000)


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'lifecycle.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    return url


@pytest_asyncio.fixture
async def database(db_url):
    """Fresh SQLite file per test, schema created from the models."""
    await db.dispose_engine()
    await db.create_all()
    yield
    await db.dispose_engine()


@pytest.fixture
def user_id():
    return next(_user_ids)


@pytest.fixture
def now():
    return datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def hours(now):
    def _at(n: float) -> datetime:
        return now + timedelta(hours=n)
    return _at


@pytest_asyncio.fixture
async def channel(database, user_id):
    return await channels.create_channel(user_id, "whatsapp", "+15550001", "Alice")
