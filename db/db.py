"""
Async engine / session plumbing for the lifecycle store.
Uses SQLAlchemy 2.0 with asyncpg (PostgreSQL) or aiosqlite (SQLite, dev/tests).
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from sqlalchemy import DateTime, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

_LOGGER = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────
# 1. Declarative metadata
# ──────────────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp stored as UTC.

    Naive datetimes are rejected on the way in. SQLite hands values back
    without tzinfo, so results are re-tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError(f"datetime {value!r} must be timezone-aware")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────────────────────────────
# 2. Lazy engine / session factory
# ──────────────────────────────────────────────────────────────────────
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def _build_url() -> str:
    url = os.getenv("DATABASE_URL") or os.getenv("DATABASE_PUBLIC_URL")
    if not url:
        raise RuntimeError("DATABASE_URL not set")
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if "+asyncpg" not in url and not url.startswith("sqlite+"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1).replace(
            "postgresql://", "postgresql+asyncpg://", 1
        )
    return url


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """Foreign keys on, and every transaction begins IMMEDIATE.

    IMMEDIATE takes the write lock up front so concurrent writers queue on
    the busy timeout instead of failing on a lock upgrade.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # take over BEGIN emission from the driver
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        url = _build_url()
        echo = os.getenv("SQL_ECHO", "").lower() == "true"
        if url.startswith("sqlite"):
            _engine = create_async_engine(url, echo=echo)
            _install_sqlite_hooks(_engine)
        else:
            _engine = create_async_engine(url, pool_size=5, max_overflow=5, echo=echo)
        _LOGGER.debug("Created engine for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_session() -> AsyncSession:
    """Return a new session; use as ``async with get_session() as s:``."""
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_maker()


# ──────────────────────────────────────────────────────────────────────
# 3. DDL helper (tests / local dev; production uses Alembic)
# ──────────────────────────────────────────────────────────────────────
async def create_all() -> None:
    from db import models  # noqa: F401  (register tables on Base.metadata)

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
    _session_maker = None
