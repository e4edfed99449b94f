"""
Async SQLAlchemy engine & session factory.

SQLite (aiosqlite) is the default store; PostgreSQL (asyncpg) gets a
tuned connection pool. Foreign keys are switched on for SQLite so the
employee -> supervisor / schedule links are enforced like on PostgreSQL.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from timeevidence.core.config import settings

SQLITE_BUSY_TIMEOUT_SECONDS = 15


def is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def engine_options(url: str) -> dict[str, Any]:
    """Engine keyword arguments for the given database URL."""
    options: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        # Request handlers and the lifespan share connections across threads.
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
        }
    elif backend == "postgresql":
        options.update(pool_size=20, max_overflow=10, pool_recycle=300)
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

if is_sqlite(settings.DATABASE_URL):
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
