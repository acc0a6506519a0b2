from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import QueuePool

from process_optimizer.config import settings
from process_optimizer.core.metrics import (
    db_pool_checked_in,
    db_pool_checked_out,
    db_pool_overflow,
    db_pool_size,
)


def _engine_kwargs(url: str) -> dict[str, Any]:
    # SQLite drivers pick their own pool class; sizing options only apply to PostgreSQL.
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


def make_engine(url: str, **kwargs: Any) -> AsyncEngine:
    return create_async_engine(url, echo=False, future=True, **{**_engine_kwargs(url), **kwargs})


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine(settings.database_url)
async_session = make_session_factory(engine)


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign keys on SQLite so ON DELETE CASCADE behaves as on PostgreSQL."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _update_pool_metrics(pool: QueuePool) -> None:
    """Snapshot current pool state into Prometheus gauges."""
    db_pool_size.set(pool.size())
    db_pool_checked_in.set(pool.checkedin())
    db_pool_checked_out.set(pool.checkedout())
    db_pool_overflow.set(pool.overflow())


def _on_pool_event(*_args) -> None:
    _update_pool_metrics(engine.sync_engine.pool)  # type: ignore[arg-type]


# Update pool metrics on every checkout / checkin
if isinstance(engine.sync_engine.pool, QueuePool):
    event.listen(engine.sync_engine, "checkout", _on_pool_event)
    event.listen(engine.sync_engine, "checkin", _on_pool_event)
