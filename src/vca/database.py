"""Engine and session handling for the cohort store."""

from collections.abc import AsyncGenerator, Awaitable
from typing import Any, TypeVar

import structlog
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from vca.config import get_settings

logger = structlog.get_logger()

T = TypeVar("T")

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str) -> dict[str, Any]:
    if make_url(url).get_backend_name() == "sqlite":
        # A single shared connection keeps an in-memory database alive between sessions.
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    settings = get_settings()
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
        # Transaction-pooled connections cannot hold prepared statements.
        "connect_args": {"statement_cache_size": 0},
    }


async def init_db(url: str) -> None:
    """Create the engine for ``url`` and the session factory bound to it."""
    global _engine, _sessions  # noqa: PLW0603
    _engine = create_async_engine(url, echo=False, **_engine_options(url))
    _sessions = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)


async def close_db() -> None:
    global _engine, _sessions  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessions = None


def _not_ready() -> RuntimeError:
    return RuntimeError("Cohort store is not connected; await init_db() during startup")


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise _not_ready()
    return _engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    if _sessions is None:
        raise _not_ready()
    async with _sessions() as session:
        yield session


async def ping_database(db: AsyncSession) -> str:
    """Run a trivial query; returns "ok" or the error text."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        return f"error: {exc}"
    return "ok"


async def read_or_empty(db: AsyncSession, view: str, read: Awaitable[T], empty: T) -> T:
    """Await a read-only view; on a store failure log it, roll back and return ``empty``.

    ``read`` must not hand out ORM instances after a failure: the rollback
    expires everything the session loaded.
    """
    try:
        return await read
    except SQLAlchemyError:
        logger.exception("store_read_failed", view=view)
        await db.rollback()
        return empty
