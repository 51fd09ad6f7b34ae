from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from tenacity import retry, stop_after_attempt, wait_exponential

from app.core.config import settings
from app.core.exceptions import StoreError

log = logging.getLogger(__name__)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; in-memory SQLite shares one connection across sessions."""
    kwargs = {"future": True, "echo": echo}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite and (database_url.endswith("://") or ":memory:" in database_url):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_async_engine(database_url, **kwargs)
    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = build_engine(settings.database_url)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncSession:
    """Yield an async SQLAlchemy session."""
    async with AsyncSessionLocal() as session:
        yield session


@retry(stop=stop_after_attempt(5), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
async def init_models(bind: AsyncEngine | None = None) -> None:
    """Create all tables, retrying while the database comes up."""
    # Model modules register their tables on Base.metadata when imported.
    import app.models  # noqa: F401

    target = bind or engine
    try:
        async with target.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info(f"Database schema ready on {target.url.render_as_string(hide_password=True)}")
    except Exception as e:
        log.error(f"Error creating database schema: {e}")
        raise


def store_operation(func):
    """Translate SQLAlchemy failures escaping a service coroutine into ``StoreError``."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            log.error(f"Store failure in {func.__qualname__}: {exc}", exc_info=True)
            raise StoreError(f"{func.__name__} failed: storage unavailable") from exc

    return wrapper
