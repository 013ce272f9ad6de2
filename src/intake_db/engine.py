"""Process-wide async engine for the transcript store.

One engine (and one connection pool) per process, created on first use.
Pool settings come from the environment:

    PG_POOL_SIZE       persistent connections (default 5)
    PG_MAX_OVERFLOW    extra connections under burst (default 10)
    PG_POOL_RECYCLE    seconds before a connection is replaced (default 1800)
    PG_ECHO            "1" logs every statement
"""

import logging
import os

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from intake_db.config import get_async_url

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            get_async_url(),
            echo=os.getenv("PG_ECHO") == "1",
            pool_size=int(os.getenv("PG_POOL_SIZE", "5")),
            max_overflow=int(os.getenv("PG_MAX_OVERFLOW", "10")),
            pool_recycle=int(os.getenv("PG_POOL_RECYCLE", "1800")),
            pool_pre_ping=True,
        )
        logger.info("Created database engine for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the shared engine.

    ``expire_on_commit`` is off: the store converts rows to pydantic
    models after the transaction block has committed.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def ping() -> None:
    """Round-trip ``SELECT 1``; raises if the database is unreachable."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def dispose_engine() -> None:
    """Close every pooled connection.  Safe to call when no engine exists."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
