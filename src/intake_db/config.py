"""Database connection settings, read from the environment.

``DATABASE_URL`` wins when set; otherwise the URL is assembled from
``PG_HOST``, ``PG_PORT``, ``PG_USER``, ``PG_PASSWORD`` and ``PG_DATABASE``.
Any of the usual spellings is accepted (``postgres://``, ``postgresql://``,
``postgresql+asyncpg://``, ``postgresql+psycopg2://``) and rewritten to the
driver each caller needs:

    get_sync_url()   psycopg2, for Alembic
    get_async_url()  asyncpg, for the runtime engine
"""

import os
import re

# Scheme plus optional "+driver" at the start of a PostgreSQL URL
_SCHEME_RE = re.compile(r"^postgres(?:ql)?(?:\+\w+)?://")


def _raw_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    return "postgresql://{user}:{password}@{host}:{port}/{database}".format(
        user=os.getenv("PG_USER", "intake"),
        password=os.getenv("PG_PASSWORD", "intake"),
        host=os.getenv("PG_HOST", "localhost"),
        port=os.getenv("PG_PORT", "5432"),
        database=os.getenv("PG_DATABASE", "intake"),
    )


def _with_driver(url: str, driver: str | None) -> str:
    scheme = f"postgresql+{driver}://" if driver else "postgresql://"
    return _SCHEME_RE.sub(scheme, url, count=1)


def get_sync_url() -> str:
    """Connection URL for Alembic's synchronous runner (psycopg2)."""
    return _with_driver(_raw_url(), None)


def get_async_url() -> str:
    """Connection URL for the async engine (asyncpg)."""
    return _with_driver(_raw_url(), "asyncpg")
