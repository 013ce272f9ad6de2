"""Alembic environment for the intake tables.

Migrations run synchronously over psycopg2.  The database URL comes from
``intake_db.config`` unless overridden on the command line::

    alembic upgrade head
    alembic -x url=postgresql://user:pw@host/db upgrade head
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from intake_db.config import get_sync_url
from intake_db.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

url_override = context.get_x_argument(as_dictionary=True).get("url")
config.set_main_option("sqlalchemy.url", url_override or get_sync_url())

CONFIGURE_OPTS = {
    "target_metadata": Base.metadata,
    # JSONB / SmallInteger changes must show up in autogenerate
    "compare_type": True,
}


def run_migrations_offline() -> None:
    """Write the SQL script to stdout instead of executing it."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply revisions over a single, unpooled connection."""
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, **CONFIGURE_OPTS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
