"""
Alembic migration environment for the ticket pool schema.
Runs with the synchronous driver; the application itself uses the async one.
SQLite targets get batch mode so ALTERs work there too.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

import ticketpool.models  # noqa: F401 - Register tables for autogenerate
from ticketpool.core.config import get_settings
from ticketpool.db.base import Base

config = context.config
settings = get_settings()

config.set_main_option("sqlalchemy.url", settings.DATABASE_URL_SYNC)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
render_as_batch = settings.DATABASE_URL_SYNC.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit the migration as SQL without a database connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=render_as_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
