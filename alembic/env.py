"""Alembic environment for the document store schema.

The database URL comes from studyquest.core.config, so migrations and
the running service always point at the same database.  The service
talks asyncpg; migrations run synchronously through psycopg2.
"""

from __future__ import annotations

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from studyquest.core.config import SETTINGS
from studyquest.db.engine import Base

config = context.config

if SETTINGS.database_url:
    config.set_main_option(
        "sqlalchemy.url",
        SETTINGS.database_url.replace("postgresql+asyncpg", "postgresql"),
    )

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Registers DocumentRow on Base.metadata for autogenerate.
import studyquest.db.tables  # noqa: E402, F401

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
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
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
