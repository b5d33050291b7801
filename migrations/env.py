"""Alembic environment configuration.

The database URL comes from todo_manager Settings (DATABASE_URL), so the
same environment variables drive both the app and its migrations.
"""

from __future__ import annotations

from alembic import context
from sqlalchemy import engine_from_config, pool

from todo_manager import db_models  # noqa: F401  (register tables)
from todo_manager.config import Settings
from todo_manager.db import Base

config = context.config
target_metadata = Base.metadata


def _database_url() -> str:
    return Settings().DATABASE_URL


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode: emits SQL to stdout."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_database_url().startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode: connects to the database."""
    cfg = config.get_section(config.config_ini_section, {})
    cfg["sqlalchemy.url"] = _database_url()

    connectable = engine_from_config(
        cfg,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER most constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
