"""Alembic environment for the studio schema."""

from __future__ import annotations

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import URL, make_url
from alembic import context

from studio.core.config import get_settings
from studio.db.base import Base
from studio.models import *  # noqa: F401,F403

# Migrations run on blocking drivers; the app's async drivers map onto them.
_SYNC_DRIVERS = {
    "postgresql": "postgresql+psycopg",
    "postgresql+asyncpg": "postgresql+psycopg",
    "sqlite+aiosqlite": "sqlite",
}

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _migration_url() -> URL:
    settings = get_settings()
    url = make_url(settings.sync_database_url or settings.database_url)
    driver = _SYNC_DRIVERS.get(url.drivername)
    return url.set(drivername=driver) if driver else url


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=_migration_url().get_backend_name() == "sqlite",
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=_migration_url().render_as_string(hide_password=False),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    config.set_main_option(
        "sqlalchemy.url", _migration_url().render_as_string(hide_password=False)
    )
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
