"""
Alembic environment for the `videos` schema.

Migrations always run through the async engine builder used by the app,
with a NullPool so the CLI never holds connections open.
"""

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.pool import NullPool

from app.core.config import settings
from app.db.base import Base
from app.db.session import build_engine, derive_async_url

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

# VIDEODROP_MIGRATION_URL lets CI migrate a scratch database
migration_url = derive_async_url(os.getenv("VIDEODROP_MIGRATION_URL") or settings.DATABASE_URL)
config.set_main_option("sqlalchemy.url", migration_url)


def _configure(**kwargs) -> None:
    context.configure(target_metadata=Base.metadata, compare_type=True, **kwargs)


def migrate_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    _configure(url=migration_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _migrate_sync(connection: Connection) -> None:
    _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
    with context.begin_transaction():
        context.run_migrations()


async def migrate_online() -> None:
    engine = build_engine(migration_url, poolclass=NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    migrate_offline()
else:
    asyncio.run(migrate_online())
