# -*- coding: utf-8 -*-
"""Alembic environment для GroupShop (async SQLAlchemy).

Назначение:
    • DSN берётся из config_core (DATABASE_URL → postgresql+asyncpg).
    • target_metadata — Base.metadata со всеми моделями groupshop.app.models.
    • Таблица версий alembic_version живёт в DB_SCHEMA (если задана).

Запреты:
    • Никакой бизнес-логики: только подключение и запуск версий.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from groupshop.app.core.config_core import get_settings
from groupshop.app.core.database_core import SCHEMA, Base
from groupshop.app.core.logging_core import get_logger
from groupshop.app.models import MODEL_REGISTRY

config = context.config
if config.config_file_name and config.get_section("loggers"):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

logger = get_logger(__name__)
settings = get_settings()

db_url = settings.database_url_asyncpg()
config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))

target_metadata = Base.metadata
_ = MODEL_REGISTRY


def _configure_kwargs() -> dict:
    kwargs = {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "include_schemas": bool(SCHEMA),
    }
    if SCHEMA:
        kwargs["version_table_schema"] = SCHEMA
    return kwargs


def run_migrations_offline() -> None:
    """Генерация SQL без подключения к БД."""

    context.configure(
        url=db_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(),
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    # Схема нужна до создания alembic_version в ней
    if SCHEMA and connection.dialect.name == "postgresql":
        connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{SCHEMA}"'))
    context.configure(connection=connection, **_configure_kwargs())
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
        await connection.commit()
    await connectable.dispose()
    logger.info("Migrations applied", extra={"schema": SCHEMA or "default"})


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
