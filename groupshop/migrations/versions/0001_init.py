# -*- coding: utf-8 -*-
"""Начальная миграция GroupShop.

Назначение:
    • Создать схему DB_SCHEMA (если задана) и все таблицы из ORM-моделей:
      users, wallet_transactions, orders, stock, pricing, catalogs,
      catalog_months.

Канон/инварианты:
    • Таблицы создаются из Declarative Base, поэтому миграция и модели не
      расходятся (UNIQUE-ключи товара, CHECK-ограничения счётчиков,
      индекс wallet_transactions(user_id, created_at)).
    • checkfirst=True: повторный запуск не ломает БД.
"""

from __future__ import annotations

from alembic import op
from sqlalchemy import text

from groupshop.app.core.database_core import SCHEMA, Base
from groupshop.app.core.logging_core import get_logger
from groupshop.app.models import MODEL_REGISTRY

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels = None
depends_on = None

logger = get_logger(__name__)

# Импорт реестра регистрирует все модели в Base.metadata
_ = MODEL_REGISTRY


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def upgrade() -> None:
    """Создать схему и все таблицы/индексы из моделей."""

    bind = op.get_bind()
    if SCHEMA and _is_postgres():
        logger.info("Creating schema if missing", extra={"schema": SCHEMA})
        bind.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{SCHEMA}"'))
    Base.metadata.create_all(bind=bind, checkfirst=True)


def downgrade() -> None:
    """Удалить таблицы GroupShop (схему — только если она своя)."""

    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind, checkfirst=True)
    if SCHEMA and _is_postgres():
        logger.info("Dropping schema (cascade)", extra={"schema": SCHEMA})
        bind.execute(text(f'DROP SCHEMA IF EXISTS "{SCHEMA}" CASCADE'))
