# -*- coding: utf-8 -*-
# groupshop/app/core/database_core.py
# =============================================================================
# Назначение кода:
#   • Единая точка работы с БД GroupShop Bot (PostgreSQL + asyncpg +
#     SQLAlchemy 2.0).
#   • Декларативная база моделей (Base) с единым naming convention и схемой.
#   • Создание и конфигурация AsyncEngine и async_sessionmaker.
#   • Безопасная выдача сессий для FastAPI-роутов, бота и сервисов.
#   • Health-утилита db_ping и закрытие пула при остановке (dispose_engine).
#
# Канон / инварианты:
#   • Только async-движок (create_async_engine), никаких sync-engine.
#   • DSN берём из Settings.database_url_asyncpg() — единый источник истины.
#   • Сессии expire_on_commit=False (объекты валидны после commit).
#   • Одна транзакция на апдейт/запрос: session.begin() вокруг сервисов.
#
# ИИ-защита:
#   • db_ping() для healthcheck и самопроверки перед стартом бота.
#
# Запреты:
#   • Никакой бизнес-логики (кошелёк, склад, заказы) в этом модуле.
# =============================================================================

from __future__ import annotations

import asyncio
from typing import Any, AsyncGenerator, Dict, Optional, Tuple

from sqlalchemy import MetaData, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from groupshop.app.core.config_core import get_settings
from groupshop.app.core.logging_core import get_logger

logger = get_logger(__name__)
settings = get_settings()

# Схема таблиц магазина; пустая строка — схема по умолчанию (public / sqlite).
SCHEMA: Optional[str] = settings.DB_SCHEMA or None

NAMING_CONVENTION: Dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Декларативная база всех ORM-моделей магазина."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def table_args(*items: Any) -> Tuple[Any, ...]:
    """
    Собирает __table_args__ с учётом схемы:
        __table_args__ = table_args(UniqueConstraint(...), Index(...))
    """
    if SCHEMA:
        return (*items, {"schema": SCHEMA})
    return tuple(items)


def fk_target(target: str) -> str:
    """Цель внешнего ключа с учётом схемы: 'users.id' → 'groupshop.users.id'."""
    return f"{SCHEMA}.{target}" if SCHEMA else target


# -----------------------------------------------------------------------------
# Глобальные объекты: движок и фабрика сессий
# -----------------------------------------------------------------------------
_engine: Optional[AsyncEngine] = None
_SessionFactory: Optional[async_sessionmaker[AsyncSession]] = None
_engine_lock = asyncio.Lock()


def _create_engine() -> AsyncEngine:
    """
    Создаёт новый AsyncEngine на базе актуальных настроек.

    Особенности:
    • DSN приводится к asyncpg-формату через Settings.database_url_asyncpg().
    • Включён pool_pre_ping для раннего обнаружения "умерших" соединений.
    • echo включается только в DEBUG-режиме.
    """
    dsn = settings.database_url_asyncpg()
    logger.info("Creating async DB engine", extra={"dsn_set": bool(dsn)})
    kwargs: Dict[str, Any] = {"pool_pre_ping": True, "echo": settings.DEBUG}
    if dsn.startswith("postgresql"):
        kwargs.update(pool_size=settings.DB_POOL_SIZE, max_overflow=settings.DB_MAX_OVERFLOW)
    return create_async_engine(dsn, **kwargs)


def _create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Строит async_sessionmaker поверх переданного движка.

    • expire_on_commit=False — объекты остаются валидными после commit().
    • autoflush=False — явный контроль flush в сервисах.
    """
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


async def dispose_engine() -> None:
    """Закрывает пул соединений при остановке процесса (бот/API)."""
    global _engine, _SessionFactory

    async with _engine_lock:
        if _engine is not None:
            await _engine.dispose()
        _engine = None
        _SessionFactory = None
        logger.info("DB engine disposed")


def get_engine() -> AsyncEngine:
    """Возвращает текущий AsyncEngine (создаёт лениво при первом вызове)."""
    global _engine, _SessionFactory

    if _engine is None:
        _engine = _create_engine()
        _SessionFactory = _create_session_factory(_engine)
        logger.info("DB engine lazily initialized")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Возвращает фабрику сессий (гарантирует, что движок создан)."""
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = _create_session_factory(get_engine())
        logger.info("Session factory initialized")
    return _SessionFactory


# -----------------------------------------------------------------------------
# FastAPI-совместимая зависимость
# -----------------------------------------------------------------------------
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Зависимость для FastAPI-роутов.

        SessionDep = Annotated[AsyncSession, Depends(get_db)]

    Транзакцией управляет вызывающий код (async with db.begin()).
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception as exc:
        logger.exception("DB session error", extra={"error": str(exc)})
        raise
    finally:
        await session.close()


async def create_all() -> None:
    """Создаёт схему и таблицы (для локального запуска без Alembic)."""
    import groupshop.app.models  # noqa: F401  регистрирует модели в metadata

    engine = get_engine()
    async with engine.begin() as conn:
        if SCHEMA and engine.dialect.name == "postgresql":
            await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{SCHEMA}"'))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("DB schema ensured", extra={"schema": SCHEMA or "default"})


# -----------------------------------------------------------------------------
# Health-check / ping
# -----------------------------------------------------------------------------
async def db_ping() -> bool:
    """
    Простейший health-check БД: True — если SELECT 1 прошёл.

    Используется в /health и перед запуском бота.
    """
    engine = get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (OperationalError, DBAPIError) as exc:
        logger.error("DB ping failed: DB is not reachable", extra={"error": str(exc)})
        return False


__all__ = [
    "SCHEMA",
    "Base",
    "table_args",
    "fk_target",
    "AsyncSession",
    "AsyncEngine",
    "get_engine",
    "get_session_factory",
    "get_db",
    "create_all",
    "db_ping",
    "dispose_engine",
]
# =============================================================================
# Пояснения «для чайника»:
#   • Движок создаётся лениво: импорт модуля не требует живой БД, поэтому
#     Alembic и тесты спокойно импортируют модели.
#   • DB_SCHEMA="" в тестах — таблицы создаются в схеме по умолчанию SQLite.
# =============================================================================
