"""
Общие фикстуры тестов GroupShop.

Ключевое:
1. Окружение (ENV=test, пустая схема, SQLite) выставляется ДО импорта
   groupshop: database_core читает настройки при импорте.
2. Каждый тест получает свою in-memory базу (StaticPool, одно соединение).
3. Settings собираются явно, без .env, и передаются сервисам конструктором.
4. Фабрики пользователей/товаров и фейковый бот для уведомлений.
"""

import os

os.environ["ENV"] = "test"
os.environ["DB_SCHEMA"] = ""
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiogram.exceptions import TelegramBadRequest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import groupshop.app.models  # noqa: F401  регистрирует таблицы в metadata
from groupshop.app.core.config_core import Settings
from groupshop.app.core.database_core import Base
from groupshop.app.services.catalog_service import CatalogService
from groupshop.app.services.stock_service import StockLedger
from groupshop.app.services.users_service import UsersService

ADMIN_ID = 900
SECOND_ADMIN_ID = 901
ADMIN_API_KEY = "test-admin-key"


# ---------------------------------------------------------------------------
# Настройки
# ---------------------------------------------------------------------------
def build_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        ENV="test",
        DB_SCHEMA="",
        DATABASE_URL="sqlite+aiosqlite://",
        BOT_TOKEN="123456:TEST",
        ADMIN_IDS=[ADMIN_ID, SECOND_ADMIN_ID],
        ADMIN_API_KEY=ADMIN_API_KEY,
        USDT_ADDRESS_TRC20="TTestTrc20Address",
        USDT_ADDRESS_BEP20="0xTestBep20Address",
        MIN_DEPOSIT=Decimal("1"),
        SUPPORT_TIMEOUT_SEC=3600,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return build_settings()


# ---------------------------------------------------------------------------
# База данных
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ---------------------------------------------------------------------------
# Фабрики данных
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def make_user(session, settings):
    """make_user(telegram_id, balance="0", **profile) → User (flush, без commit)."""

    async def _make(telegram_id: int = 1001, balance: str = "0", **profile: Any):
        profile.setdefault("username", f"user{telegram_id}")
        profile.setdefault("first_name", "Test")
        user, _ = await UsersService(session, settings).find_or_create(telegram_id, **profile)
        user.balance = Decimal(balance)
        await session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def offer(session, settings):
    """offer(type, year, month, qty) — каталог + склад для ключа товара."""

    async def _offer(product_type: str = "group", year: int = 2024, month: str = "January", qty: int = 10):
        await CatalogService(session, settings).add_catalog(product_type, year, [month], admin_id=ADMIN_ID)
        return await StockLedger(session, settings).add(product_type, year, month, qty, admin_id=ADMIN_ID)

    return _offer


# ---------------------------------------------------------------------------
# Фейковый бот
# ---------------------------------------------------------------------------
def telegram_error(message: str = "Bad Request: chat not found") -> TelegramBadRequest:
    return TelegramBadRequest(method=MagicMock(), message=message)


class FakeBot:
    """
    Минимальный Bot для уведомлений: запоминает отправленное; chat_id из
    failing получает TelegramBadRequest.
    """

    def __init__(self, failing: List[int] | None = None, statuses: Dict[str, str] | None = None) -> None:
        self.failing = set(failing or [])
        self.statuses = statuses or {}
        self.sent: List[Dict[str, Any]] = []
        self.send_message = AsyncMock(side_effect=self._send_message)
        self.send_photo = AsyncMock(side_effect=self._send_photo)
        self.copy_message = AsyncMock(side_effect=self._copy_message)
        self.get_chat_member = AsyncMock(side_effect=self._get_chat_member)

    def _check(self, chat_id: Any) -> None:
        if chat_id in self.failing:
            raise telegram_error()

    async def _send_message(self, chat_id: Any, text: str, **kwargs: Any) -> None:
        self._check(chat_id)
        self.sent.append({"kind": "message", "chat_id": chat_id, "text": text, **kwargs})

    async def _send_photo(self, chat_id: Any, photo: str, **kwargs: Any) -> None:
        self._check(chat_id)
        self.sent.append({"kind": "photo", "chat_id": chat_id, "photo": photo, **kwargs})

    async def _copy_message(self, chat_id: Any, from_chat_id: Any, message_id: int) -> None:
        self._check(chat_id)
        self.sent.append({"kind": "copy", "chat_id": chat_id, "message_id": message_id})

    async def _get_chat_member(self, chat_id: Any, user_id: int) -> SimpleNamespace:
        status = self.statuses.get(str(chat_id))
        if status is None:
            raise telegram_error("Bad Request: member list is inaccessible")
        return SimpleNamespace(status=status)


@pytest.fixture
def fake_bot() -> FakeBot:
    return FakeBot()
