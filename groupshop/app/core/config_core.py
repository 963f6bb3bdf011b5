# -*- coding: utf-8 -*-
# groupshop/app/core/config_core.py
# =============================================================================
# Назначение:
#   • Единый конфигурационный модуль GroupShop Bot (aiogram + FastAPI +
#     SQLAlchemy async).
#   • Канонический источник всех настроек: админы, обязательные каналы,
#     реквизиты USDT, цены по умолчанию, поддержка, языки, БД, вебхук.
#
# Канон / инварианты:
#   1) Цены по умолчанию строго > 0 (group = 5, channel = 7 USDT).
#   2) Минимальный депозит строго > 0, сети депозита только TRC20/BEP20.
#   3) Деньги — Decimal, 2 знака, округление вниз.
#   4) Настройки передаются сервисам явно (Service(session, settings)),
#      get_settings() — только точка сборки по умолчанию.
#
# ИИ-защита / самодиагностика:
#   • configure_decimal_context() настраивает Decimal (ROUND_DOWN).
#   • initialize_runtime() проверяет DSN и печатает предупреждения по
#     секретам/реквизитам, но не падает.
#   • Валидаторы отсекают опечатки в ENV (CSV, JSON каналов, языки).
#
# Запреты:
#   • Никаких секретов в коде — только ENV/.env.
#   • Никакой бизнес-логики здесь — только значения и их нормализация.
# =============================================================================

from __future__ import annotations

import json
from decimal import Decimal, ROUND_DOWN, getcontext
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Календарный порядок месяцев (канонические имена каталога).
MONTHS: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

PRODUCT_TYPES: tuple[str, ...] = ("group", "channel")
DEPOSIT_NETWORKS: tuple[str, ...] = ("TRC20", "BEP20")

LANGUAGE_TITLES: Dict[str, str] = {
    "en": "English",
    "id": "Indonesia",
    "zh": "China",
    "uz": "Uzbekistan",
    "ru": "Russia",
}


# =============================================================================
# Вспомогательные утилиты (локальные, без сетевых вызовов)
# =============================================================================


def _parse_csv(value: object) -> List[str]:
    """Преобразует CSV-строку 'a,b,c' в ['a', 'b', 'c'] (пробелы обрезаются)."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(x).strip() for x in value if str(x).strip()]
    s = str(value).strip()
    if not s:
        return []
    return [item.strip() for item in s.split(",") if item.strip()]


def _unique(items: Iterable[str]) -> List[str]:
    """Возвращает элементы без повторов, сохраняя порядок первого появления."""
    out: List[str] = []
    for item in items:
        if item not in out:
            out.append(item)
    return out


def _quantize_str(value: float | Decimal, places: int = 2) -> str:
    """Строковое представление числа с нужной точностью (ROUND_DOWN)."""
    q = Decimal(10) ** -places
    d = Decimal(str(value)).quantize(q, rounding=ROUND_DOWN)
    return f"{d:.{places}f}"


# =============================================================================
# Обязательный канал (подписка проверяется middleware бота)
# =============================================================================


class RequiredChannel(BaseModel):
    """Канал, на который пользователь обязан подписаться."""

    id: str = Field(..., description="@username или числовой chat_id канала")
    title: str = Field(..., description="Отображаемое имя канала")
    invite_link: str = Field(..., description="Ссылка-приглашение")

    @field_validator("id", mode="before")
    @classmethod
    def _v_id(cls, value: object) -> str:
        return str(value).strip()


# =============================================================================
# Док-описания полей (используются в Swagger и как подсказки «для чайника»)
# =============================================================================


class _Doc:
    # Приложение
    PROJECT_NAME = "Имя проекта (отображается в Swagger/health/логах)."
    ENV = "Окружение: production/dev/local (нормализуется в prod/dev/local)."
    DEBUG = "Расширенные логи и трассировки (только для dev/local)."
    APP_VERSION = "Версия приложения (попадает в /health)."
    APP_HOST = "Адрес для uvicorn (обычно 0.0.0.0)."
    APP_PORT = "Порт для uvicorn (например, 8000)."
    API_PREFIX = "Префикс REST API, например /api."

    # БД
    DATABASE_URL = (
        "DSN PostgreSQL. "
        "Будет автоматически приведён к async (postgresql+asyncpg://)."
    )
    DB_POOL_SIZE = "Размер пула соединений SQLAlchemy."
    DB_MAX_OVERFLOW = "Дополнительные соединения в пике."
    DB_SCHEMA = "Схема PostgreSQL для таблиц магазина (пусто — схема по умолчанию)."

    # Telegram
    BOT_TOKEN = "Токен бота."
    ADMIN_IDS = "Telegram ID администраторов (CSV)."
    ADMIN_USERNAME = "Username админа для кнопки «связаться» (без @)."
    ADMIN_API_KEY = "Ключ админ-API (заголовок X-Admin-Api-Key)."
    REQUIRED_CHANNELS = "JSON-список обязательных каналов [{id,title,invite_link}]."
    WEBHOOK_ENABLED = "Включить webhook (иначе polling)."
    WEBHOOK_BASE_URL = "Публичный базовый URL вебхука."
    WEBHOOK_SECRET = "Секрет заголовка x-telegram-bot-api-secret-token."
    TELEGRAM_WEBHOOK_PATH = "Путь вебхука (например, /tg/webhook)."
    WEBHOOK_HOST = "Адрес aiohttp-сервера вебхука."
    WEBHOOK_PORT = "Порт aiohttp-сервера вебхука."

    # Кошелёк
    USDT_ADDRESS_TRC20 = "Адрес USDT в сети TRC20 для депозитов."
    USDT_ADDRESS_BEP20 = "Адрес USDT в сети BEP20 для депозитов."
    MIN_DEPOSIT = "Минимальная сумма депозита (USDT)."
    PREDEFINED_AMOUNTS = "Быстрые суммы депозита (CSV)."

    # Магазин
    DEFAULT_PRICE_GROUP = "Цена группы по умолчанию (USDT)."
    DEFAULT_PRICE_CHANNEL = "Цена канала по умолчанию (USDT)."
    AVAILABLE_YEARS = "Годы, доступные для каталога (CSV)."

    # Поддержка
    SUPPORT_TIMEOUT_SEC = "Таймаут простоя сессии поддержки (сек)."

    # Локализация
    SUPPORTED_LANGS = "Поддерживаемые языки (CSV)."
    DEFAULT_LANG = "Язык по умолчанию."

    # Logging
    LOG_LEVEL = "Уровень логирования (INFO/DEBUG/WARNING/ERROR)."


# =============================================================================
# Настройки приложения (единственный источник истины)
# =============================================================================


class Settings(BaseSettings):
    """
    Контейнер переменных окружения GroupShop Bot.

    Важное:
      • Секреты берём только из ENV — в код не шьём.
      • Decimal настроен на ROUND_DOWN.
      • Цены по умолчанию и минимальный депозит проверяются валидаторами.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------- БАЗОВЫЕ НАСТРОЙКИ ---------------------------
    PROJECT_NAME: str = Field("GroupShop Bot", description=_Doc.PROJECT_NAME)
    ENV: str = Field("production", description=_Doc.ENV)
    DEBUG: bool = Field(False, description=_Doc.DEBUG)
    APP_VERSION: str = Field("1.0.0", description=_Doc.APP_VERSION)

    APP_HOST: str = Field("0.0.0.0", description=_Doc.APP_HOST)
    APP_PORT: int = Field(8000, description=_Doc.APP_PORT)
    API_PREFIX: str = Field("/api", description=_Doc.API_PREFIX)

    # --------------------------------- БАЗА ----------------------------------
    DATABASE_URL: Optional[str] = Field(None, description=_Doc.DATABASE_URL)
    DB_POOL_SIZE: int = Field(10, description=_Doc.DB_POOL_SIZE)
    DB_MAX_OVERFLOW: int = Field(10, description=_Doc.DB_MAX_OVERFLOW)
    DB_SCHEMA: str = Field("groupshop", description=_Doc.DB_SCHEMA)

    # ------------------------------- TELEGRAM --------------------------------
    BOT_TOKEN: Optional[str] = Field(None, description=_Doc.BOT_TOKEN)
    ADMIN_IDS: Annotated[List[int], NoDecode] = Field(
        default_factory=list,
        description=_Doc.ADMIN_IDS,
    )
    ADMIN_USERNAME: str = Field("", description=_Doc.ADMIN_USERNAME)
    ADMIN_API_KEY: Optional[str] = Field(None, description=_Doc.ADMIN_API_KEY)
    REQUIRED_CHANNELS: Annotated[List[RequiredChannel], NoDecode] = Field(
        default_factory=list,
        description=_Doc.REQUIRED_CHANNELS,
    )

    WEBHOOK_ENABLED: bool = Field(False, description=_Doc.WEBHOOK_ENABLED)
    WEBHOOK_BASE_URL: Optional[str] = Field(None, description=_Doc.WEBHOOK_BASE_URL)
    WEBHOOK_SECRET: Optional[str] = Field(None, description=_Doc.WEBHOOK_SECRET)
    TELEGRAM_WEBHOOK_PATH: str = Field(
        "/tg/webhook",
        description=_Doc.TELEGRAM_WEBHOOK_PATH,
    )
    WEBHOOK_HOST: str = Field("0.0.0.0", description=_Doc.WEBHOOK_HOST)
    WEBHOOK_PORT: int = Field(8081, description=_Doc.WEBHOOK_PORT)

    # -------------------------------- КОШЕЛЁК --------------------------------
    USDT_ADDRESS_TRC20: str = Field("", description=_Doc.USDT_ADDRESS_TRC20)
    USDT_ADDRESS_BEP20: str = Field("", description=_Doc.USDT_ADDRESS_BEP20)
    MIN_DEPOSIT: Decimal = Field(Decimal("1"), description=_Doc.MIN_DEPOSIT)
    PREDEFINED_AMOUNTS: Annotated[List[Decimal], NoDecode] = Field(
        default_factory=lambda: [
            Decimal("1"),
            Decimal("10"),
            Decimal("50"),
            Decimal("100"),
        ],
        description=_Doc.PREDEFINED_AMOUNTS,
    )

    # -------------------------------- МАГАЗИН --------------------------------
    DEFAULT_PRICE_GROUP: Decimal = Field(
        Decimal("5"),
        description=_Doc.DEFAULT_PRICE_GROUP,
    )
    DEFAULT_PRICE_CHANNEL: Decimal = Field(
        Decimal("7"),
        description=_Doc.DEFAULT_PRICE_CHANNEL,
    )
    AVAILABLE_YEARS: Annotated[List[int], NoDecode] = Field(
        default_factory=lambda: [2023, 2024],
        description=_Doc.AVAILABLE_YEARS,
    )

    # ------------------------------- ПОДДЕРЖКА -------------------------------
    SUPPORT_TIMEOUT_SEC: int = Field(3600, description=_Doc.SUPPORT_TIMEOUT_SEC)

    # ----------------------------- ЛОКАЛИЗАЦИЯ -------------------------------
    SUPPORTED_LANGS: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(LANGUAGE_TITLES),
        description=_Doc.SUPPORTED_LANGS,
    )
    DEFAULT_LANG: str = Field("en", description=_Doc.DEFAULT_LANG)

    LOG_LEVEL: str = Field("INFO", description=_Doc.LOG_LEVEL)

    # =========================== ВАЛИДАТОРЫ (ИИ-защита) ======================
    @field_validator("ADMIN_IDS", "AVAILABLE_YEARS", mode="before")
    @classmethod
    def _v_int_csv(cls, value: object) -> List[int]:
        out: List[int] = []
        for item in _parse_csv(value):
            try:
                num = int(item)
            except ValueError:
                raise ValueError(f"Ожидалось целое число, получено: {item!r}") from None
            if num not in out:
                out.append(num)
        return out

    @field_validator("PREDEFINED_AMOUNTS", mode="before")
    @classmethod
    def _v_amounts(cls, value: object) -> List[Decimal]:
        amounts = [Decimal(x) for x in _parse_csv(value)]
        if any(a <= 0 for a in amounts):
            raise ValueError("PREDEFINED_AMOUNTS должны быть > 0")
        return amounts

    @field_validator("SUPPORTED_LANGS", mode="before")
    @classmethod
    def _v_supported_langs(cls, value: object) -> List[str]:
        parsed = _unique(x.lower() for x in _parse_csv(value))
        if not parsed:
            return list(LANGUAGE_TITLES)
        return parsed

    @field_validator("REQUIRED_CHANNELS", mode="before")
    @classmethod
    def _v_channels(cls, value: object) -> object:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            return json.loads(value)
        return value

    @field_validator("DEFAULT_PRICE_GROUP", "DEFAULT_PRICE_CHANNEL", "MIN_DEPOSIT")
    @classmethod
    def _v_positive(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("Цена/минимальный депозит должны быть > 0")
        return value

    @field_validator("DEFAULT_LANG", mode="before")
    @classmethod
    def _v_default_lang(cls, value: object) -> str:
        lang = str(value or "en").strip().lower()
        if lang not in LANGUAGE_TITLES:
            raise ValueError(f"Неизвестный язык по умолчанию: {lang}")
        return lang

    @field_validator("DB_SCHEMA", mode="before")
    @classmethod
    def _v_schema(cls, value: object) -> str:
        return str(value or "").strip()

    # =========================== Удобные свойства/методы =====================
    # ---- ENV флаги ----
    @property
    def env_normalized(self) -> str:
        """Нормализует ENV к одному из: prod/dev/local."""
        value = (self.ENV or "").strip().lower()
        if value.startswith("prod"):
            return "prod"
        if value.startswith("dev"):
            return "dev"
        if value.startswith("loc"):
            return "local"
        if value.startswith("test"):
            return "test"
        return "prod"

    # ---- Админы / каналы ----
    def is_admin(self, telegram_id: int) -> bool:
        return int(telegram_id) in self.ADMIN_IDS

    # ---- Магазин ----
    def default_price(self, product_type: str) -> Decimal:
        """Цена по умолчанию для типа товара (group/channel)."""
        if product_type == "channel":
            return self.DEFAULT_PRICE_CHANNEL
        return self.DEFAULT_PRICE_GROUP

    def deposit_address(self, network: str) -> str:
        """Адрес USDT для выбранной сети депозита."""
        if network == "BEP20":
            return self.USDT_ADDRESS_BEP20
        return self.USDT_ADDRESS_TRC20

    # ---- Telegram webhook ----
    def build_tg_webhook_url(self) -> Optional[str]:
        """Формирует URL вебхука: <WEBHOOK_BASE_URL><TELEGRAM_WEBHOOK_PATH>."""
        if not self.WEBHOOK_ENABLED or not self.WEBHOOK_BASE_URL:
            return None
        base = self.WEBHOOK_BASE_URL.rstrip("/")
        path = (self.TELEGRAM_WEBHOOK_PATH or "/tg/webhook").strip()
        if not path.startswith("/"):
            path = "/" + path
        return f"{base}{path}"

    # ---- База данных / DSN ----
    def database_url_asyncpg(self) -> str:
        """
        Возвращает DSN для SQLAlchemy async:
          postgres://   → postgresql+asyncpg://
          postgresql:// → postgresql+asyncpg:// при отсутствии '+asyncpg'.
        Остальные схемы (например, sqlite+aiosqlite) не трогаем.
        """
        if not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL не задан (нужен DSN Postgres).")
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://") and "asyncpg" not in url:
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    # ---- Decimal / точности ----
    def configure_decimal_context(self) -> None:
        """Настраивает глобальный Decimal: запас точности и ROUND_DOWN."""
        ctx = getcontext()
        ctx.prec = 28
        ctx.rounding = ROUND_DOWN

    def format_money(self, value: float | Decimal) -> str:
        """Форматирование суммы (2 знака, как в колонках Numeric(18, 2))."""
        return _quantize_str(value, places=2)

    # ---- Health/диагностика ----
    def assert_required_secrets(self) -> None:
        """
        Мягкая самодиагностика критичных секретов/реквизитов.
        Печатает WARN, но не падает.
        """
        if not self.BOT_TOKEN:
            print("[WARN] BOT_TOKEN не задан — Telegram-бот не стартует.")
        if not self.DATABASE_URL:
            print("[WARN] DATABASE_URL не задан — БД будет недоступна.")
        if not self.ADMIN_IDS:
            print("[WARN] ADMIN_IDS пуст — депозиты некому подтверждать.")
        if not (self.USDT_ADDRESS_TRC20 or self.USDT_ADDRESS_BEP20):
            print("[WARN] Адреса USDT не заданы — приём депозитов невозможен.")

    def debug_dump(self) -> Dict[str, str]:
        """Безопасный дамп ключевых настроек (без секретов) для /health и логов."""
        return {
            "env": self.env_normalized,
            "projectName": self.PROJECT_NAME,
            "version": self.APP_VERSION,
            "apiPrefix": self.API_PREFIX,
            "dbUrlSet": "yes" if bool(self.DATABASE_URL) else "no",
            "adminsCount": str(len(self.ADMIN_IDS)),
            "requiredChannels": str(len(self.REQUIRED_CHANNELS)),
            "webhookEnabled": str(self.WEBHOOK_ENABLED),
            "defaultPriceGroup": self.format_money(self.DEFAULT_PRICE_GROUP),
            "defaultPriceChannel": self.format_money(self.DEFAULT_PRICE_CHANNEL),
            "minDeposit": self.format_money(self.MIN_DEPOSIT),
            "supportedLangs": ",".join(self.SUPPORTED_LANGS),
        }

    # ---- Инициализация рантайма ----
    def ensure_local_artifacts(self) -> None:
        """Создаёт каталог .local_artifacts для local-режима (логи/кеш)."""
        if self.env_normalized == "local":
            Path(".local_artifacts").mkdir(exist_ok=True)

    def initialize_runtime(self) -> None:
        """
        Единая точка инициализации конфигурации при старте приложения:
          • Приведение DSN БД к async-формату.
          • Настройка Decimal контекста (ROUND_DOWN).
          • Создание локальных артефактов для local.
          • Мягкая самодиагностика секретов.
        """
        if self.DATABASE_URL:
            _ = self.database_url_asyncpg()

        self.configure_decimal_context()
        self.ensure_local_artifacts()
        if self.env_normalized != "test":
            self.assert_required_secrets()


# =============================================================================
# Синглтон настроек (точка сборки по умолчанию)
# =============================================================================


@lru_cache()
def get_settings() -> Settings:
    """Создаёт и кэширует объект Settings, выполняя initialize_runtime()."""
    settings_obj = Settings()
    settings_obj.initialize_runtime()
    return settings_obj


__all__ = [
    "MONTHS",
    "PRODUCT_TYPES",
    "DEPOSIT_NETWORKS",
    "LANGUAGE_TITLES",
    "RequiredChannel",
    "Settings",
    "get_settings",
]
# =============================================================================
# Пояснения «для чайника»:
#   • Все значения берутся из переменных окружения или файла .env.
#   • ADMIN_IDS=1,2,3 — список админов; REQUIRED_CHANNELS — JSON, например:
#       [{"id": "@mychannel", "title": "News", "invite_link": "https://t.me/mychannel"}]
#   • Сервисы получают Settings в конструкторе; в тестах можно передать
#     собственный Settings(...) без ENV.
# =============================================================================
