# -*- coding: utf-8 -*-
# groupshop/app/core/logging_core.py
# =============================================================================
# Назначение кода:
#   Логирование GroupShop: один корневой хэндлер на stdout (JSON в prod,
#   строки в остальных средах), поля корреляции апдейта/запроса и маскировка
#   секретов из настроек.
#
# Канон / инварианты:
#   • Каждая запись несёт env, svc, rid (update_id / X-Request-ID), uid.
#   • Контекст живёт в contextvars: параллельные апдейты не смешиваются.
#   • Токен бота, DSN и ключи заменяются на "****" до форматирования.
#
# Запреты:
#   • file_id пруфов и тексты пользователей пишем только в DEBUG.
# =============================================================================

from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pythonjsonlogger.json import JsonFormatter

from groupshop.app.core.config_core import Settings, get_settings

ASGIApp = Callable[..., Awaitable[None]]

_EMPTY = "-"
_context: contextvars.ContextVar[Tuple[str, str]] = contextvars.ContextVar("log_context", default=(_EMPTY, _EMPTY))


def set_request_context(*, request_id: Optional[int | str] = None, user_id: Optional[int | str] = None) -> None:
    """rid/uid для всех логов текущей задачи; None оставляет прежнее значение."""
    rid, uid = _context.get()
    _context.set(
        (
            str(request_id) if request_id is not None else rid,
            str(user_id) if user_id is not None else uid,
        )
    )


def clear_request_context() -> None:
    _context.set((_EMPTY, _EMPTY))


# -----------------------------------------------------------------------------
# Фильтр: контекст + маскировка
# -----------------------------------------------------------------------------
class ShopLogFilter(logging.Filter):
    """Добавляет env/svc/rid/uid и вырезает значения секретов из сообщения."""

    MASK = "****"
    SECRET_FIELDS = ("BOT_TOKEN", "DATABASE_URL", "ADMIN_API_KEY", "WEBHOOK_SECRET")

    def __init__(self, settings: Settings) -> None:
        super().__init__()
        self.env = settings.env_normalized
        self.svc = settings.PROJECT_NAME
        self.secrets: List[str] = [
            value for value in (getattr(settings, f, None) for f in self.SECRET_FIELDS) if isinstance(value, str) and value
        ]

    def _mask(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        for secret in self.secrets:
            value = value.replace(secret, self.MASK)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        rid, uid = _context.get()
        record.__dict__.setdefault("env", self.env)
        record.__dict__.setdefault("svc", self.svc)
        record.__dict__.setdefault("rid", rid)
        record.__dict__.setdefault("uid", uid)
        if self.secrets:
            record.msg = self._mask(record.msg)
            if isinstance(record.args, tuple):
                record.args = tuple(self._mask(a) for a in record.args)
        return True


# -----------------------------------------------------------------------------
# Форматеры
# -----------------------------------------------------------------------------
TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] rid=%(rid)s uid=%(uid)s %(message)s"


class ShopJsonFormatter(JsonFormatter):
    """{"time", "level", "logger", "env", "svc", "rid", "uid", "msg", ...extra}."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(levelname)s %(name)s %(env)s %(svc)s %(rid)s %(uid)s %(message)s",
            rename_fields={"asctime": "time", "levelname": "level", "name": "logger", "message": "msg"},
        )


def _level(settings: Settings) -> int:
    if settings.DEBUG:
        return logging.DEBUG
    level = logging.getLevelName((settings.LOG_LEVEL or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _handlers(settings: Settings) -> Iterable[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    if settings.env_normalized == "prod":
        console.setFormatter(ShopJsonFormatter())
    else:
        console.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S"))
    yield console

    if settings.env_normalized == "local":
        path = Path(".local_artifacts") / "logs"
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path / "groupshop.log", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(TEXT_FORMAT))
        yield file_handler


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Пересобирает root: уровень, хэндлеры, фильтр; uvicorn/aiogram пишут через root."""
    settings = settings or get_settings()
    level = _level(settings)
    log_filter = ShopLogFilter(settings)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in _handlers(settings):
        handler.addFilter(log_filter)
        root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "aiogram"):
        third_party = logging.getLogger(name)
        third_party.handlers.clear()
        third_party.propagate = True
    logging.getLogger("aiogram.event").setLevel(max(level, logging.INFO))
    if settings.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)


def get_logger(name: Optional[str] = None, **extra: Any) -> logging.Logger:
    """Логгер модуля; именованные extra закрепляются через LoggerAdapter."""
    logger = logging.getLogger(name)
    if extra:
        return logging.LoggerAdapter(logger, extra)  # type: ignore[return-value]
    return logger


# -----------------------------------------------------------------------------
# ASGI: X-Request-ID
# -----------------------------------------------------------------------------
class CorrelationIdMiddleware:
    """
    Берёт X-Request-ID (или создаёт uuid4) и X-Telegram-Id из запроса,
    кладёт их в контекст логов и возвращает X-Request-ID в ответе.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Dict[str, Any], receive: ASGIApp, send: ASGIApp) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope.get("headers") or []}
        rid = incoming.get("x-request-id") or uuid.uuid4().hex
        set_request_context(request_id=rid, user_id=incoming.get("x-telegram-id"))

        async def _send(message: Mapping[str, Any]) -> None:
            if message["type"] == "http.response.start":
                message = {**message, "headers": [*message.get("headers", []), (b"x-request-id", rid.encode())]}
            await send(message)

        try:
            await self.app(scope, receive, _send)
        finally:
            clear_request_context()


setup_logging()

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_context",
    "clear_request_context",
    "ShopLogFilter",
    "ShopJsonFormatter",
    "CorrelationIdMiddleware",
]
