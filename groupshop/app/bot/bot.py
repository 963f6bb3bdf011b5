"""
===============================================================================
== GroupShop Bot — bot.py (aiogram entrypoint)
-------------------------------------------------------------------------------
Назначение:
  • Запуск Telegram-бота GroupShop (aiogram v3) с цепочкой middlewares и
    роутерами пользовательских и админских разделов.
  • Webhook (aiohttp) при WEBHOOK_ENABLED, иначе polling.
  • Команды меню (setMyCommands) для каждого поддерживаемого языка.

Канон/инварианты:
  • Порядок outer-middlewares: Logging → Safe → DbSession → User → ChannelGate.
    Safe стоит выше DbSession, поэтому откат транзакции происходит до ответа
    пользователю об ошибке.
  • Settings передаются в Dispatcher как workflow data (data["settings"]).

Запреты:
  • Нет бизнес-логики: деньги и склад двигают только сервисы.
===============================================================================
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand, BotCommandScopeDefault
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web

from ..core import boot_core
from ..core.config_core import Settings, get_settings
from ..core.database_core import dispose_engine, get_session_factory
from ..core.i18n_core import FALLBACK_LANG, user_commands
from ..core.logging_core import get_logger
from .handlers import all_routers
from .middlewares import (
    ChannelGateMiddleware,
    DbSessionMiddleware,
    LoggingMiddleware,
    SafeMiddleware,
    UserMiddleware,
)

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Сборка диспетчера
# ---------------------------------------------------------------------------
def _setup_middlewares(dp: Dispatcher) -> None:
    dp.update.outer_middleware(LoggingMiddleware())
    dp.update.outer_middleware(SafeMiddleware())
    dp.update.outer_middleware(DbSessionMiddleware(get_session_factory()))
    dp.update.outer_middleware(UserMiddleware())
    dp.update.outer_middleware(ChannelGateMiddleware())


def build_dispatcher(settings: Optional[Settings] = None) -> Dispatcher:
    """Dispatcher с памятью FSM, middlewares и всеми роутерами."""

    settings = settings or get_settings()
    dp = Dispatcher(storage=MemoryStorage(), settings=settings)
    _setup_middlewares(dp)
    for router in all_routers():
        dp.include_router(router)
    return dp


def build_bot(settings: Optional[Settings] = None) -> Bot:
    settings = settings or get_settings()
    if not settings.BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is not set")
    return Bot(token=settings.BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))


def bot_commands(lang: str) -> List[BotCommand]:
    return [BotCommand(command=cmd, description=desc) for cmd, desc in user_commands(lang)]


async def configure_commands(bot: Bot, settings: Settings) -> None:
    """Меню команд: базовое (без language_code) и по одному на каждый язык."""

    await bot.set_my_commands(bot_commands(FALLBACK_LANG), scope=BotCommandScopeDefault())
    for lang in settings.SUPPORTED_LANGS:
        await bot.set_my_commands(bot_commands(lang), scope=BotCommandScopeDefault(), language_code=lang)


# ---------------------------------------------------------------------------
# Режимы запуска
# ---------------------------------------------------------------------------
async def _start_polling(bot: Bot, dp: Dispatcher, settings: Settings) -> None:
    # Удаляем вебхук, иначе getUpdates вернёт конфликт
    await bot.delete_webhook(drop_pending_updates=True)
    await configure_commands(bot, settings)
    logger.info("Starting bot in polling mode")
    await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())


async def _start_webhook(bot: Bot, dp: Dispatcher, settings: Settings) -> None:
    """aiohttp-сервер для вебхуков; без WEBHOOK_BASE_URL переключается на polling."""

    webhook_url = settings.build_tg_webhook_url()
    if not webhook_url:
        logger.warning("Webhook not configured; falling back to polling")
        await _start_polling(bot, dp, settings)
        return

    await bot.set_webhook(
        url=webhook_url,
        secret_token=settings.WEBHOOK_SECRET,
        allowed_updates=dp.resolve_used_update_types(),
        drop_pending_updates=True,
    )
    await configure_commands(bot, settings)

    app = web.Application()
    SimpleRequestHandler(dispatcher=dp, bot=bot, secret_token=settings.WEBHOOK_SECRET).register(
        app, path=settings.TELEGRAM_WEBHOOK_PATH
    )
    setup_application(app, dp, bot=bot)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=settings.WEBHOOK_HOST, port=settings.WEBHOOK_PORT)
    logger.info(
        "Starting bot in webhook mode",
        extra={"url": webhook_url, "host": settings.WEBHOOK_HOST, "port": settings.WEBHOOK_PORT},
    )
    await site.start()
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


async def _run_async() -> None:
    settings = get_settings()
    settings.initialize_runtime()
    boot_core(settings)

    bot = build_bot(settings)
    dp = build_dispatcher(settings)
    try:
        if settings.WEBHOOK_ENABLED:
            await _start_webhook(bot, dp, settings)
        else:
            await _start_polling(bot, dp, settings)
    finally:
        await bot.session.close()
        await dispose_engine()


def run_bot() -> None:
    """Синхронный entrypoint (groupshop-bot)."""

    try:
        asyncio.run(_run_async())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")


if __name__ == "__main__":
    run_bot()


__all__ = ["build_dispatcher", "build_bot", "bot_commands", "configure_commands", "run_bot"]
