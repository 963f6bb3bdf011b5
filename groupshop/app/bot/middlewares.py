"""Middleware бота GroupShop (aiogram v3).

Все middleware регистрируются как outer на ``dp.update`` в порядке:
Logging → Safe → DbSession → User → ChannelGate. Один апдейт = одна сессия
БД и одна транзакция: commit при успехе, rollback при любой ошибке.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import BaseMiddleware, Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import CallbackQuery, Chat, TelegramObject, Update, User as TgUser
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config_core import Settings
from ..core.errors_core import ShopError
from ..core.i18n_core import t
from ..core.logging_core import clear_request_context, get_logger, set_request_context
from ..services.channels_service import check_membership
from ..services.users_service import UsersService
from . import keyboards

logger = get_logger(__name__)

Handler = Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]]

# Апдейты, которые пропускаются без проверки подписки
_GATE_FREE_CALLBACKS = (keyboards.CHECK_MEMBERSHIP,)
_GATE_FREE_CALLBACK_PREFIXES = ("lang:",)


async def _notify(data: Dict[str, Any], event: TelegramObject, text: str) -> None:
    """Отвечает в чат апдейта; callback дополнительно «гасится»."""
    bot: Optional[Bot] = data.get("bot")
    chat: Optional[Chat] = data.get("event_chat")
    if isinstance(event, Update) and event.callback_query is not None:
        try:
            await event.callback_query.answer()
        except TelegramAPIError as exc:
            # уже отвеченный или устаревший callback
            logger.debug("callback answer skipped", extra={"error": str(exc)})
    if bot is None or chat is None:
        return
    try:
        await bot.send_message(chat.id, text)
    except TelegramAPIError as exc:
        logger.warning("bot reply failed", extra={"error": str(exc)})


class LoggingMiddleware(BaseMiddleware):
    """Контекст логов (rid = update_id, uid = telegram id) и строка на апдейт."""

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:  # type: ignore[override]
        from_user: Optional[TgUser] = data.get("event_from_user")
        update_id = event.update_id if isinstance(event, Update) else None
        set_request_context(
            request_id=str(update_id) if update_id is not None else None,
            user_id=str(from_user.id) if from_user else None,
        )
        try:
            logger.info(
                "bot update",
                extra={"update_type": getattr(event, "event_type", None), "from": from_user.id if from_user else None},
            )
            return await handler(event, data)
        finally:
            clear_request_context()


class SafeMiddleware(BaseMiddleware):
    """
    ShopError → локализованный ответ по коду (error_<code>);
    любое другое исключение → лог с трассировкой + общий ответ.
    """

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:  # type: ignore[override]
        try:
            return await handler(event, data)
        except ShopError as exc:
            lang = data.get("lang")
            logger.info("shop error in handler", extra={"error": exc.code, "details": exc.details})
            await _notify(data, event, t(lang, f"error_{exc.code}", message=exc.message))
        except Exception:
            logger.exception("unhandled error in bot handler")
            await _notify(data, event, t(data.get("lang"), "error_occurred"))
        return None


class DbSessionMiddleware(BaseMiddleware):
    """Сессия на апдейт: data['session']; commit при успехе, rollback при ошибке."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:  # type: ignore[override]
        async with self.session_factory() as session:
            data["session"] = session
            try:
                result = await handler(event, data)
            except Exception:
                await session.rollback()
                raise
            await session.commit()
            return result


class UserMiddleware(BaseMiddleware):
    """
    Регистрация при первом контакте, отметка активности, язык в data['lang'],
    блокировка. Заблокированный пользователь (не админ) получает отказ.
    """

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:  # type: ignore[override]
        from_user: Optional[TgUser] = data.get("event_from_user")
        session: Optional[AsyncSession] = data.get("session")
        settings: Settings = data["settings"]
        if from_user is None or from_user.is_bot or session is None:
            data["lang"] = settings.DEFAULT_LANG
            return await handler(event, data)

        service = UsersService(session, settings)
        user, created = await service.find_or_create(
            from_user.id,
            username=from_user.username,
            first_name=from_user.first_name,
            last_name=from_user.last_name,
            language=from_user.language_code,
        )
        if not created:
            await service.touch_activity(user)
        data["user"] = user
        data["user_created"] = created
        data["lang"] = user.language

        if user.is_blocked and not user.is_admin:
            await _notify(data, event, t(user.language, "user_blocked"))
            return None
        return await handler(event, data)


class ChannelGateMiddleware(BaseMiddleware):
    """
    Доступ только после подписки на REQUIRED_CHANNELS. Результат «подписан»
    кэшируется в users.joined_channels. /start, выбор языка и кнопка
    «Я подписался» проходят без проверки.
    """

    @staticmethod
    def _gate_free(event: TelegramObject) -> bool:
        if not isinstance(event, Update):
            return True
        if event.message is not None:
            return (event.message.text or "").startswith("/start")
        if event.callback_query is not None:
            cb = event.callback_query.data or ""
            return cb in _GATE_FREE_CALLBACKS or cb.startswith(_GATE_FREE_CALLBACK_PREFIXES)
        return True

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:  # type: ignore[override]
        settings: Settings = data["settings"]
        user = data.get("user")
        if (
            user is None
            or user.is_admin
            or user.joined_channels
            or not settings.REQUIRED_CHANNELS
            or self._gate_free(event)
        ):
            return await handler(event, data)

        missing = await check_membership(data["bot"], user.telegram_id, settings.REQUIRED_CHANNELS)
        if not missing:
            await UsersService(data["session"], settings).mark_joined_channels(user, True)
            return await handler(event, data)

        lang = data.get("lang")
        chat: Optional[Chat] = data.get("event_chat")
        if isinstance(event, Update) and isinstance(event.callback_query, CallbackQuery):
            await event.callback_query.answer()
        if chat is not None:
            await data["bot"].send_message(
                chat.id,
                t(lang, "join_channels"),
                reply_markup=keyboards.channels_keyboard(lang, missing),
            )
        return None


__all__ = [
    "LoggingMiddleware",
    "SafeMiddleware",
    "DbSessionMiddleware",
    "UserMiddleware",
    "ChannelGateMiddleware",
]
