# -*- coding: utf-8 -*-
# groupshop/app/services/support_service.py
# =============================================================================
# Назначение кода:
#   Чат поддержки: пересылка сообщений пользователя админам и ответы админа
#   пользователю (/reply). Сессия живёт в FSM (SupportStates.active) и
#   закрывается по /cancel или после SUPPORT_TIMEOUT_SEC простоя.
#
# Канон/инварианты:
#   • Таймаут считается от последнего сообщения (или от старта сессии).
#   • Ошибка доставки одному админу логируется, рассылка продолжается.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message

from groupshop.app.core.config_core import Settings
from groupshop.app.core.i18n_core import t
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.utils_core import as_utc, escape_html
from groupshop.app.models import User

logger = get_logger(__name__)


def is_expired(
    started: Optional[datetime],
    last: Optional[datetime],
    now: datetime,
    timeout_sec: int,
) -> bool:
    """True, если с последней активности прошло timeout_sec секунд или больше."""
    reference = last or started
    if reference is None:
        return True
    return (as_utc(now) - as_utc(reference)).total_seconds() >= timeout_sec


async def forward_to_admins(bot: Bot, settings: Settings, user: User, message: Message) -> int:
    """Шапка с отправителем + копия сообщения каждому админу; число доставок."""
    header = t(
        settings.DEFAULT_LANG,
        "support_admin_header",
        user=escape_html(user.display_name),
        telegram_id=user.telegram_id,
    )
    delivered = 0
    for admin_id in settings.ADMIN_IDS:
        try:
            await bot.send_message(admin_id, header)
            await bot.copy_message(chat_id=admin_id, from_chat_id=message.chat.id, message_id=message.message_id)
            delivered += 1
        except TelegramAPIError as exc:
            logger.warning(
                "support forward failed",
                extra={"admin_id": admin_id, "telegram_id": user.telegram_id, "error": str(exc)},
            )
    return delivered


async def relay_reply(bot: Bot, user: User, text: str) -> bool:
    """Ответ админа пользователю на его языке; False при ошибке доставки."""
    try:
        await bot.send_message(user.telegram_id, t(user.language, "support_reply", text=escape_html(text)))
    except TelegramAPIError as exc:
        logger.warning("support reply failed", extra={"telegram_id": user.telegram_id, "error": str(exc)})
        return False
    return True


__all__ = ["is_expired", "forward_to_admins", "relay_reply"]
