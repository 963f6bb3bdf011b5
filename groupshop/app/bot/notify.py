"""Отправка служебных сообщений из хендлеров (после commit).

Ошибка Telegram по одному получателю логируется и не прерывает обработку.
"""

from __future__ import annotations

from typing import Any, Iterable

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from ..core.logging_core import get_logger

logger = get_logger(__name__)


async def send_safe(bot: Bot, chat_id: int, text: str, **kwargs: Any) -> bool:
    try:
        await bot.send_message(chat_id, text, **kwargs)
    except TelegramAPIError as exc:
        logger.warning("notification failed", extra={"chat_id": chat_id, "error": str(exc)})
        return False
    return True


async def broadcast(bot: Bot, chat_ids: Iterable[int], text: str, **kwargs: Any) -> int:
    """Рассылка одного текста списку получателей; число доставок."""
    delivered = 0
    for chat_id in chat_ids:
        if await send_safe(bot, chat_id, text, **kwargs):
            delivered += 1
    return delivered


__all__ = ["send_safe", "broadcast"]
