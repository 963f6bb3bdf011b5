# -*- coding: utf-8 -*-
# groupshop/app/services/channels_service.py
# =============================================================================
# Назначение кода:
#   Проверка подписки пользователя на обязательные каналы через Bot API
#   (getChatMember).
#
# Канон/инварианты:
#   • Пользователь считается участником, если его статус не left / kicked.
#   • Ошибка Bot API по каналу (бот не админ, канал не найден, сеть)
#     трактуется как «не подписан» и логируется.
# =============================================================================

from __future__ import annotations

from typing import Iterable, List

from aiogram import Bot
from aiogram.enums import ChatMemberStatus
from aiogram.exceptions import TelegramAPIError

from groupshop.app.core.config_core import RequiredChannel
from groupshop.app.core.logging_core import get_logger

logger = get_logger(__name__)

_NOT_MEMBER = (ChatMemberStatus.LEFT, ChatMemberStatus.KICKED)


def _chat_id(channel: RequiredChannel) -> int | str:
    raw = channel.id.strip()
    if raw.lstrip("-").isdigit():
        return int(raw)
    return raw if raw.startswith("@") else f"@{raw}"


async def is_member(bot: Bot, user_id: int, channel: RequiredChannel) -> bool:
    try:
        member = await bot.get_chat_member(chat_id=_chat_id(channel), user_id=user_id)
    except TelegramAPIError as exc:
        logger.warning(
            "channel membership check failed",
            extra={"channel": channel.id, "user_id": user_id, "error": str(exc)},
        )
        return False
    return member.status not in _NOT_MEMBER


async def check_membership(bot: Bot, user_id: int, channels: Iterable[RequiredChannel]) -> List[RequiredChannel]:
    """Возвращает список каналов, на которые пользователь НЕ подписан."""
    missing: List[RequiredChannel] = []
    for channel in channels:
        if not await is_member(bot, user_id, channel):
            missing.append(channel)
    return missing


__all__ = ["is_member", "check_membership"]
