"""Фильтры aiogram: админ и локализованные кнопки reply-клавиатуры."""

from __future__ import annotations

from typing import Any, Optional

from aiogram.filters import Filter
from aiogram.types import Message, TelegramObject

from ..core.i18n_core import all_translations
from ..models import User


class IsAdmin(Filter):
    """Пропускает только пользователей с флагом is_admin (из ADMIN_IDS)."""

    async def __call__(self, event: TelegramObject, user: Optional[User] = None, **_: Any) -> bool:
        return bool(user is not None and user.is_admin)


class ButtonText(Filter):
    """Текст сообщения совпадает с кнопкой `key` на любом из языков."""

    def __init__(self, key: str) -> None:
        self.key = key
        self.variants = frozenset(all_translations(key))

    async def __call__(self, message: Message) -> bool:
        return (message.text or "") in self.variants


MENU_BUTTON_KEYS = (
    "wallet_button",
    "shop_button",
    "orders_button",
    "statistics_button",
    "ready_accounts_button",
    "support_button",
    "settings_button",
    "cancel_button",
)


class MenuButton(Filter):
    """Любая кнопка главного меню или команда; в FSM-хендлерах используется как ~MenuButton()."""

    def __init__(self) -> None:
        self.variants = frozenset(text for key in MENU_BUTTON_KEYS for text in all_translations(key))

    async def __call__(self, message: Message) -> bool:
        text = message.text or ""
        return text.startswith("/") or text in self.variants


__all__ = ["IsAdmin", "ButtonText", "MenuButton", "MENU_BUTTON_KEYS"]
