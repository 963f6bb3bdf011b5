"""Чат поддержки: сообщения пользователя уходят админам до /cancel или таймаута."""

from __future__ import annotations

from datetime import datetime

from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message

from ...core.config_core import Settings
from ...core.i18n_core import t
from ...core.utils_core import utcnow
from ...models import User
from ...services.support_service import forward_to_admins, is_expired
from .. import keyboards
from ..filters import ButtonText, MenuButton
from ..states import SupportStates

router = Router(name="support")


@router.message(Command("support"))
@router.message(ButtonText("support_button"))
async def handle_support(message: Message, state: FSMContext, settings: Settings, lang: str) -> None:
    now = utcnow().isoformat()
    await state.clear()
    await state.set_state(SupportStates.active)
    await state.update_data(started_at=now, last_message_at=now)
    await message.answer(
        t(lang, "support_started", minutes=max(1, settings.SUPPORT_TIMEOUT_SEC // 60)),
        reply_markup=keyboards.cancel_keyboard(lang),
    )


@router.message(SupportStates.active, ~MenuButton())
async def handle_support_message(
    message: Message,
    state: FSMContext,
    bot: Bot,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    data = await state.get_data()
    started = datetime.fromisoformat(data["started_at"]) if data.get("started_at") else None
    last = datetime.fromisoformat(data["last_message_at"]) if data.get("last_message_at") else None
    now = utcnow()
    if is_expired(started, last, now, settings.SUPPORT_TIMEOUT_SEC):
        await state.clear()
        await message.answer(
            t(lang, "support_timeout"),
            reply_markup=keyboards.main_menu_keyboard(lang, is_admin=user.is_admin),
        )
        return
    await state.update_data(last_message_at=now.isoformat())
    await forward_to_admins(bot, settings, user, message)
    await message.answer(t(lang, "support_forwarded"))
