"""Настройки пользователя: язык интерфейса."""

from __future__ import annotations

from aiogram import Bot, F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.config_core import Settings
from ...core.i18n_core import language_title, t
from ...models import User
from ...services.users_service import UsersService
from .. import keyboards
from ..filters import ButtonText
from .start_handlers import ensure_channels, send_welcome

router = Router(name="settings")


@router.message(Command("settings"))
@router.message(ButtonText("settings_button"))
async def handle_settings(message: Message, lang: str) -> None:
    await message.answer(
        t(lang, "settings_title", language=language_title(lang)),
        reply_markup=keyboards.settings_keyboard(lang),
    )


@router.callback_query(F.data == keyboards.SETTINGS_LANGUAGE)
async def handle_choose_language(callback: CallbackQuery, settings: Settings, lang: str) -> None:
    await callback.answer()
    if isinstance(callback.message, Message):
        await callback.message.answer(
            t(lang, "choose_language"),
            reply_markup=keyboards.language_keyboard(settings.SUPPORTED_LANGS),
        )


@router.callback_query(keyboards.LanguageCb.filter())
async def handle_language_selected(
    callback: CallbackQuery,
    callback_data: keyboards.LanguageCb,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
) -> None:
    """Смена языка; после выбора — проверка подписки и главное меню."""

    user = await UsersService(session, settings).set_language(user.telegram_id, callback_data.code)
    lang = user.language
    await callback.answer(t(lang, "language_changed", language=language_title(lang)))
    if not isinstance(callback.message, Message):
        return
    await callback.message.answer(t(lang, "language_changed", language=language_title(lang)))
    if not await ensure_channels(bot, session, settings, user):
        await callback.message.answer(
            t(lang, "join_channels"),
            reply_markup=keyboards.channels_keyboard(lang, settings.REQUIRED_CHANNELS),
        )
        return
    await send_welcome(callback.message, user, lang)
