"""Старт, помощь, подписка на каналы, отмена текущего действия."""

from __future__ import annotations

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.config_core import Settings
from ...core.i18n_core import t
from ...core.utils_core import escape_html
from ...models import User
from ...services.channels_service import check_membership
from ...services.users_service import UsersService
from .. import keyboards
from ..filters import ButtonText

router = Router(name="start")


async def send_welcome(message: Message, user: User, lang: str) -> None:
    """Приветствие + главное меню."""

    await message.answer(
        t(lang, "welcome", name=escape_html(user.first_name or user.username or "there")),
        reply_markup=keyboards.main_menu_keyboard(lang, is_admin=user.is_admin),
    )


async def ensure_channels(bot: Bot, session: AsyncSession, settings: Settings, user: User) -> bool:
    if user.is_admin or not settings.REQUIRED_CHANNELS:
        return True
    missing = await check_membership(bot, user.telegram_id, settings.REQUIRED_CHANNELS)
    await UsersService(session, settings).mark_joined_channels(user, not missing)
    return not missing


@router.message(CommandStart())
async def handle_start(
    message: Message,
    state: FSMContext,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
    user_created: bool = False,
) -> None:
    """Новый пользователь выбирает язык, остальные сразу проверяют подписку."""

    await state.clear()
    if user_created:
        await message.answer(t(lang, "choose_language"), reply_markup=keyboards.language_keyboard(settings.SUPPORTED_LANGS))
        return
    if not await ensure_channels(bot, session, settings, user):
        await message.answer(t(lang, "join_channels"), reply_markup=keyboards.channels_keyboard(lang, settings.REQUIRED_CHANNELS))
        return
    await send_welcome(message, user, lang)


@router.message(Command("help"))
async def handle_help(message: Message, lang: str) -> None:
    await message.answer(t(lang, "help"))


@router.callback_query(F.data == keyboards.CHECK_MEMBERSHIP)
async def handle_check_membership(
    callback: CallbackQuery,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    if not await ensure_channels(bot, session, settings, user):
        await callback.answer(t(lang, "channels_missing"), show_alert=True)
        return
    await callback.answer(t(lang, "channels_ok"))
    if isinstance(callback.message, Message):
        await send_welcome(callback.message, user, lang)


@router.message(ButtonText("ready_accounts_button"))
async def handle_ready_accounts(message: Message, settings: Settings, lang: str) -> None:
    link = f"https://t.me/{settings.ADMIN_USERNAME.lstrip('@')}" if settings.ADMIN_USERNAME else "-"
    markup = None
    if settings.ADMIN_USERNAME:
        markup = InlineKeyboardMarkup(
            inline_keyboard=[[InlineKeyboardButton(text=t(lang, "ready_accounts_button"), url=link)]]
        )
    await message.answer(t(lang, "ready_accounts_text", link=link), reply_markup=markup)


@router.message(Command("cancel"))
@router.message(ButtonText("cancel_button"))
async def handle_cancel(message: Message, state: FSMContext, user: User, lang: str) -> None:
    if await state.get_state() is None:
        await message.answer(t(lang, "nothing_to_cancel"))
        return
    await state.clear()
    await message.answer(
        t(lang, "action_cancelled"),
        reply_markup=keyboards.main_menu_keyboard(lang, is_admin=user.is_admin),
    )


@router.callback_query(F.data == keyboards.CANCEL)
async def handle_cancel_callback(callback: CallbackQuery, state: FSMContext, lang: str) -> None:
    await state.clear()
    await callback.answer(t(lang, "action_cancelled"))
    if isinstance(callback.message, Message):
        await callback.message.answer(t(lang, "action_cancelled"))
