"""Админ: корректировка баланса, блокировка, ответы в поддержку."""

from __future__ import annotations

from aiogram import Bot, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config_core import Settings
from ....core.errors_core import ValidationError
from ....core.i18n_core import t
from ....core.utils_core import format_money, parse_money
from ....crud.user_crud import UserCRUD
from ....models import User
from ....services.support_service import relay_reply
from ....services.users_service import UsersService
from ....services.wallet_service import WalletLedger
from ...filters import IsAdmin
from ...notify import send_safe
from .admin_main_handlers import answer_usage, command_args

router = Router(name="admin-users")
router.message.filter(IsAdmin())


def _telegram_id(raw: str) -> int:
    if not raw.lstrip("-").isdigit():
        raise ValidationError("Telegram id must be a number.", details={"telegram_id": raw})
    return int(raw)


@router.message(Command("adjust"))
async def handle_adjust(
    message: Message,
    command: CommandObject,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    """/adjust <telegram_id> <amount> [reason] — сумма может быть отрицательной."""

    args = command_args(command, 2, maxsplit=2)
    if args is None:
        await answer_usage(message, lang, "/adjust <telegram_id> <amount> [reason]")
        return
    reason = args[2] if len(args) > 2 else None
    try:
        amount = parse_money(args[1])
    except ValueError:
        raise ValidationError("Amount must be a number with at most 2 decimal places.", details={"amount": args[1]}) from None
    target, tx = await WalletLedger(session, settings).adjust_balance(_telegram_id(args[0]), amount, user.telegram_id, reason)
    await session.commit()
    await message.answer(
        t(lang, "balance_adjusted_admin", telegram_id=target.telegram_id, balance=format_money(target.balance))
    )
    await send_safe(
        bot,
        target.telegram_id,
        t(target.language, "balance_adjusted_user", amount=format_money(tx.amount), balance=format_money(target.balance)),
    )


@router.message(Command("block", "unblock"))
async def handle_block(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    args = command_args(command, 1)
    if args is None:
        await answer_usage(message, lang, f"/{command.command} <telegram_id>")
        return
    blocked = command.command == "block"
    target = await UsersService(session, settings).set_block(_telegram_id(args[0]), blocked)
    key = "user_blocked_admin" if blocked else "user_unblocked_admin"
    await message.answer(t(lang, key, telegram_id=target.telegram_id))


@router.message(Command("reply"))
async def handle_reply(
    message: Message,
    command: CommandObject,
    bot: Bot,
    session: AsyncSession,
    lang: str,
) -> None:
    """/reply <telegram_id> <text> — ответ пользователю из чата поддержки."""

    args = command_args(command, 2, maxsplit=1)
    if args is None:
        await answer_usage(message, lang, "/reply <telegram_id> <text>")
        return
    target = await UserCRUD(session).get_by_telegram(_telegram_id(args[0]))
    if target is None:
        await message.answer(t(lang, "user_not_found"))
        return
    if await relay_reply(bot, target, args[1]):
        await message.answer(t(lang, "reply_sent"))
    else:
        await message.answer(t(lang, "error_occurred"))
