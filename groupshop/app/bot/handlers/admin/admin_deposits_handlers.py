"""Админ: заявки на пополнение — список, Approve / Reject с причиной."""

from __future__ import annotations

from aiogram import Bot, F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config_core import Settings
from ....core.i18n_core import t
from ....core.logging_core import get_logger
from ....core.utils_core import format_date, format_money
from ....models import User
from ....services.deposits_service import DepositsService, notify_user_decision
from ... import keyboards
from ...filters import IsAdmin, MenuButton
from ...states import AdminStates

logger = get_logger(__name__)

router = Router(name="admin-deposits")
router.message.filter(IsAdmin())
router.callback_query.filter(IsAdmin())


async def _drop_buttons(callback: CallbackQuery) -> None:
    """Убирает кнопки решения под заявкой, чтобы её не нажали повторно."""
    if not isinstance(callback.message, Message):
        return
    try:
        await callback.message.edit_reply_markup(reply_markup=None)
    except TelegramAPIError as exc:
        logger.debug("decision buttons not removed", extra={"error": str(exc)})


@router.message(Command("deposits"))
async def handle_pending_deposits(message: Message, session: AsyncSession, settings: Settings, lang: str) -> None:
    pending = await DepositsService(session, settings).list_pending(limit=20)
    if not pending:
        await message.answer(t(lang, "no_pending_deposits"))
        return
    for tx in pending:
        line = t(
            lang,
            "pending_deposit_line",
            tx_id=tx.id,
            telegram_id=tx.telegram_id,
            amount=format_money(tx.amount),
            network=tx.network or "-",
            date=format_date(tx.created_at),
        )
        await message.answer(line, reply_markup=keyboards.deposit_decision_keyboard(lang, tx.id))


@router.callback_query(keyboards.DepositDecisionCb.filter(F.action == "approve"))
async def handle_approve(
    callback: CallbackQuery,
    callback_data: keyboards.DepositDecisionCb,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    target, tx = await DepositsService(session, settings).approve(callback_data.tx_id, user.telegram_id)
    await session.commit()
    await callback.answer()
    await _drop_buttons(callback)
    if isinstance(callback.message, Message):
        await callback.message.answer(
            t(lang, "deposit_approved_admin", tx_id=tx.id, balance=format_money(target.balance))
        )
    await notify_user_decision(bot, target, tx, approved=True)


@router.callback_query(keyboards.DepositDecisionCb.filter(F.action == "reject"))
async def handle_reject(
    callback: CallbackQuery,
    callback_data: keyboards.DepositDecisionCb,
    state: FSMContext,
    lang: str,
) -> None:
    """Запрашивает причину; сама заявка отклоняется следующим сообщением."""
    await state.set_state(AdminStates.reject_reason)
    await state.update_data(tx_id=callback_data.tx_id)
    await callback.answer()
    if isinstance(callback.message, Message):
        await callback.message.answer(
            t(lang, "enter_reject_reason", tx_id=callback_data.tx_id),
            reply_markup=keyboards.cancel_keyboard(lang),
        )


@router.message(AdminStates.reject_reason, F.text, ~MenuButton())
async def handle_reject_reason(
    message: Message,
    state: FSMContext,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    data = await state.get_data()
    await state.clear()
    reason = (message.text or "").strip()
    target, tx = await DepositsService(session, settings).reject(int(data["tx_id"]), user.telegram_id, reason)
    await session.commit()
    await message.answer(t(lang, "deposit_rejected_admin", tx_id=tx.id))
    await notify_user_decision(bot, target, tx, approved=False, reason=reason)
