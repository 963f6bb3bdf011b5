"""Кошелёк: баланс, история операций, пополнение USDT с подтверждением админом."""

from __future__ import annotations

from decimal import Decimal

from aiogram import Bot, F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.config_core import Settings
from ...core.errors_core import ValidationError
from ...core.i18n_core import t
from ...core.utils_core import format_date, format_money, truncate_text
from ...models import User
from ...services.deposits_service import DepositsService, notify_admins
from ...services.orders_service import OrdersService
from ...services.wallet_service import WalletLedger
from .. import keyboards
from ..filters import ButtonText, MenuButton
from ..states import DepositStates

router = Router(name="wallet")


@router.message(Command("wallet"))
@router.message(ButtonText("wallet_button"))
async def handle_wallet(message: Message, state: FSMContext, session: AsyncSession, user: User, lang: str) -> None:
    await state.clear()
    orders = await OrdersService(session).count_user_orders(user.telegram_id)
    await message.answer(
        t(
            lang,
            "wallet_info",
            balance=format_money(user.balance),
            deposited=format_money(user.total_deposited),
            spent=format_money(user.total_spent),
            orders=orders,
        ),
        reply_markup=keyboards.wallet_keyboard(lang),
    )


@router.callback_query(F.data == keyboards.WALLET_HISTORY)
async def handle_history(callback: CallbackQuery, session: AsyncSession, user: User, lang: str) -> None:
    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    txs = await WalletLedger(session).list_transactions(user, limit=10)
    if not txs:
        await callback.message.answer(t(lang, "no_transactions"))
        return
    lines = [t(lang, "transaction_history_title")]
    for tx in txs:
        lines.append(
            f"{format_date(tx.created_at)} · {t(lang, f'tx_{tx.kind}')} · {format_money(tx.amount)}"
            f" · {t(lang, f'tx_status_{tx.status}')}"
            + (f"\n  {truncate_text(tx.description, 60)}" if tx.description else "")
        )
    await callback.message.answer("\n".join(lines))


# ---------------------------------------------------------------------------
# Пополнение: сумма → сеть → доказательство
# ---------------------------------------------------------------------------
@router.callback_query(F.data == keyboards.WALLET_TOPUP)
async def handle_topup(callback: CallbackQuery, state: FSMContext, settings: Settings, lang: str) -> None:
    await callback.answer()
    await state.set_state(DepositStates.amount)
    if isinstance(callback.message, Message):
        await callback.message.answer(
            t(lang, "select_deposit_amount"),
            reply_markup=keyboards.deposit_amounts_keyboard(lang, settings.PREDEFINED_AMOUNTS),
        )


async def _ask_network(message: Message, state: FSMContext, amount: Decimal, lang: str) -> None:
    await state.update_data(amount=str(amount))
    await state.set_state(DepositStates.network)
    await message.answer(t(lang, "select_network"), reply_markup=keyboards.network_keyboard(lang))


@router.callback_query(DepositStates.amount, keyboards.DepositAmountCb.filter())
async def handle_amount_button(
    callback: CallbackQuery,
    callback_data: keyboards.DepositAmountCb,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    if callback_data.amount == "custom":
        await callback.message.answer(
            t(lang, "enter_custom_amount", min=format_money(settings.MIN_DEPOSIT)),
            reply_markup=keyboards.cancel_keyboard(lang),
        )
        return
    amount = DepositsService(session, settings).validate_amount(callback_data.amount)
    await _ask_network(callback.message, state, amount, lang)


@router.message(DepositStates.amount, F.text, ~MenuButton())
async def handle_custom_amount(
    message: Message,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    try:
        amount = DepositsService(session, settings).validate_amount(message.text)
    except ValidationError:
        await message.answer(t(lang, "invalid_deposit_amount", min=format_money(settings.MIN_DEPOSIT)))
        return
    await _ask_network(message, state, amount, lang)


@router.callback_query(DepositStates.network, keyboards.NetworkCb.filter())
async def handle_network(
    callback: CallbackQuery,
    callback_data: keyboards.NetworkCb,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    network = DepositsService(session, settings).validate_network(callback_data.network)
    address = settings.deposit_address(network)
    if not address:
        await callback.message.answer(t(lang, "network_not_configured", network=network))
        return
    data = await state.update_data(network=network)
    await callback.message.answer(
        t(
            lang,
            "deposit_instructions",
            amount=format_money(data["amount"]),
            network=network,
            address=address,
        ),
        reply_markup=keyboards.send_proof_keyboard(lang),
    )


@router.callback_query(StateFilter(DepositStates.network, DepositStates.proof), F.data == keyboards.DEPOSIT_SEND_PROOF)
async def handle_send_proof(callback: CallbackQuery, state: FSMContext, lang: str) -> None:
    await callback.answer()
    data = await state.get_data()
    if "network" not in data:
        return
    await state.set_state(DepositStates.proof)
    if isinstance(callback.message, Message):
        await callback.message.answer(t(lang, "send_deposit_proof"), reply_markup=keyboards.cancel_keyboard(lang))


@router.message(DepositStates.proof, F.photo)
async def handle_proof_photo(
    message: Message,
    state: FSMContext,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    """Фото-доказательство → заявка pending → commit → рассылка админам."""

    data = await state.get_data()
    proof_file_id = message.photo[-1].file_id if message.photo else None
    user, tx = await DepositsService(session, settings).submit_deposit(
        user.telegram_id,
        data.get("amount"),
        data.get("network"),
        proof_file_id,
    )
    await session.commit()
    await state.clear()
    await message.answer(
        t(lang, "deposit_proof_received", tx_id=tx.id),
        reply_markup=keyboards.main_menu_keyboard(lang, is_admin=user.is_admin),
    )
    await notify_admins(bot, settings, user, tx)


@router.message(DepositStates.proof, ~MenuButton())
async def handle_proof_not_photo(message: Message, lang: str) -> None:
    await message.answer(t(lang, "proof_must_be_photo"))
