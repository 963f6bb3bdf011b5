"""Мои заказы и отмена заказа пользователем (пока он pending)."""

from __future__ import annotations

from typing import List

from aiogram import Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.config_core import Settings
from ...core.i18n_core import t
from ...core.utils_core import format_date, format_money
from ...models import Order, OrderStatus, User
from ...services.orders_service import OrdersService
from .. import keyboards
from ..filters import ButtonText

router = Router(name="orders")


def order_line(lang: str, order: Order) -> str:
    return t(
        lang,
        "order_line",
        id=order.id,
        type=t(lang, f"type_{order.product_type}"),
        month=order.month,
        year=order.year,
        quantity=order.quantity,
        total=format_money(order.total_price),
        status=t(lang, f"order_status_{order.status}"),
        date=format_date(order.created_at),
    )


@router.message(Command("orders"))
@router.message(ButtonText("orders_button"))
async def handle_orders(
    message: Message,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    await state.clear()
    orders: List[Order] = await OrdersService(session, settings).get_user_orders(user.telegram_id, limit=10)
    if not orders:
        await message.answer(t(lang, "no_orders"))
        return
    text = "\n".join([t(lang, "orders_title"), *(order_line(lang, o) for o in orders)])
    pending = [o.id for o in orders if o.status == OrderStatus.PENDING]
    await message.answer(text, reply_markup=keyboards.order_cancel_keyboard(lang, pending))


@router.callback_query(keyboards.OrderCancelCb.filter())
async def handle_cancel_order(
    callback: CallbackQuery,
    callback_data: keyboards.OrderCancelCb,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    order = await OrdersService(session, settings).cancel_order(callback_data.order_id, user.telegram_id)
    await callback.answer()
    if isinstance(callback.message, Message):
        await callback.message.answer(
            t(lang, "order_cancelled_user", id=order.id, amount=format_money(order.refund_amount))
        )
