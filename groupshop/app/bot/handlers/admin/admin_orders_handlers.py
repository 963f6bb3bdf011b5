"""Админ: последние заказы, карточка заказа, смена статуса, возврат."""

from __future__ import annotations

from aiogram import Bot, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config_core import Settings
from ....core.errors_core import ValidationError
from ....core.i18n_core import t
from ....core.utils_core import escape_html, format_date, format_money, split_long_message
from ....crud.user_crud import UserCRUD
from ....models import Order, User
from ....services.orders_service import OrdersService
from ...filters import IsAdmin
from ...notify import send_safe
from ..orders_handlers import order_line
from .admin_main_handlers import answer_usage, command_args

router = Router(name="admin-orders")
router.message.filter(IsAdmin())


def _order_id(raw: str) -> int:
    if not raw.lstrip("#").isdigit():
        raise ValidationError("Order id must be a number.", details={"order_id": raw})
    return int(raw.lstrip("#"))


def order_details(lang: str, order: Order) -> str:
    return t(
        lang,
        "order_details",
        id=order.id,
        telegram_id=order.telegram_id,
        type=t(lang, f"type_{order.product_type}"),
        month=order.month,
        year=order.year,
        quantity=order.quantity,
        total=format_money(order.total_price),
        refunded=format_money(order.refund_amount),
        username=order.target_username,
        status=t(lang, f"order_status_{order.status}"),
        payment_status=order.payment_status,
        date=format_date(order.created_at),
        notes=escape_html(order.admin_notes or "-"),
    )


@router.message(Command("recent"))
async def handle_recent(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    """/recent [n] [status] — последние заказы (по умолчанию 10)."""

    args = command_args(command, 0) or []
    limit = int(args[0]) if args and args[0].isdigit() else 10
    status = args[1] if len(args) > 1 else None
    orders = await OrdersService(session, settings).get_recent_orders(limit=min(limit, 50), status=status)
    if not orders:
        await message.answer(t(lang, "no_orders"))
        return
    text = "\n".join(f"{order_line(lang, o)} · <code>{o.telegram_id}</code>" for o in orders)
    for chunk in split_long_message(text):
        await message.answer(chunk)


@router.message(Command("order"))
async def handle_order(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    args = command_args(command, 1)
    if args is None:
        await answer_usage(message, lang, "/order <id>")
        return
    order = await OrdersService(session, settings).get_order(_order_id(args[0]))
    await message.answer(order_details(lang, order))


@router.message(Command("setstatus"))
async def handle_set_status(
    message: Message,
    command: CommandObject,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    """/setstatus <id> <processing|completed|cancelled> [notes]."""

    args = command_args(command, 2, maxsplit=2)
    if args is None:
        await answer_usage(message, lang, "/setstatus <id> <processing|completed|cancelled> [notes]")
        return
    order = await OrdersService(session, settings).update_status(
        _order_id(args[0]), args[1], notes=args[2] if len(args) > 2 else None, admin_id=user.telegram_id
    )
    await session.commit()
    await message.answer(t(lang, "order_status_updated", id=order.id, status=order.status))
    owner = await UserCRUD(session).get_by_id(order.user_id)
    if owner is not None:
        await send_safe(
            bot,
            owner.telegram_id,
            t(owner.language, "order_status_changed_user", id=order.id, status=t(owner.language, f"order_status_{order.status}")),
        )


@router.message(Command("refund"))
async def handle_refund(
    message: Message,
    command: CommandObject,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    """/refund <id> <amount> [reason]."""

    args = command_args(command, 2, maxsplit=2)
    if args is None:
        await answer_usage(message, lang, "/refund <id> <amount> [reason]")
        return
    result = await OrdersService(session, settings).process_refund(
        _order_id(args[0]), args[1], reason=args[2] if len(args) > 2 else None, admin_id=user.telegram_id
    )
    await session.commit()
    await message.answer(
        t(
            lang,
            "order_refunded_admin",
            id=result.order.id,
            amount=format_money(result.amount),
            payment_status=result.order.payment_status,
        )
    )
    await send_safe(
        bot,
        result.user.telegram_id,
        t(result.user.language, "order_refunded_user", id=result.order.id, amount=format_money(result.amount)),
    )
