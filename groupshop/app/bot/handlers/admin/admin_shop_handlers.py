"""Админ: склад, цены и каталог магазина."""

from __future__ import annotations

from typing import Optional

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config_core import Settings
from ....core.i18n_core import t
from ....core.utils_core import format_money, split_long_message
from ....models import User
from ....services.catalog_service import CatalogService
from ....services.pricing_service import PricingService
from ....services.stock_service import StockLedger
from ...filters import IsAdmin
from .admin_main_handlers import answer_usage, command_args

router = Router(name="admin-shop")
router.message.filter(IsAdmin())


def _type_title(lang: str, ptype: str) -> str:
    return t(lang, f"type_{ptype}")


async def _answer_long(message: Message, text: str) -> None:
    for chunk in split_long_message(text):
        await message.answer(chunk)


# ---------------------------------------------------------------------------
# Склад
# ---------------------------------------------------------------------------
@router.message(Command("addstock", "setstock"))
async def handle_stock_change(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    """/addstock и /setstock <type> <year> <month> <qty> [notes]."""

    args = command_args(command, 4, maxsplit=4)
    if args is None:
        await answer_usage(message, lang, f"/{command.command} <type> <year> <month> <qty> [notes]")
        return
    notes: Optional[str] = args[4] if len(args) > 4 else None
    ledger = StockLedger(session, settings)
    if command.command == "addstock":
        stock = await ledger.add(args[0], args[1], args[2], args[3], admin_id=user.telegram_id, notes=notes)
    else:
        stock = await ledger.set_absolute(args[0], args[1], args[2], args[3], admin_id=user.telegram_id, notes=notes)
    await message.answer(
        t(
            lang,
            "stock_updated",
            type=_type_title(lang, stock.product_type),
            month=stock.month,
            year=stock.year,
            quantity=stock.quantity,
        )
    )


@router.message(Command("stock"))
async def handle_stock_list(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    rows = await StockLedger(session, settings).list_all(command.args.strip() if command.args else None)
    if not rows:
        await message.answer(t(lang, "stock_empty"))
        return
    lines = [
        t(
            lang,
            "stock_line",
            type=_type_title(lang, s.product_type),
            month=s.month,
            year=s.year,
            quantity=s.quantity,
            reserved=s.reserved,
            sold=s.sold,
        )
        for s in rows
    ]
    await _answer_long(message, "\n".join(lines))


# ---------------------------------------------------------------------------
# Цены
# ---------------------------------------------------------------------------
@router.message(Command("setprice"))
async def handle_set_price(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    args = command_args(command, 4, maxsplit=4)
    if args is None:
        await answer_usage(message, lang, "/setprice <type> <year> <month> <price> [notes]")
        return
    row = await PricingService(session, settings).set_price(
        args[0], args[1], args[2], args[3], admin_id=user.telegram_id, notes=args[4] if len(args) > 4 else None
    )
    await message.answer(
        t(
            lang,
            "price_updated",
            type=_type_title(lang, row.product_type),
            month=row.month,
            year=row.year,
            price=format_money(row.price),
        )
    )


@router.message(Command("delprice"))
async def handle_delete_price(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    args = command_args(command, 3)
    if args is None:
        await answer_usage(message, lang, "/delprice <type> <year> <month>")
        return
    price = await PricingService(session, settings).deactivate_price(args[0], args[1], args[2], admin_id=user.telegram_id)
    await message.answer(t(lang, "price_removed", price=format_money(price)))


@router.message(Command("prices"))
async def handle_prices(message: Message, session: AsyncSession, settings: Settings, lang: str) -> None:
    rows = await PricingService(session, settings).list_active()
    if not rows:
        await message.answer(
            t(
                lang,
                "prices_empty",
                group=format_money(settings.DEFAULT_PRICE_GROUP),
                channel=format_money(settings.DEFAULT_PRICE_CHANNEL),
            )
        )
        return
    lines = [
        t(
            lang,
            "price_line",
            type=_type_title(lang, p.product_type),
            month=p.month,
            year=p.year,
            price=format_money(p.price),
        )
        for p in rows
    ]
    await _answer_long(message, "\n".join(lines))


# ---------------------------------------------------------------------------
# Каталог
# ---------------------------------------------------------------------------
@router.message(Command("addcatalog", "updatecatalog"))
async def handle_catalog_upsert(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    """/addcatalog <type> <year> <months|all> [description]; months через запятую."""

    args = command_args(command, 3, maxsplit=3)
    if args is None:
        years = ",".join(str(y) for y in settings.AVAILABLE_YEARS)
        await answer_usage(message, lang, f"/{command.command} <type> <year: {years}> <months|all> [description]")
        return
    service = CatalogService(session, settings)
    if command.command == "addcatalog":
        catalog = await service.add_catalog(
            args[0], args[1], args[2], admin_id=user.telegram_id, description=args[3] if len(args) > 3 else None
        )
    else:
        catalog = await service.update_catalog(args[0], args[1], args[2], admin_id=user.telegram_id)
    await message.answer(
        t(
            lang,
            "catalog_updated",
            type=_type_title(lang, catalog.product_type),
            year=catalog.year,
            months=", ".join(catalog.active_months),
        )
    )


@router.message(Command("delcatalog"))
async def handle_catalog_delete(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    args = command_args(command, 2)
    if args is None:
        await answer_usage(message, lang, "/delcatalog <type> <year>")
        return
    catalog = await CatalogService(session, settings).deactivate_catalog(args[0], args[1], admin_id=user.telegram_id)
    await message.answer(t(lang, "catalog_removed", type=_type_title(lang, catalog.product_type), year=catalog.year))
