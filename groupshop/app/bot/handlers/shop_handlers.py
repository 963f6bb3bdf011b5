"""Магазин: выбор товара (тип → год → месяц), количество, получатель, оплата с баланса."""

from __future__ import annotations

from decimal import Decimal

from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.config_core import PRODUCT_TYPES, Settings
from ...core.i18n_core import t
from ...core.utils_core import format_money, money, normalize_username
from ...models import Order, User
from ...services.catalog_service import CatalogService
from ...services.orders_service import OrdersService
from ...services.pricing_service import PricingService
from ...services.stock_service import StockLedger
from .. import keyboards
from ..filters import ButtonText, MenuButton
from ..notify import broadcast
from ..states import CheckoutStates

router = Router(name="shop")


def _product(lang: str, ptype: str, month: str, year: int) -> dict:
    return {"type": t(lang, f"type_{ptype}"), "month": month, "year": year}


@router.message(Command("shop"))
@router.message(ButtonText("shop_button"))
async def handle_shop(message: Message, state: FSMContext, session: AsyncSession, settings: Settings, lang: str) -> None:
    """Показать типы товаров, по которым есть активный каталог."""

    await state.clear()
    catalog = CatalogService(session, settings)
    types = [ptype for ptype in PRODUCT_TYPES if await catalog.get_available_years(ptype)]
    if not types:
        await message.answer(t(lang, "no_products_available"))
        return
    await state.set_state(CheckoutStates.product_type)
    await message.answer(t(lang, "choose_type"), reply_markup=keyboards.product_types_keyboard(lang, types))


@router.callback_query(CheckoutStates.product_type, keyboards.ProductTypeCb.filter())
async def handle_type(
    callback: CallbackQuery,
    callback_data: keyboards.ProductTypeCb,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    years = await CatalogService(session, settings).get_available_years(callback_data.product_type)
    if not years:
        await callback.message.answer(t(lang, "no_products_available"))
        return
    await state.update_data(product_type=callback_data.product_type)
    await state.set_state(CheckoutStates.year)
    await callback.message.edit_text(
        t(lang, "choose_year"),
        reply_markup=keyboards.years_keyboard(lang, callback_data.product_type, years),
    )


@router.callback_query(CheckoutStates.year, keyboards.ProductYearCb.filter())
async def handle_year(
    callback: CallbackQuery,
    callback_data: keyboards.ProductYearCb,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    months = await CatalogService(session, settings).get_available_months(callback_data.product_type, callback_data.year)
    if not months:
        await callback.message.answer(t(lang, "no_products_available"))
        return
    await state.update_data(year=callback_data.year)
    await state.set_state(CheckoutStates.month)
    await callback.message.edit_text(
        t(lang, "choose_month"),
        reply_markup=keyboards.months_keyboard(lang, callback_data.product_type, callback_data.year, months),
    )


@router.callback_query(CheckoutStates.month, keyboards.ProductMonthCb.filter())
async def handle_month(
    callback: CallbackQuery,
    callback_data: keyboards.ProductMonthCb,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    """Карточка товара: цена и остаток; при наличии — запрос количества."""

    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    ptype, year, month = callback_data.product_type, callback_data.year, callback_data.month
    price = await PricingService(session, settings).get_price(ptype, year, month)
    available = await StockLedger(session, settings).get_available(ptype, year, month)
    await callback.message.edit_text(
        t(lang, "product_info", price=format_money(price), stock=available, **_product(lang, ptype, month, year))
    )
    if available <= 0:
        await state.clear()
        await callback.message.answer(t(lang, "out_of_stock"))
        return
    await state.update_data(product_type=ptype, year=year, month=month, price=str(price), available=available)
    await state.set_state(CheckoutStates.quantity)
    await callback.message.answer(t(lang, "enter_quantity", max=available), reply_markup=keyboards.cancel_keyboard(lang))


@router.message(CheckoutStates.quantity, ~MenuButton())
async def handle_quantity(message: Message, state: FSMContext, lang: str) -> None:
    data = await state.get_data()
    available = int(data.get("available", 0))
    text = (message.text or "").strip()
    if not text.isdigit() or not 1 <= int(text) <= available:
        await message.answer(t(lang, "invalid_quantity", max=available))
        return
    await state.update_data(quantity=int(text))
    await state.set_state(CheckoutStates.target_username)
    await message.answer(t(lang, "enter_target_username"), reply_markup=keyboards.cancel_keyboard(lang))


@router.message(CheckoutStates.target_username, ~MenuButton())
async def handle_target_username(message: Message, state: FSMContext, user: User, lang: str) -> None:
    username = normalize_username(message.text)
    if username is None:
        await message.answer(t(lang, "invalid_username"))
        return
    data = await state.update_data(target_username=username)
    price = Decimal(data["price"])
    quantity = int(data["quantity"])
    await state.set_state(CheckoutStates.confirm)
    await message.answer(
        t(
            lang,
            "checkout_confirm",
            quantity=quantity,
            price=format_money(price),
            total=format_money(money(price * quantity)),
            username=username,
            balance=format_money(user.balance),
            **_product(lang, data["product_type"], data["month"], int(data["year"])),
        ),
        reply_markup=keyboards.checkout_confirm_keyboard(lang),
    )


async def _notify_admins_new_order(bot: Bot, settings: Settings, order: Order) -> None:
    lang = settings.DEFAULT_LANG
    text = t(
        lang,
        "new_order_admin",
        id=order.id,
        quantity=order.quantity,
        username=order.target_username,
        total=format_money(order.total_price),
        telegram_id=order.telegram_id,
        **_product(lang, order.product_type, order.month, order.year),
    )
    await broadcast(bot, settings.ADMIN_IDS, text)


@router.callback_query(CheckoutStates.confirm, keyboards.CheckoutCb.filter())
async def handle_confirm(
    callback: CallbackQuery,
    callback_data: keyboards.CheckoutCb,
    state: FSMContext,
    bot: Bot,
    session: AsyncSession,
    settings: Settings,
    user: User,
    lang: str,
) -> None:
    """Оформление заказа одной транзакцией; уведомления — после commit."""

    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    data = await state.get_data()
    await state.clear()
    await callback.message.edit_reply_markup(reply_markup=None)
    if callback_data.action != "confirm":
        await callback.message.answer(t(lang, "checkout_cancelled"))
        return

    result = await OrdersService(session, settings).checkout(
        user.telegram_id,
        data.get("product_type"),
        data.get("year"),
        data.get("month"),
        data.get("quantity"),
        data.get("target_username"),
    )
    await session.commit()
    await callback.message.answer(
        t(lang, "order_created", order_id=result.order.id, total=format_money(result.total)),
        reply_markup=keyboards.main_menu_keyboard(lang, is_admin=user.is_admin),
    )
    await _notify_admins_new_order(bot, settings, result.order)
