"""
==============================================================================
== GroupShop Bot — keyboards
------------------------------------------------------------------------------
Назначение: reply/inline-разметки бота и фабрики callback-данных. Здесь нет
бизнес-логики и нет работы с балансами.

Канон/инварианты:
  • Балансы и БД не изменяет; только формирует кнопки.
  • Callback-данные строятся фабриками CallbackData, фильтры хендлеров
    используют те же фабрики (DepositDecisionCb → «dep:approve:<id>»).
  • Тексты кнопок берутся из i18n по языку пользователя.

Запреты:
  • Не кодирует в callback ничего, кроме идентификаторов и ключей товара
    (лимит Telegram — 64 байта).
==============================================================================
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Sequence

from aiogram.filters.callback_data import CallbackData
from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from ..core.config_core import DEPOSIT_NETWORKS, LANGUAGE_TITLES, RequiredChannel
from ..core.i18n_core import t
from ..core.utils_core import money

# Простые callback-строки без параметров
CHECK_MEMBERSHIP = "check_membership"
WALLET_TOPUP = "wallet:topup"
WALLET_HISTORY = "wallet:history"
DEPOSIT_SEND_PROOF = "deposit:proof"
SETTINGS_LANGUAGE = "settings:language"
CANCEL = "cancel"


# ---------------------------------------------------------------------------
# Фабрики callback-данных
# ---------------------------------------------------------------------------
class DepositDecisionCb(CallbackData, prefix="dep"):
    """Решение админа по заявке: dep:approve:<id> / dep:reject:<id>."""

    action: str
    tx_id: int


class DepositAmountCb(CallbackData, prefix="depamt"):
    amount: str  # сумма или "custom"


class NetworkCb(CallbackData, prefix="depnet"):
    network: str


class LanguageCb(CallbackData, prefix="lang"):
    code: str


class ProductTypeCb(CallbackData, prefix="ptype"):
    product_type: str


class ProductYearCb(CallbackData, prefix="pyear"):
    product_type: str
    year: int


class ProductMonthCb(CallbackData, prefix="pmonth"):
    product_type: str
    year: int
    month: str


class CheckoutCb(CallbackData, prefix="co"):
    action: str  # confirm | cancel


class OrderCancelCb(CallbackData, prefix="ocancel"):
    order_id: int


# ---------------------------------------------------------------------------
# Reply-клавиатура главного меню
# ---------------------------------------------------------------------------
def main_menu_keyboard(lang: str, is_admin: bool = False) -> ReplyKeyboardMarkup:
    """Главное меню: кошелёк, магазин, заказы, (статистика), аккаунты, поддержка, настройки."""

    rows: List[List[KeyboardButton]] = [
        [KeyboardButton(text=t(lang, "wallet_button")), KeyboardButton(text=t(lang, "shop_button"))],
        [KeyboardButton(text=t(lang, "orders_button"))],
    ]
    if is_admin:
        rows[1].append(KeyboardButton(text=t(lang, "statistics_button")))
    rows.append([KeyboardButton(text=t(lang, "ready_accounts_button")), KeyboardButton(text=t(lang, "support_button"))])
    rows.append([KeyboardButton(text=t(lang, "settings_button"))])
    return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True)


def cancel_keyboard(lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text=t(lang, "cancel_button"), callback_data=CANCEL)]]
    )


# ---------------------------------------------------------------------------
# Каналы / язык
# ---------------------------------------------------------------------------
def channels_keyboard(lang: str, channels: Iterable[RequiredChannel]) -> InlineKeyboardMarkup:
    rows = [[InlineKeyboardButton(text=ch.title, url=ch.invite_link)] for ch in channels]
    rows.append([InlineKeyboardButton(text=t(lang, "check_membership_button"), callback_data=CHECK_MEMBERSHIP)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def language_keyboard(languages: Sequence[str]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(text=LANGUAGE_TITLES.get(code, code), callback_data=LanguageCb(code=code).pack())]
        for code in languages
    ]
    return InlineKeyboardMarkup(inline_keyboard=rows)


def settings_keyboard(lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text=t(lang, "choose_language"), callback_data=SETTINGS_LANGUAGE)]]
    )


# ---------------------------------------------------------------------------
# Кошелёк / депозит
# ---------------------------------------------------------------------------
def wallet_keyboard(lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=t(lang, "topup_button"), callback_data=WALLET_TOPUP)],
            [InlineKeyboardButton(text=t(lang, "history_button"), callback_data=WALLET_HISTORY)],
        ]
    )


def deposit_amounts_keyboard(lang: str, amounts: Sequence[Decimal]) -> InlineKeyboardMarkup:
    """Быстрые суммы по две в ряд + «своя сумма» + отмена."""

    buttons = [
        InlineKeyboardButton(text=f"{money(a)} USDT", callback_data=DepositAmountCb(amount=str(money(a))).pack())
        for a in amounts
    ]
    rows = [buttons[i : i + 2] for i in range(0, len(buttons), 2)]
    rows.append(
        [InlineKeyboardButton(text=t(lang, "custom_amount_button"), callback_data=DepositAmountCb(amount="custom").pack())]
    )
    rows.append([InlineKeyboardButton(text=t(lang, "cancel_button"), callback_data=CANCEL)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def network_keyboard(lang: str) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(text=f"USDT {net}", callback_data=NetworkCb(network=net).pack())]
        for net in DEPOSIT_NETWORKS
    ]
    rows.append([InlineKeyboardButton(text=t(lang, "cancel_button"), callback_data=CANCEL)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def send_proof_keyboard(lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=t(lang, "send_proof_button"), callback_data=DEPOSIT_SEND_PROOF)],
            [InlineKeyboardButton(text=t(lang, "cancel_button"), callback_data=CANCEL)],
        ]
    )


def deposit_decision_keyboard(lang: str, tx_id: int) -> InlineKeyboardMarkup:
    """Кнопки Approve / Reject под заявкой у админа."""

    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text=t(lang, "approve_button"),
                    callback_data=DepositDecisionCb(action="approve", tx_id=tx_id).pack(),
                ),
                InlineKeyboardButton(
                    text=t(lang, "reject_button"),
                    callback_data=DepositDecisionCb(action="reject", tx_id=tx_id).pack(),
                ),
            ]
        ]
    )


# ---------------------------------------------------------------------------
# Магазин
# ---------------------------------------------------------------------------
def product_types_keyboard(lang: str, product_types: Iterable[str]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(text=t(lang, f"type_{ptype}"), callback_data=ProductTypeCb(product_type=ptype).pack())]
        for ptype in product_types
    ]
    rows.append([InlineKeyboardButton(text=t(lang, "cancel_button"), callback_data=CANCEL)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def years_keyboard(lang: str, product_type: str, years: Iterable[int]) -> InlineKeyboardMarkup:
    buttons = [
        InlineKeyboardButton(text=str(y), callback_data=ProductYearCb(product_type=product_type, year=y).pack())
        for y in years
    ]
    rows = [buttons[i : i + 3] for i in range(0, len(buttons), 3)]
    rows.append([InlineKeyboardButton(text=t(lang, "cancel_button"), callback_data=CANCEL)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def months_keyboard(lang: str, product_type: str, year: int, months: Iterable[str]) -> InlineKeyboardMarkup:
    buttons = [
        InlineKeyboardButton(
            text=m,
            callback_data=ProductMonthCb(product_type=product_type, year=year, month=m).pack(),
        )
        for m in months
    ]
    rows = [buttons[i : i + 3] for i in range(0, len(buttons), 3)]
    rows.append([InlineKeyboardButton(text=t(lang, "cancel_button"), callback_data=CANCEL)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def checkout_confirm_keyboard(lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text=t(lang, "confirm_button"), callback_data=CheckoutCb(action="confirm").pack()),
                InlineKeyboardButton(text=t(lang, "cancel_button"), callback_data=CheckoutCb(action="cancel").pack()),
            ]
        ]
    )


def order_cancel_keyboard(lang: str, order_ids: Iterable[int]) -> InlineKeyboardMarkup | None:
    """Кнопки отмены для заказов в статусе pending; None если отменять нечего."""

    rows = [
        [InlineKeyboardButton(text=t(lang, "cancel_order_button", id=oid), callback_data=OrderCancelCb(order_id=oid).pack())]
        for oid in order_ids
    ]
    return InlineKeyboardMarkup(inline_keyboard=rows) if rows else None


__all__ = [
    "CHECK_MEMBERSHIP",
    "WALLET_TOPUP",
    "WALLET_HISTORY",
    "DEPOSIT_SEND_PROOF",
    "SETTINGS_LANGUAGE",
    "CANCEL",
    "DepositDecisionCb",
    "DepositAmountCb",
    "NetworkCb",
    "LanguageCb",
    "ProductTypeCb",
    "ProductYearCb",
    "ProductMonthCb",
    "CheckoutCb",
    "OrderCancelCb",
    "main_menu_keyboard",
    "cancel_keyboard",
    "channels_keyboard",
    "language_keyboard",
    "settings_keyboard",
    "wallet_keyboard",
    "deposit_amounts_keyboard",
    "network_keyboard",
    "send_proof_keyboard",
    "deposit_decision_keyboard",
    "product_types_keyboard",
    "years_keyboard",
    "months_keyboard",
    "checkout_confirm_keyboard",
    "order_cancel_keyboard",
]
