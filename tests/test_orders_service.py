"""Заказы: оформление, статусы, отмена пользователем, возвраты."""

from decimal import Decimal

import pytest

from groupshop.app.core.errors_core import (
    InsufficientFundsError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from groupshop.app.models import OrderStatus, PaymentStatus, TxKind
from groupshop.app.services.orders_service import OrdersService
from groupshop.app.services.pricing_service import PricingService
from groupshop.app.services.stock_service import StockLedger
from groupshop.app.services.wallet_service import WalletLedger

from .conftest import ADMIN_ID


async def test_checkout_happy_path(session, settings, make_user, offer):
    user = await make_user(2001, balance="30")
    await offer("group", 2024, "January", qty=10)

    result = await OrdersService(session, settings).checkout(2001, "group", 2024, "jan", 3, "@buyer_group")

    order = result.order
    assert result.total == Decimal("15.00")
    assert order.status == OrderStatus.PENDING
    assert order.payment_status == PaymentStatus.PAID
    assert order.price_per_unit == Decimal("5.00")
    assert order.target_username == "buyer_group"
    assert user.balance == Decimal("15.00")
    assert user.total_spent == Decimal("15.00")

    stock = await StockLedger(session, settings).get("group", 2024, "January")
    assert (stock.quantity, stock.reserved, stock.sold) == (7, 3, 0)

    history = await WalletLedger(session, settings).list_transactions(user)
    assert [(tx.kind, tx.order_id) for tx in history] == [(TxKind.PURCHASE, order.id)]


async def test_checkout_uses_price_override(session, settings, make_user, offer):
    await make_user(2002, balance="100")
    await offer("channel", 2024, "May", qty=5)
    await PricingService(session, settings).set_price("channel", 2024, "May", "11.50")

    result = await OrdersService(session, settings).checkout(2002, "channel", 2024, "May", 2, "my_channel")
    assert result.total == Decimal("23.00")


async def test_checkout_insufficient_funds_changes_nothing(session, settings, make_user, offer):
    user = await make_user(2003, balance="5")
    await offer("channel", 2024, "January", qty=10)

    with pytest.raises(InsufficientFundsError):
        await OrdersService(session, settings).checkout(2003, "channel", 2024, "January", 1, "target")

    assert user.balance == Decimal("5.00")
    stock = await StockLedger(session, settings).get("channel", 2024, "January")
    assert (stock.quantity, stock.reserved) == (10, 0)
    assert await OrdersService(session, settings).count_user_orders(2003) == 0


async def test_checkout_insufficient_stock(session, settings, make_user, offer):
    user = await make_user(2004, balance="100")
    await offer("group", 2024, "February", qty=2)

    with pytest.raises(InsufficientStockError):
        await OrdersService(session, settings).checkout(2004, "group", 2024, "February", 3, "target")
    assert user.balance == Decimal("100.00")


async def test_checkout_month_not_offered(session, settings, make_user, offer):
    await make_user(2005, balance="100")
    await offer("group", 2024, "January")

    with pytest.raises(ProductNotFoundError):
        await OrdersService(session, settings).checkout(2005, "group", 2024, "March", 1, "target")


async def test_checkout_offered_without_stock_record(session, settings, make_user):
    from groupshop.app.services.catalog_service import CatalogService

    await make_user(2006, balance="100")
    await CatalogService(session, settings).add_catalog("group", 2024, "April")

    with pytest.raises(ProductNotFoundError):
        await OrdersService(session, settings).checkout(2006, "group", 2024, "April", 1, "target")


@pytest.mark.parametrize(
    "quantity, username",
    [(0, "target"), ("x", "target"), (1, ""), (1, "   "), (1, None)],
)
async def test_checkout_validation(session, settings, make_user, offer, quantity, username):
    await make_user(2007, balance="100")
    await offer()
    with pytest.raises(ValidationError):
        await OrdersService(session, settings).checkout(2007, "group", 2024, "January", quantity, username)


async def test_checkout_unknown_user(session, settings, offer):
    await offer()
    with pytest.raises(NotFoundError):
        await OrdersService(session, settings).checkout(9999, "group", 2024, "January", 1, "target")


# ---------------------------------------------------------------------------
# Статусы
# ---------------------------------------------------------------------------
async def _order(session, settings, make_user, offer, telegram_id=2100, qty=2, balance="50"):
    user = await make_user(telegram_id, balance=balance)
    await offer("group", 2024, "January", qty=10)
    result = await OrdersService(session, settings).checkout(telegram_id, "group", 2024, "January", qty, "target")
    return user, result.order


async def test_complete_moves_reservation_to_sold(session, settings, make_user, offer):
    _, order = await _order(session, settings, make_user, offer)
    service = OrdersService(session, settings)

    order = await service.update_status(order.id, "processing", admin_id=ADMIN_ID)
    assert order.status == OrderStatus.PROCESSING

    order = await service.update_status(order.id, "COMPLETED", notes="delivered", admin_id=ADMIN_ID)
    assert order.status == OrderStatus.COMPLETED
    assert order.completed_at is not None
    assert "delivered" in order.admin_notes

    stock = await StockLedger(session, settings).get("group", 2024, "January")
    assert (stock.quantity, stock.reserved, stock.sold) == (8, 0, 2)


async def test_admin_cancel_returns_stock_and_money(session, settings, make_user, offer):
    user, order = await _order(session, settings, make_user, offer, balance="50")
    assert user.balance == Decimal("40.00")

    order = await OrdersService(session, settings).update_status(order.id, "cancelled", notes="out of stock")

    assert order.status == OrderStatus.CANCELLED
    assert order.payment_status == PaymentStatus.REFUNDED
    assert order.refund_amount == Decimal("10.00")
    assert order.cancelled_at is not None
    assert user.balance == Decimal("50.00")
    stock = await StockLedger(session, settings).get("group", 2024, "January")
    assert (stock.quantity, stock.reserved, stock.sold) == (10, 0, 0)


async def test_forbidden_transitions(session, settings, make_user, offer):
    _, order = await _order(session, settings, make_user, offer)
    service = OrdersService(session, settings)
    await service.update_status(order.id, "completed")

    with pytest.raises(InvalidStateError):
        await service.update_status(order.id, "cancelled")
    with pytest.raises(InvalidStateError):
        await service.update_status(order.id, "pending")
    with pytest.raises(ValidationError):
        await service.update_status(order.id, "shipped")
    with pytest.raises(NotFoundError):
        await service.update_status(777777, "completed")


async def test_user_cancel_only_own_pending(session, settings, make_user, offer):
    user, order = await _order(session, settings, make_user, offer, telegram_id=2200)
    service = OrdersService(session, settings)

    with pytest.raises(NotFoundError):
        await service.cancel_order(order.id, 2201)

    order = await service.cancel_order(order.id, 2200)
    assert order.status == OrderStatus.CANCELLED
    assert user.balance == Decimal("50.00")

    with pytest.raises(InvalidStateError):
        await service.cancel_order(order.id, 2200)


# ---------------------------------------------------------------------------
# Возвраты
# ---------------------------------------------------------------------------
async def test_full_refund_closes_order(session, settings, make_user, offer):
    user, order = await _order(session, settings, make_user, offer, qty=4, balance="20")
    assert order.total_price == Decimal("20.00")
    assert user.balance == Decimal("0.00")

    result = await OrdersService(session, settings).process_refund(order.id, "20", reason="duplicate", admin_id=ADMIN_ID)

    assert result.amount == Decimal("20.00")
    assert result.order.status == OrderStatus.REFUNDED
    assert result.order.payment_status == PaymentStatus.REFUNDED
    assert result.order.refund_amount == Decimal("20.00")
    assert result.user.balance == Decimal("20.00")
    assert result.user.total_spent == Decimal("0.00")
    stock = await StockLedger(session, settings).get("group", 2024, "January")
    assert (stock.quantity, stock.reserved) == (10, 0)

    with pytest.raises(InvalidStateError):
        await OrdersService(session, settings).process_refund(order.id, "1")


async def test_refund_above_total_fails(session, settings, make_user, offer):
    user, order = await _order(session, settings, make_user, offer, qty=4, balance="20")

    with pytest.raises(ValidationError):
        await OrdersService(session, settings).process_refund(order.id, "25")

    assert order.refund_amount == Decimal("0")
    assert user.balance == Decimal("0.00")


async def test_partial_refunds_accumulate(session, settings, make_user, offer):
    user, order = await _order(session, settings, make_user, offer, qty=4, balance="20")
    service = OrdersService(session, settings)
    await service.update_status(order.id, "completed")

    first = await service.process_refund(order.id, "5")
    assert first.order.payment_status == PaymentStatus.PARTIALLY_REFUNDED
    assert first.order.status == OrderStatus.COMPLETED

    with pytest.raises(ValidationError):
        await service.process_refund(order.id, "15.01")
    with pytest.raises(ValidationError):
        await service.process_refund(order.id, "5.005")

    last = await service.process_refund(order.id, "15")
    assert last.order.refund_amount == Decimal("20.00")
    assert last.order.status == OrderStatus.REFUNDED
    assert user.balance == Decimal("20.00")
    # выполненный заказ склад не возвращает
    stock = await StockLedger(session, settings).get("group", 2024, "January")
    assert (stock.quantity, stock.reserved, stock.sold) == (6, 0, 4)


@pytest.mark.parametrize("amount", ["0", "-3", "abc"])
async def test_refund_amount_validation(session, settings, make_user, offer, amount):
    _, order = await _order(session, settings, make_user, offer)
    with pytest.raises(ValidationError):
        await OrdersService(session, settings).process_refund(order.id, amount)


# ---------------------------------------------------------------------------
# Выборки
# ---------------------------------------------------------------------------
async def test_lists_and_counters(session, settings, make_user, offer):
    await make_user(2300, balance="100")
    await offer("group", 2024, "January")
    await offer("group", 2023, "March")
    service = OrdersService(session, settings)
    a = await service.checkout(2300, "group", 2024, "January", 1, "t1")
    b = await service.checkout(2300, "group", 2023, "March", 1, "t2")
    c = await service.checkout(2300, "group", 2024, "January", 1, "t3")
    await service.update_status(b.order.id, "completed")

    user_orders = await service.get_user_orders(2300, limit=10)
    assert {o.id for o in user_orders} == {a.order.id, b.order.id, c.order.id}
    assert await service.count_user_orders(2300) == 3
    assert (await service.get_order(a.order.id)).id == a.order.id

    completed = await service.get_recent_orders(limit=10, status="completed")
    assert [o.id for o in completed] == [b.order.id]

    assert await service.orders_count_by_month_year() == [(2024, "January", 2), (2023, "March", 1)]
