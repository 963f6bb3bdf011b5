"""Складской леджер: завоз, резерв, подтверждение, возврат, инвентаризация."""

import pytest

from groupshop.app.core.errors_core import (
    InsufficientReservedError,
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from groupshop.app.core.system_locks import LockViolation, assert_stock_counters
from groupshop.app.crud.shop_crud import ShopCRUD
from groupshop.app.models import Stock
from groupshop.app.services.stock_service import StockLedger, product_key

from .conftest import ADMIN_ID


def counters(stock):
    return stock.quantity, stock.reserved, stock.sold


async def test_reserve_then_confirm(session, settings):
    ledger = StockLedger(session, settings)
    await ledger.add("group", 2024, "January", 10, admin_id=ADMIN_ID)

    stock = await ledger.reserve("group", 2024, "January", 3)
    assert counters(stock) == (7, 3, 0)

    stock = await ledger.confirm_reserved("group", 2024, "January", 3)
    assert counters(stock) == (7, 0, 3)
    assert stock.initial_quantity == 10


async def test_return_reserved_moves_back_to_quantity(session, settings):
    ledger = StockLedger(session, settings)
    await ledger.add("channel", 2023, "March", 5)
    await ledger.reserve("channel", 2023, "March", 2)

    stock = await ledger.return_reserved("channel", 2023, "March", 2)
    assert counters(stock) == (5, 0, 0)


async def test_reserve_more_than_available_changes_nothing(session, settings):
    ledger = StockLedger(session, settings)
    await ledger.add("group", 2024, "May", 2)

    with pytest.raises(InsufficientStockError) as exc_info:
        await ledger.reserve("group", 2024, "May", 3)

    assert exc_info.value.details["available"] == 2
    stock = await ledger.get("group", 2024, "May")
    assert counters(stock) == (2, 0, 0)


async def test_confirm_without_reservation(session, settings):
    ledger = StockLedger(session, settings)
    await ledger.add("group", 2024, "June", 4)
    await ledger.reserve("group", 2024, "June", 1)

    with pytest.raises(InsufficientReservedError):
        await ledger.confirm_reserved("group", 2024, "June", 2)
    with pytest.raises(InsufficientReservedError):
        await ledger.return_reserved("group", 2024, "June", 2)


async def test_unknown_key_is_product_not_found(session, settings):
    with pytest.raises(ProductNotFoundError):
        await StockLedger(session, settings).reserve("group", 2024, "July", 1)


async def test_add_accumulates_initial_and_notes(session, settings):
    ledger = StockLedger(session, settings)
    await ledger.add("Groups", "2024", "jan", 3, admin_id=ADMIN_ID, notes="first batch")
    stock = await ledger.add("group", 2024, "January", 4, admin_id=ADMIN_ID, notes="second batch")

    assert stock.quantity == 7
    assert stock.initial_quantity == 7
    assert stock.added_by == ADMIN_ID
    lines = stock.notes.splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("first batch")
    assert lines[1].startswith("[")


async def test_set_absolute(session, settings):
    ledger = StockLedger(session, settings)
    await ledger.add("group", 2024, "August", 5)

    stock = await ledger.set_absolute("group", 2024, "August", 8)
    assert (stock.quantity, stock.initial_quantity) == (8, 8)

    stock = await ledger.set_absolute("group", 2024, "August", 1)
    assert (stock.quantity, stock.initial_quantity) == (1, 8)

    created = await ledger.set_absolute("channel", 2024, "August", 0)
    assert (created.quantity, created.initial_quantity) == (0, 0)


async def test_available_and_stats(session, settings):
    ledger = StockLedger(session, settings)
    await ledger.add("group", 2024, "January", 10)
    await ledger.add("group", 2024, "February", 5)
    await ledger.add("channel", 2024, "January", 2)
    await ledger.reserve("group", 2024, "January", 4)
    await ledger.confirm_reserved("group", 2024, "January", 1)

    assert await ledger.get_available("group", 2024, "January") == 6
    assert await ledger.get_available("group", 2024, "December") == 0

    stats = await ledger.stats_by_type()
    assert stats["group"].total_quantity == 11
    assert stats["group"].total_reserved == 3
    assert stats["group"].total_sold == 1
    assert stats["group"].total_initial == 15
    assert stats["channel"].total_quantity == 2
    assert len(await ledger.list_all("channel")) == 1


@pytest.mark.parametrize(
    "key",
    [
        ("gift", 2024, "January"),
        ("group", 2024, "Smarch"),
        ("group", "soon", "January"),
        ("group", 1999, "January"),
    ],
)
def test_product_key_rejects_bad_input(key):
    with pytest.raises(ValidationError):
        product_key(*key)


def test_product_key_normalizes():
    assert product_key("Channels", " 2023 ", "12") == ("channel", 2023, "December")


@pytest.mark.parametrize("qty", [0, -1, "many"])
async def test_add_rejects_bad_quantity(session, settings, qty):
    with pytest.raises(ValidationError):
        await StockLedger(session, settings).add("group", 2024, "January", qty)


def test_counters_invariant():
    assert_stock_counters(Stock(quantity=2, reserved=1, sold=1, initial_quantity=4))
    with pytest.raises(LockViolation):
        assert_stock_counters(Stock(quantity=-1, reserved=0, sold=0, initial_quantity=0))
    with pytest.raises(LockViolation):
        assert_stock_counters(Stock(quantity=5, reserved=1, sold=0, initial_quantity=5))


async def test_add_when_row_appears_concurrently(session, settings, monkeypatch):
    ledger = StockLedger(session, settings)
    await ledger.add("group", 2024, "July", 10, admin_id=ADMIN_ID)

    real_lock = ShopCRUD.lock_stock
    calls = []

    async def miss_first(self, *key):
        calls.append(key)
        return None if len(calls) == 1 else await real_lock(self, *key)

    monkeypatch.setattr(ShopCRUD, "lock_stock", miss_first)

    stock = await ledger.add("group", 2024, "July", 5, notes="second batch")

    assert len(calls) == 2
    assert (stock.quantity, stock.initial_quantity) == (15, 15)
    assert stock.notes.endswith("second batch")
    assert len(await ledger.list_all("group")) == 1


async def test_set_absolute_creates_missing_record(session, settings):
    stock = await StockLedger(session, settings).set_absolute("channel", 2021, "May", 4, admin_id=ADMIN_ID)
    assert (stock.quantity, stock.initial_quantity, stock.added_by) == (4, 4, ADMIN_ID)
