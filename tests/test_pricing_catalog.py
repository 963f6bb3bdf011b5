"""Цены (переопределения и дефолты) и каталог (тип, год → месяцы)."""

from decimal import Decimal

import pytest

from groupshop.app.core.errors_core import NotFoundError, ValidationError
from groupshop.app.crud.shop_crud import ShopCRUD
from groupshop.app.services.catalog_service import CatalogService
from groupshop.app.services.pricing_service import PricingService

from .conftest import ADMIN_ID, build_settings


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
async def test_default_prices(session, settings):
    pricing = PricingService(session, settings)

    assert await pricing.get_price("group", 2024, "January") == Decimal("5.00")
    assert await pricing.get_price("channel", 2024, "January") == Decimal("7.00")
    effective = await pricing.get_effective("group", 2024, "January")
    assert effective.is_default is True


async def test_defaults_come_from_settings(session):
    pricing = PricingService(session, build_settings(DEFAULT_PRICE_GROUP=Decimal("4.5")))
    assert await pricing.get_price("group", 2023, "May") == Decimal("4.50")


async def test_override_wins_over_default(session, settings):
    pricing = PricingService(session, settings)
    await pricing.set_price("group", 2024, "March", "9.99", admin_id=ADMIN_ID, notes="promo")

    assert await pricing.get_price("group", 2024, "March") == Decimal("9.99")
    assert await pricing.get_price("group", 2024, "April") == Decimal("5.00")


async def test_set_price_twice_is_idempotent(session, settings):
    pricing = PricingService(session, settings)
    first = await pricing.set_price("channel", 2024, "May", Decimal("8"), admin_id=ADMIN_ID)
    second = await pricing.set_price("channel", 2024, "May", Decimal("8"), admin_id=ADMIN_ID)

    assert first.id == second.id
    assert await pricing.get_price("channel", 2024, "May") == Decimal("8.00")
    assert len(await pricing.list_active()) == 1


async def test_price_with_sub_cent_digits_is_rejected(session, settings):
    pricing = PricingService(session, settings)
    with pytest.raises(ValidationError):
        await pricing.set_price("group", 2024, "June", "3.999")
    assert await pricing.get_price("group", 2024, "June") == Decimal("5.00")

    row = await pricing.set_price("group", 2024, "June", "3.990")
    assert row.price == Decimal("3.99")


async def test_set_price_when_row_appears_concurrently(session, settings, monkeypatch):
    pricing = PricingService(session, settings)
    await pricing.set_price("group", 2024, "August", "6", admin_id=ADMIN_ID)

    real_lock = ShopCRUD.lock_pricing
    calls = []

    async def miss_first(self, *key):
        calls.append(key)
        return None if len(calls) == 1 else await real_lock(self, *key)

    monkeypatch.setattr(ShopCRUD, "lock_pricing", miss_first)

    row = await pricing.set_price("group", 2024, "August", "6.50", admin_id=ADMIN_ID)

    assert len(calls) == 2
    assert row.price == Decimal("6.50")
    assert len(await pricing.list_active()) == 1
    assert await pricing.get_price("group", 2024, "August") == Decimal("6.50")


@pytest.mark.parametrize("price", ["0", "-2", "free"])
async def test_set_price_rejects_bad_value(session, settings, price):
    with pytest.raises(ValidationError):
        await PricingService(session, settings).set_price("group", 2024, "June", price)


async def test_deactivate_returns_default(session, settings):
    pricing = PricingService(session, settings)
    await pricing.set_price("channel", 2024, "July", "12")

    assert await pricing.deactivate_price("channel", 2024, "July", admin_id=ADMIN_ID) == Decimal("7.00")
    assert await pricing.get_price("channel", 2024, "July") == Decimal("7.00")
    assert await pricing.list_active() == []

    with pytest.raises(NotFoundError):
        await pricing.deactivate_price("channel", 2024, "July")


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
async def test_add_catalog_and_read_back(session, settings):
    catalog = CatalogService(session, settings)
    saved = await catalog.add_catalog("group", 2024, "mar,jan,Feb", admin_id=ADMIN_ID, description="2024 groups")

    assert saved.active_months == ["January", "February", "March"]
    assert await catalog.get_available_months("group", 2024) == ["January", "February", "March"]
    assert await catalog.get_available_years("group") == [2024]
    assert await catalog.is_offered("group", 2024, "feb") is True
    assert await catalog.is_offered("group", 2024, "April") is False
    assert await catalog.get_available_months("channel", 2024) == []


async def test_all_months(session, settings):
    saved = await CatalogService(session, settings).add_catalog("channel", 2023, "all")
    assert len(saved.active_months) == 12


async def test_update_catalog_merges_months(session, settings):
    catalog = CatalogService(session, settings)
    await catalog.add_catalog("group", 2023, ["January", "February"])

    updated = await catalog.update_catalog("group", 2023, ["February", "March"], admin_id=ADMIN_ID)

    assert updated.active_months == ["February", "March"]
    # прежний месяц остаётся в БД неактивным
    assert sorted(m.month for m in updated.months) == ["February", "January", "March"]

    again = await catalog.update_catalog("group", 2023, "jan,feb,mar")
    assert again.active_months == ["January", "February", "March"]
    assert len(again.months) == 3


async def test_deactivate_catalog(session, settings):
    catalog = CatalogService(session, settings)
    await catalog.add_catalog("group", 2024, "jan")
    await catalog.add_catalog("channel", 2024, "jan")

    await catalog.deactivate_catalog("group", 2024, admin_id=ADMIN_ID)

    assert await catalog.get_available_months("group", 2024) == []
    assert [c.product_type for c in await catalog.get_active_catalogs()] == ["channel"]
    assert len(await catalog.list_all()) == 2
    with pytest.raises(NotFoundError):
        await catalog.deactivate_catalog("channel", 2030)


async def test_add_catalog_when_row_appears_concurrently(session, settings, monkeypatch):
    catalog = CatalogService(session, settings)
    await catalog.add_catalog("channel", 2022, "jan,feb", admin_id=ADMIN_ID)

    real_lock = ShopCRUD.lock_catalog
    calls = []

    async def miss_first(self, *key):
        calls.append(key)
        return None if len(calls) == 1 else await real_lock(self, *key)

    monkeypatch.setattr(ShopCRUD, "lock_catalog", miss_first)

    saved = await catalog.add_catalog("channel", 2022, "mar", admin_id=ADMIN_ID)

    assert len(calls) == 2
    assert saved.active_months == ["March"]
    assert len(await catalog.list_all()) == 1


@pytest.mark.parametrize(
    "product_type, months",
    [("group", "Smarch"), ("group", ""), ("gift", "jan")],
)
async def test_add_catalog_rejects_bad_input(session, settings, product_type, months):
    with pytest.raises(ValidationError):
        await CatalogService(session, settings).add_catalog(product_type, 2024, months)
