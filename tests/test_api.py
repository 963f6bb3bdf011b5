"""
REST API: витрина, покупка, админские маршруты и коды ошибок.

Приложение собирается create_app(settings); get_db и get_settings
подменяются на тестовую базу и тестовые настройки.
"""

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from groupshop.app import create_app
from groupshop.app.core.config_core import get_settings
from groupshop.app.core.database_core import get_db
from groupshop.app.services.catalog_service import CatalogService
from groupshop.app.services.deposits_service import DepositsService
from groupshop.app.services.stock_service import StockLedger
from groupshop.app.services.users_service import UsersService

from .conftest import ADMIN_API_KEY, ADMIN_ID, build_settings

ADMIN = {"X-Admin-Api-Key": ADMIN_API_KEY}


def build_client(session_factory, settings):
    app = create_app(settings)

    async def _db():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_settings] = lambda: settings
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client(session_factory, settings):
    async with build_client(session_factory, settings) as c:
        yield c


@pytest_asyncio.fixture
async def seed(session_factory, settings):
    """seed(telegram_id, balance, offers=[(type, year, month, qty)]) — данные в отдельной транзакции."""

    async def _seed(telegram_id=7001, balance="0", offers=()):
        async with session_factory() as s:
            async with s.begin():
                user, _ = await UsersService(s, settings).find_or_create(telegram_id, username=f"u{telegram_id}")
                user.balance = Decimal(balance)
                months = {}
                for product_type, year, month, qty in offers:
                    months.setdefault((product_type, year), []).append(month)
                    await StockLedger(s, settings).add(product_type, year, month, qty)
                # add_catalog задаёт полный набор месяцев (тип, год)
                for (product_type, year), names in months.items():
                    await CatalogService(s, settings).add_catalog(product_type, year, names)

    return _seed


# ---------------------------------------------------------------------------
# Публичная часть
# ---------------------------------------------------------------------------
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["db"] is True


async def test_catalog_etag(client, seed):
    await seed(offers=[("group", 2024, "March", 3), ("group", 2024, "January", 3), ("channel", 2023, "May", 1)])

    resp = await client.get("/api/shop/catalog")
    assert resp.status_code == 200
    items = resp.json()["items"]
    assert [(i["product_type"], i["year"], i["months"]) for i in items] == [
        ("channel", 2023, ["May"]),
        ("group", 2024, ["January", "March"]),
    ]

    tag = resp.headers["ETag"]
    cached = await client.get("/api/shop/catalog", headers={"If-None-Match": tag})
    assert cached.status_code == 304

    only_groups = await client.get("/api/shop/catalog", params={"product_type": "group"})
    assert len(only_groups.json()["items"]) == 1
    assert only_groups.headers["ETag"] != tag


async def test_price_and_availability(client, seed):
    await seed(offers=[("channel", 2024, "June", 4)])

    resp = await client.get("/api/shop/price", params={"product_type": "channel", "year": 2024, "month": "jun"})

    assert resp.status_code == 200
    assert resp.json() == {
        "product_type": "channel",
        "year": 2024,
        "month": "June",
        "price": "7.00",
        "is_default": True,
        "available": 4,
    }

    bad = await client.get("/api/shop/price", params={"product_type": "gift", "year": 2024, "month": "jun"})
    assert bad.status_code == 422
    assert bad.json()["error"] == "validation_error"


async def test_checkout_and_orders(client, seed):
    await seed(telegram_id=7002, balance="30", offers=[("group", 2024, "January", 10)])
    body = {
        "telegram_id": 7002,
        "product_type": "group",
        "year": 2024,
        "month": "January",
        "quantity": 3,
        "target_username": "@buyer",
    }

    resp = await client.post("/api/shop/checkout", json=body)

    assert resp.status_code == 201
    data = resp.json()
    assert data["total"] == "15.00"
    assert data["balance"] == "15.00"

    orders = (await client.get("/api/shop/orders", params={"telegram_id": 7002})).json()["items"]
    assert [o["id"] for o in orders] == [data["order_id"]]
    assert orders[0]["status"] == "pending"
    assert orders[0]["target_username"] == "buyer"

    price = await client.get("/api/shop/price", params={"product_type": "group", "year": 2024, "month": "January"})
    assert price.json()["available"] == 7


@pytest.mark.parametrize(
    "balance, quantity, month, status, code",
    [
        ("4", 1, "January", 400, "insufficient_funds"),
        ("9", 2, "January", 400, "insufficient_funds"),
        ("100", 11, "January", 409, "insufficient_stock"),
        ("100", 1, "March", 404, "product_not_found"),
    ],
)
async def test_checkout_errors(client, seed, session_factory, settings, balance, quantity, month, status, code):
    await seed(telegram_id=7003, balance=balance, offers=[("group", 2024, "January", 10)])
    body = {
        "telegram_id": 7003,
        "product_type": "group",
        "year": 2024,
        "month": month,
        "quantity": quantity,
        "target_username": "target",
    }

    resp = await client.post("/api/shop/checkout", json=body)

    assert resp.status_code == status
    assert resp.json()["error"] == code
    async with session_factory() as s:
        user = await UsersService(s, settings).get(7003)
        assert user.balance == Decimal(balance)


async def test_checkout_unknown_user(client, seed):
    await seed(offers=[("group", 2024, "January", 10)])
    body = {
        "telegram_id": 4040,
        "product_type": "group",
        "year": 2024,
        "month": "January",
        "quantity": 1,
        "target_username": "target",
    }
    resp = await client.post("/api/shop/checkout", json=body)
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


# ---------------------------------------------------------------------------
# Админский доступ
# ---------------------------------------------------------------------------
async def test_admin_requires_key(client):
    assert (await client.get("/api/admin/stats")).status_code == 403
    assert (await client.get("/api/admin/stats", headers={"X-Admin-Api-Key": "nope"})).status_code == 403


async def test_admin_disabled_without_key(session_factory):
    async with build_client(session_factory, build_settings(ADMIN_API_KEY=None)) as c:
        resp = await c.get("/api/admin/stats", headers=ADMIN)
    assert resp.status_code == 503


# ---------------------------------------------------------------------------
# Админка: склад, цены, каталог
# ---------------------------------------------------------------------------
async def test_admin_stock(client):
    body = {"product_type": "group", "year": 2024, "month": "feb", "quantity": 5, "admin_id": ADMIN_ID}

    added = await client.post("/api/admin/stock/add", json=body, headers=ADMIN)
    assert added.status_code == 200
    assert (added.json()["quantity"], added.json()["initial_quantity"]) == (5, 5)

    again = await client.post("/api/admin/stock/add", json={**body, "quantity": 2}, headers=ADMIN)
    assert again.json()["quantity"] == 7

    fixed = await client.post("/api/admin/stock/set", json={**body, "quantity": 3}, headers=ADMIN)
    assert fixed.json()["quantity"] == 3
    assert fixed.json()["initial_quantity"] == 7

    zero = await client.post("/api/admin/stock/add", json={**body, "quantity": 0}, headers=ADMIN)
    assert zero.status_code == 422

    listing = await client.get("/api/admin/stock", headers=ADMIN)
    assert [s["month"] for s in listing.json()["items"]] == ["February"]


async def test_admin_pricing(client):
    body = {"product_type": "channel", "year": 2024, "month": "May", "price": "9.5"}

    saved = await client.post("/api/admin/pricing", json=body, headers=ADMIN)
    assert saved.status_code == 200
    assert saved.json()["price"] == "9.50"

    price = await client.get("/api/shop/price", params={"product_type": "channel", "year": 2024, "month": "May"})
    assert (price.json()["price"], price.json()["is_default"]) == ("9.50", False)

    params = {"product_type": "channel", "year": 2024, "month": "May"}
    removed = await client.delete("/api/admin/pricing", params=params, headers=ADMIN)
    assert removed.json() == {"effective_price": "7.00"}

    missing = await client.delete("/api/admin/pricing", params=params, headers=ADMIN)
    assert missing.status_code == 404

    negative = await client.post("/api/admin/pricing", json={**body, "price": "-1"}, headers=ADMIN)
    assert negative.status_code == 422


async def test_admin_catalog(client):
    saved = await client.post(
        "/api/admin/catalog",
        json={"product_type": "group", "year": 2022, "months": "dec,jan"},
        headers=ADMIN,
    )
    assert saved.json()["months"] == ["January", "December"]

    deleted = await client.delete("/api/admin/catalog", params={"product_type": "group", "year": 2022}, headers=ADMIN)
    assert deleted.json()["ok"] is True
    assert (await client.get("/api/shop/catalog")).json()["items"] == []


# ---------------------------------------------------------------------------
# Админка: депозиты, заказы, баланс, статистика
# ---------------------------------------------------------------------------
async def test_admin_deposit_decision(client, seed, session_factory, settings):
    await seed(telegram_id=7100)
    async with session_factory() as s:
        async with s.begin():
            _, tx = await DepositsService(s, settings).submit_deposit(7100, "12", "BEP20", "photo")

    pending = await client.get("/api/admin/deposits/pending", headers=ADMIN)
    assert [d["id"] for d in pending.json()["items"]] == [tx.id]

    url = f"/api/admin/deposits/{tx.id}/decision"
    approved = await client.post(url, json={"decision": "approve", "admin_id": ADMIN_ID}, headers=ADMIN)
    assert approved.status_code == 200
    assert approved.json()["balance"] == "12.00"
    assert approved.json()["deposit"]["status"] == "completed"

    repeat = await client.post(url, json={"decision": "reject", "admin_id": ADMIN_ID}, headers=ADMIN)
    assert repeat.status_code == 409
    assert repeat.json()["error"] == "invalid_state"

    unknown = await client.post(
        "/api/admin/deposits/999999/decision", json={"decision": "approve", "admin_id": ADMIN_ID}, headers=ADMIN
    )
    assert unknown.status_code == 404


async def test_admin_orders_flow(client, seed):
    await seed(telegram_id=7200, balance="50", offers=[("group", 2024, "January", 10)])
    body = {
        "telegram_id": 7200,
        "product_type": "group",
        "year": 2024,
        "month": "January",
        "quantity": 2,
        "target_username": "target",
    }
    order_id = (await client.post("/api/shop/checkout", json=body)).json()["order_id"]

    recent = await client.get("/api/admin/orders", params={"status": "pending"}, headers=ADMIN)
    assert [o["id"] for o in recent.json()["items"]] == [order_id]

    done = await client.post(
        f"/api/admin/orders/{order_id}/status", json={"status": "completed", "notes": "sent"}, headers=ADMIN
    )
    assert done.json()["status"] == "completed"

    back = await client.post(f"/api/admin/orders/{order_id}/status", json={"status": "cancelled"}, headers=ADMIN)
    assert back.status_code == 409

    refund = await client.post(f"/api/admin/orders/{order_id}/refund", json={"amount": "4"}, headers=ADMIN)
    assert refund.status_code == 200
    assert refund.json()["balance"] == "44.00"
    assert refund.json()["order"]["payment_status"] == "partially_refunded"

    too_much = await client.post(f"/api/admin/orders/{order_id}/refund", json={"amount": "7"}, headers=ADMIN)
    assert too_much.status_code == 422
    sub_cent = await client.post(f"/api/admin/orders/{order_id}/refund", json={"amount": "1.005"}, headers=ADMIN)
    assert sub_cent.status_code == 422

    fetched = await client.get(f"/api/admin/orders/{order_id}", headers=ADMIN)
    assert fetched.json()["refund_amount"] == "4.00"
    assert (await client.get("/api/admin/orders/424242", headers=ADMIN)).status_code == 404


async def test_admin_adjust_balance(client, seed):
    await seed(telegram_id=7300, balance="10")
    url = "/api/admin/users/7300/adjust"

    credited = await client.post(url, json={"amount": "5", "admin_id": ADMIN_ID, "reason": "bonus"}, headers=ADMIN)
    assert credited.json() == {"telegram_id": 7300, "balance": "15.00"}

    debited = await client.post(url, json={"amount": "-15", "admin_id": ADMIN_ID}, headers=ADMIN)
    assert debited.json()["balance"] == "0.00"

    overdraft = await client.post(url, json={"amount": "-1", "admin_id": ADMIN_ID}, headers=ADMIN)
    assert overdraft.status_code == 400
    assert overdraft.json()["error"] == "insufficient_funds"

    sub_cent = await client.post(url, json={"amount": "0.001", "admin_id": ADMIN_ID}, headers=ADMIN)
    assert sub_cent.status_code == 422


async def test_admin_stats(client, seed):
    await seed(telegram_id=7400, balance="20", offers=[("channel", 2024, "July", 5)])
    body = {
        "telegram_id": 7400,
        "product_type": "channel",
        "year": 2024,
        "month": "July",
        "quantity": 2,
        "target_username": "target",
    }
    await client.post("/api/shop/checkout", json=body)

    stats = (await client.get("/api/admin/stats", headers=ADMIN)).json()

    assert stats["users_total"] == 1
    assert stats["orders_total"] == 1
    assert stats["orders_by_type"] == {"channel": 1}
    assert stats["orders_by_month_year"] == [{"year": 2024, "month": "July", "count": 1}]
    assert stats["stock_by_type"]["channel"]["total_reserved"] == 2
