"""Пользователи (регистрация, язык, блокировка) и статистика админа."""

from decimal import Decimal

import pytest

from groupshop.app.core.errors_core import NotFoundError, ValidationError
from groupshop.app.services.deposits_service import DepositsService
from groupshop.app.services.orders_service import OrdersService
from groupshop.app.services.stats_service import StatsService, render_stats
from groupshop.app.services.users_service import UsersService

from .conftest import ADMIN_ID


async def test_find_or_create_registers_once(session, settings):
    service = UsersService(session, settings)

    user, created = await service.find_or_create(4001, username="alice", first_name="Alice", language="ru-RU")
    assert created is True
    assert user.language == "ru"
    assert user.is_admin is False
    assert user.balance == Decimal("0")

    again, created = await service.find_or_create(4001, username="alice_new", language="en")
    assert created is False
    assert again is user
    assert again.username == "alice_new"
    # язык выбирается в настройках, а не из клиента Telegram
    assert again.language == "ru"


async def test_unsupported_client_language_falls_back(session, settings):
    user, _ = await UsersService(session, settings).find_or_create(4002, language="de")
    assert user.language == settings.DEFAULT_LANG


async def test_admin_flag_comes_from_settings(session, settings):
    admin, _ = await UsersService(session, settings).find_or_create(ADMIN_ID)
    assert admin.is_admin is True


async def test_set_language_and_block(session, settings):
    service = UsersService(session, settings)
    await service.find_or_create(4003)

    assert (await service.set_language(4003, "UZ")).language == "uz"
    with pytest.raises(ValidationError):
        await service.set_language(4003, "fr")

    assert (await service.set_block(4003, True)).is_blocked is True
    assert (await service.set_block(4003, False)).is_blocked is False
    with pytest.raises(NotFoundError):
        await service.set_block(4999, True)
    with pytest.raises(NotFoundError):
        await service.get(4999)


async def test_activity_and_channels_flag(session, settings):
    service = UsersService(session, settings)
    user, _ = await service.find_or_create(4004)
    first_seen = user.last_activity_at

    await service.touch_activity(user)
    assert user.last_activity_at >= first_seen

    await service.mark_joined_channels(user, True)
    assert (await service.get(4004)).joined_channels is True


async def test_collect_stats(session, settings, make_user, offer):
    await make_user(4100, balance="100")
    await make_user(4101)
    await UsersService(session, settings).set_block(4101, True)
    await offer("group", 2024, "January", qty=10)
    await offer("channel", 2024, "February", qty=5)

    orders = OrdersService(session, settings)
    done = await orders.checkout(4100, "group", 2024, "January", 2, "t1")
    await orders.checkout(4100, "channel", 2024, "February", 1, "t2")
    await orders.update_status(done.order.id, "completed")

    deposits = DepositsService(session, settings)
    _, approved = await deposits.submit_deposit(4101, "15", "TRC20", "p1")
    await deposits.submit_deposit(4101, "3", "BEP20", "p2")
    await deposits.approve(approved.id, ADMIN_ID)

    stats = await StatsService(session, settings).collect_stats()

    assert stats.users_total == 2
    assert stats.users_blocked == 1
    assert stats.orders_total == 2
    assert stats.revenue == Decimal("10")
    assert stats.orders_by_type == {"group": 1, "channel": 1}
    assert stats.orders_by_month_year == [(2024, "January", 1), (2024, "February", 1)]
    assert stats.pending_deposits == 1
    assert stats.total_deposited == Decimal("15")
    assert stats.stock_by_type["group"].total_sold == 2
    assert stats.stock_by_type["channel"].total_reserved == 1

    text = render_stats("en", stats)
    assert "10.00 USDT" in text
    assert "January 2024: 1" in text


async def test_stats_on_empty_shop(session, settings):
    stats = await StatsService(session, settings).collect_stats()
    assert stats.users_total == 0
    assert stats.revenue == Decimal("0")
    assert stats.orders_by_type == {}
    assert "-" in render_stats("ru", stats)
