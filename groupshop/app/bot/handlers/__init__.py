"""Роутеры бота GroupShop."""

from __future__ import annotations

from typing import List

from aiogram import Router

from . import (
    orders_handlers,
    settings_handlers,
    shop_handlers,
    start_handlers,
    support_handlers,
    wallet_handlers,
)
from .admin import (
    admin_deposits_handlers,
    admin_main_handlers,
    admin_orders_handlers,
    admin_shop_handlers,
    admin_stats_handlers,
    admin_users_handlers,
)


def all_routers() -> List[Router]:
    """
    Порядок важен: админские роутеры раньше denied_router (ответ admin_only
    не-админам), поддержка последней, чтобы её FSM-хэндлер не перехватывал
    команды других разделов.
    """
    return [
        start_handlers.router,
        settings_handlers.router,
        wallet_handlers.router,
        shop_handlers.router,
        orders_handlers.router,
        admin_main_handlers.router,
        admin_users_handlers.router,
        admin_deposits_handlers.router,
        admin_shop_handlers.router,
        admin_orders_handlers.router,
        admin_stats_handlers.router,
        admin_main_handlers.denied_router,
        support_handlers.router,
    ]


__all__ = ["all_routers"]
