"""Админские роутеры бота (фильтр IsAdmin на уровне роутера)."""

from __future__ import annotations

from . import (
    admin_deposits_handlers,
    admin_main_handlers,
    admin_orders_handlers,
    admin_shop_handlers,
    admin_stats_handlers,
    admin_users_handlers,
)

__all__ = [
    "admin_deposits_handlers",
    "admin_main_handlers",
    "admin_orders_handlers",
    "admin_shop_handlers",
    "admin_stats_handlers",
    "admin_users_handlers",
]
