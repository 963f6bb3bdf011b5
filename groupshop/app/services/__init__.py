# -*- coding: utf-8 -*-
# groupshop/app/services/__init__.py
# =============================================================================
# GroupShop Bot — сервисный слой (единая точка входа)
# -----------------------------------------------------------------------------
# Назначение файла:
#   • Дать единый, стабильный вход для доменных сервисов магазина, чтобы
#     роуты и хендлеры бота не бегали по отдельным файлам.
#
# Важные принципы:
#   • Никакой бизнес-логики здесь нет — только импорты.
#   • Сервисы не делают commit: транзакцией владеет вызывающий код
#     (одна на HTTP-запрос или апдейт бота).
# =============================================================================

from __future__ import annotations

from .catalog_service import CatalogService  # noqa: F401
from .channels_service import check_membership, is_member  # noqa: F401
from .deposits_service import (  # noqa: F401
    DepositsService,
    notify_admins,
    notify_user_decision,
)
from .orders_service import CheckoutResult, OrdersService, RefundResult  # noqa: F401
from .pricing_service import EffectivePrice, PricingService  # noqa: F401
from .stats_service import ShopStats, StatsService, render_stats  # noqa: F401
from .stock_service import StockLedger, StockTypeStats, product_key  # noqa: F401
from .support_service import forward_to_admins, is_expired, relay_reply  # noqa: F401
from .users_service import UsersService  # noqa: F401
from .wallet_service import WalletLedger  # noqa: F401

__all__ = [
    "CatalogService",
    "check_membership",
    "is_member",
    "DepositsService",
    "notify_admins",
    "notify_user_decision",
    "CheckoutResult",
    "OrdersService",
    "RefundResult",
    "EffectivePrice",
    "PricingService",
    "ShopStats",
    "StatsService",
    "render_stats",
    "StockLedger",
    "StockTypeStats",
    "product_key",
    "forward_to_admins",
    "is_expired",
    "relay_reply",
    "UsersService",
    "WalletLedger",
]
