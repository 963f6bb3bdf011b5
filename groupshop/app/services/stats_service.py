# -*- coding: utf-8 -*-
# groupshop/app/services/stats_service.py
# =============================================================================
# Назначение кода:
#   Сводная статистика для админов GroupShop Bot: пользователи, заказы,
#   выручка, разрезы по типу и по месяцу/году, склад, депозиты.
#
# Канон/инварианты:
#   • Только SELECT/агрегации: балансы и склад не меняются.
#   • Выручка — сумма total_price завершённых заказов.
#   • Депозиты — сумма и число завершённых / ожидающих заявок из
#     wallet_transactions (единственный журнал операций).
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.i18n_core import t
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.utils_core import format_money
from groupshop.app.crud.order_crud import OrderCRUD
from groupshop.app.crud.transactions_crud import TransactionsCRUD
from groupshop.app.crud.user_crud import UserCRUD
from groupshop.app.models import TxKind, TxStatus
from groupshop.app.services.orders_service import OrdersService
from groupshop.app.services.stock_service import StockLedger, StockTypeStats

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# DTO для роутера и бота
# -----------------------------------------------------------------------------
@dataclass
class ShopStats:
    users_total: int = 0
    users_blocked: int = 0
    orders_total: int = 0
    revenue: Decimal = Decimal("0")
    orders_by_type: Dict[str, int] = field(default_factory=dict)
    orders_by_month_year: List[Tuple[int, str, int]] = field(default_factory=list)
    stock_by_type: Dict[str, StockTypeStats] = field(default_factory=dict)
    pending_deposits: int = 0
    total_deposited: Decimal = Decimal("0")


class StatsService:
    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.users = UserCRUD(session)
        self.orders = OrderCRUD(session)
        self.txs = TransactionsCRUD(session)

    async def collect_stats(self) -> ShopStats:
        stats = ShopStats(
            users_total=await self.users.count(),
            users_blocked=await self.users.count(blocked=True),
            orders_total=await self.orders.count(),
            revenue=await self.orders.completed_revenue(),
            orders_by_type=await self.orders.count_by_type(),
            orders_by_month_year=await OrdersService(self.session, self.settings).orders_count_by_month_year(),
            stock_by_type=await StockLedger(self.session, self.settings).stats_by_type(),
            pending_deposits=await self.txs.count_by(kind=TxKind.DEPOSIT, status=TxStatus.PENDING),
            total_deposited=await self.txs.sum_by(kind=TxKind.DEPOSIT, status=TxStatus.COMPLETED),
        )
        logger.debug("stats collected", extra={"users": stats.users_total, "orders": stats.orders_total})
        return stats


def render_stats(lang: str, stats: ShopStats) -> str:
    """Текст /stats для бота."""
    by_type = "\n".join(
        f"{t(lang, f'type_{ptype}')}: {count}" for ptype, count in sorted(stats.orders_by_type.items())
    ) or "-"
    by_month = "\n".join(f"{month} {year}: {count}" for year, month, count in stats.orders_by_month_year) or "-"
    stock = "\n".join(
        f"{t(lang, f'type_{ptype}')}: {row.total_quantity} / {row.total_reserved} / {row.total_sold}"
        f" (initial {row.total_initial})"
        for ptype, row in sorted(stats.stock_by_type.items())
    ) or "-"
    return t(
        lang,
        "stats_text",
        users=stats.users_total,
        blocked=stats.users_blocked,
        orders=stats.orders_total,
        revenue=format_money(stats.revenue),
        deposited=format_money(stats.total_deposited),
        pending=stats.pending_deposits,
        by_type=by_type,
        by_month=by_month,
        stock=stock,
    )


__all__ = ["ShopStats", "StatsService", "render_stats"]
