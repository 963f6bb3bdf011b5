"""CRUD layer for orders with cursor lists and aggregate counters."""

from __future__ import annotations

# ============================================================================
# GroupShop Bot — crud/order_crud.py
# ---------------------------------------------------------------------------
# Назначение:
#   • Операции с заказами (orders) без изменения балансов и склада.
#   • Выборки «мои заказы», последние заказы, счётчики по типу и по
#     году/месяцу для статистики админа.
#
# Канон/инварианты:
#   • Модуль не двигает деньги и не меняет склад; это orders_service.
#   • Списки: ORDER BY created_at DESC, id DESC.
#
# ИИ-защита/самовосстановление:
#   • lock() использует SELECT ... FOR UPDATE, чтобы смена статуса
#     и возврат не гонялись друг с другом.
# ============================================================================

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.logging_core import get_logger
from groupshop.app.models import Order, OrderStatus

logger = get_logger(__name__)


class OrderCRUD:
    """CRUD-обёртка для orders без денежных побочных эффектов."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, order_id: int) -> Order | None:
        return await self.session.get(Order, int(order_id))

    async def lock(self, order_id: int) -> Order | None:
        """Заказ под FOR UPDATE (смена статуса, возврат)."""

        await self.session.flush()

        stmt: Select[Order] = (
            select(Order)
            .where(Order.id == int(order_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def create(self, order: Order) -> Order:
        """Сохранить новый заказ и вернуть его с первичным ключом."""

        self.session.add(order)
        await self.session.flush()
        return order

    async def list_for_user(
        self,
        telegram_id: int,
        *,
        limit: int,
        cursor: Optional[Tuple[datetime, int]] = None,
    ) -> List[Order]:
        stmt: Select[Order] = (
            select(Order)
            .where(Order.telegram_id == int(telegram_id))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
        )
        if cursor:
            ts, oid = cursor
            stmt = stmt.where((Order.created_at < ts) | ((Order.created_at == ts) & (Order.id < oid)))
        rows: Iterable[Order] = await self.session.scalars(stmt)
        return list(rows)

    async def list_recent(self, *, limit: int, status: Optional[str] = None) -> List[Order]:
        stmt: Select[Order] = select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
        if status:
            stmt = stmt.where(Order.status == status)
        rows: Iterable[Order] = await self.session.scalars(stmt)
        return list(rows)

    async def count(self, *, telegram_id: Optional[int] = None) -> int:
        stmt = select(func.count(Order.id))
        if telegram_id is not None:
            stmt = stmt.where(Order.telegram_id == int(telegram_id))
        return int(await self.session.scalar(stmt) or 0)

    async def count_by_type(self) -> Dict[str, int]:
        stmt = select(Order.product_type, func.count(Order.id)).group_by(Order.product_type)
        rows = await self.session.execute(stmt)
        return {ptype: int(cnt) for ptype, cnt in rows.all()}

    async def count_by_month_year(self) -> List[Tuple[int, str, int]]:
        """[(year, month, count)] — порядок сортировки задаёт сервис."""

        stmt = select(Order.year, Order.month, func.count(Order.id)).group_by(Order.year, Order.month)
        rows = await self.session.execute(stmt)
        return [(int(y), m, int(c)) for y, m, c in rows.all()]

    async def completed_revenue(self) -> Decimal:
        """Сумма total_price - refund_amount по завершённым заказам."""

        stmt = select(func.coalesce(func.sum(Order.total_price - Order.refund_amount), 0)).where(
            Order.status == OrderStatus.COMPLETED
        )
        return Decimal(str(await self.session.scalar(stmt) or 0))


__all__ = ["OrderCRUD"]
