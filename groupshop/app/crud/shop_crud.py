"""Storefront CRUD: stock records, price overrides and catalogs.

======================================================================
Назначение:
    • Доступ к таблицам stock, pricing, catalogs/catalog_months по ключу
      товара (product_type, year, month).
    • Счётчики склада и цены меняют сервисы (stock_service,
      pricing_service, catalog_service); здесь только чтение/добавление
      и блокировка строк.

Канон/инварианты:
    • Ключ товара уникален (UNIQUE в схеме), get_* возвращают одну запись
      или None.
    • lock_*() — SELECT ... FOR UPDATE перед изменением строки.
    • Новая строка вставляется через insert_unique(): гонка двух первых
      вставок одного ключа не роняет транзакцию.
======================================================================
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.logging_core import get_logger
from groupshop.app.models import Catalog, Pricing, Stock

logger = get_logger(__name__)


class ShopCRUD:
    """CRUD для витрины: склад, цены, каталоги."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert_unique(self, obj) -> bool:
        """
        INSERT новой записи по уникальному ключу товара в SAVEPOINT.
        False — ключ успел занять параллельный запрос; вызывающий перечитывает
        строку под FOR UPDATE, внешняя транзакция остаётся рабочей.
        """
        try:
            async with self.session.begin_nested():
                self.session.add(obj)
        except IntegrityError as exc:
            logger.warning("shop key already inserted, re-reading", extra={"table": obj.__tablename__, "error": str(exc.orig)})
            return False
        return True

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------
    async def get_stock(self, product_type: str, year: int, month: str) -> Optional[Stock]:
        stmt: Select[Stock] = select(Stock).where(
            Stock.product_type == product_type, Stock.year == int(year), Stock.month == month
        )
        return await self.session.scalar(stmt)

    async def lock_stock(self, product_type: str, year: int, month: str) -> Optional[Stock]:
        """Складская запись под FOR UPDATE."""

        await self.session.flush()

        stmt: Select[Stock] = (
            select(Stock)
            .where(Stock.product_type == product_type, Stock.year == int(year), Stock.month == month)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def list_stock(self, product_type: Optional[str] = None) -> List[Stock]:
        stmt: Select[Stock] = select(Stock).order_by(Stock.product_type, Stock.year, Stock.id)
        if product_type:
            stmt = stmt.where(Stock.product_type == product_type)
        rows: Iterable[Stock] = await self.session.scalars(stmt)
        return list(rows)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------
    async def get_pricing(self, product_type: str, year: int, month: str) -> Optional[Pricing]:
        stmt: Select[Pricing] = select(Pricing).where(
            Pricing.product_type == product_type, Pricing.year == int(year), Pricing.month == month
        )
        return await self.session.scalar(stmt)

    async def lock_pricing(self, product_type: str, year: int, month: str) -> Optional[Pricing]:
        await self.session.flush()
        stmt: Select[Pricing] = (
            select(Pricing)
            .where(Pricing.product_type == product_type, Pricing.year == int(year), Pricing.month == month)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def list_active_pricing(self) -> List[Pricing]:
        stmt: Select[Pricing] = (
            select(Pricing)
            .where(Pricing.is_active.is_(True))
            .order_by(Pricing.product_type, Pricing.year, Pricing.id)
        )
        rows: Iterable[Pricing] = await self.session.scalars(stmt)
        return list(rows)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    async def get_catalog(self, product_type: str, year: int) -> Optional[Catalog]:
        stmt: Select[Catalog] = select(Catalog).where(
            Catalog.product_type == product_type, Catalog.year == int(year)
        )
        return await self.session.scalar(stmt)

    async def lock_catalog(self, product_type: str, year: int) -> Optional[Catalog]:
        await self.session.flush()
        stmt: Select[Catalog] = (
            select(Catalog)
            .where(Catalog.product_type == product_type, Catalog.year == int(year))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def list_catalogs(self, *, product_type: Optional[str] = None, active_only: bool = True) -> List[Catalog]:
        stmt: Select[Catalog] = select(Catalog).order_by(Catalog.product_type, Catalog.year)
        if product_type:
            stmt = stmt.where(Catalog.product_type == product_type)
        if active_only:
            stmt = stmt.where(Catalog.is_active.is_(True))
        rows: Iterable[Catalog] = await self.session.scalars(stmt)
        return list(rows)


__all__ = ["ShopCRUD"]
