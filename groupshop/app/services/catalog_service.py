# -*- coding: utf-8 -*-
# groupshop/app/services/catalog_service.py
# =============================================================================
# GroupShop Bot — Каталог
# -----------------------------------------------------------------------------
# Каталог отвечает на вопрос «что продаётся»: тип товара + год + месяцы.
#   • add_catalog / update_catalog — upsert по (type, year) со слиянием
#     месяцев: месяцы нового набора активны (новые создаются), прежние
#     месяцы вне набора помечаются неактивными и остаются в БД.
#   • deactivate_catalog — снимает каталог с продажи.
#   • get_active_catalogs / get_available_years / get_available_months /
#     is_offered — чтение для витрины и оформления заказа.
# =============================================================================

from __future__ import annotations

from typing import Iterable, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.errors_core import NotFoundError, ValidationError
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.utils_core import month_index, normalize_product_type, parse_months
from groupshop.app.crud.shop_crud import ShopCRUD
from groupshop.app.models import Catalog, CatalogMonth
from groupshop.app.services.stock_service import product_key

logger = get_logger(__name__)


def _type_or_fail(product_type: object) -> str:
    ptype = normalize_product_type(str(product_type) if product_type is not None else None)
    if ptype is None:
        raise ValidationError("Unknown product type.", details={"product_type": str(product_type)})
    return ptype


def _year_or_fail(year: object) -> int:
    try:
        return int(str(year).strip())
    except (TypeError, ValueError):
        raise ValidationError("Year must be an integer.", details={"year": str(year)}) from None


class CatalogService:
    """Каталог продаваемых (тип, год, месяц)."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.crud = ShopCRUD(session)

    # ------------------------------------------------------------------
    # Чтение
    # ------------------------------------------------------------------
    async def get_active_catalogs(self, product_type: Optional[str] = None) -> List[Catalog]:
        ptype = _type_or_fail(product_type) if product_type else None
        catalogs = await self.crud.list_catalogs(product_type=ptype, active_only=True)
        return [c for c in catalogs if c.active_months]

    async def get_available_years(self, product_type: object) -> List[int]:
        return sorted(c.year for c in await self.get_active_catalogs(_type_or_fail(product_type)))

    async def get_available_months(self, product_type: object, year: object) -> List[str]:
        """Активные месяцы каталога в календарном порядке; [] если каталога нет."""
        catalog = await self.crud.get_catalog(_type_or_fail(product_type), _year_or_fail(year))
        if catalog is None or not catalog.is_active:
            return []
        return catalog.active_months

    async def is_offered(self, product_type: object, year: object, month: object) -> bool:
        ptype, y, m = product_key(product_type, year, month)
        return m in await self.get_available_months(ptype, y)

    async def list_all(self) -> List[Catalog]:
        return await self.crud.list_catalogs(active_only=False)

    # ------------------------------------------------------------------
    # Изменения (админ)
    # ------------------------------------------------------------------
    @staticmethod
    def _merge_months(catalog: Catalog, months: Iterable[str]) -> None:
        wanted = list(months)
        existing = {m.month: m for m in catalog.months}
        for name in wanted:
            row = existing.get(name)
            if row is None:
                catalog.months.append(CatalogMonth(month=name, position=month_index(name), is_active=True))
            else:
                row.is_active = True
        for name, row in existing.items():
            if name not in wanted:
                row.is_active = False

    async def add_catalog(
        self,
        product_type: object,
        year: object,
        months: Union[str, List[str]],
        admin_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Catalog:
        """Создаёт или обновляет каталог (тип, год) и включает его."""
        ptype = _type_or_fail(product_type)
        y = _year_or_fail(year)
        try:
            wanted = parse_months(months)
        except ValueError as exc:
            raise ValidationError(str(exc), details={"months": str(months)}) from None
        if not wanted:
            raise ValidationError("At least one month is required.")

        catalog = await self.crud.lock_catalog(ptype, y)
        if catalog is None:
            fresh = Catalog(
                product_type=ptype,
                year=y,
                is_active=True,
                description=description,
                added_by=admin_id,
                last_updated_by=admin_id,
                months=[],
            )
            if await self.crud.insert_unique(fresh):
                catalog = fresh
            else:
                catalog = await self.crud.lock_catalog(ptype, y)
                if catalog is None:
                    raise NotFoundError("Catalog vanished after a concurrent insert.", details={"key": f"{ptype}:{y}"})
        catalog.is_active = True
        catalog.last_updated_by = admin_id
        if description is not None:
            catalog.description = description
        self._merge_months(catalog, wanted)
        await self.session.flush()
        logger.info(
            "catalog saved",
            extra={"key": f"{ptype}:{y}", "months": ",".join(wanted), "admin_id": admin_id},
        )
        return catalog

    async def update_catalog(
        self,
        product_type: object,
        year: object,
        months: Union[str, List[str]],
        admin_id: Optional[int] = None,
    ) -> Catalog:
        return await self.add_catalog(product_type, year, months, admin_id=admin_id)

    async def deactivate_catalog(self, product_type: object, year: object, admin_id: Optional[int] = None) -> Catalog:
        ptype = _type_or_fail(product_type)
        y = _year_or_fail(year)
        catalog = await self.crud.get_catalog(ptype, y)
        if catalog is None:
            raise NotFoundError("Catalog not found.", details={"key": f"{ptype}:{y}"})
        catalog.is_active = False
        catalog.last_updated_by = admin_id
        await self.session.flush()
        logger.info("catalog deactivated", extra={"key": f"{ptype}:{y}", "admin_id": admin_id})
        return catalog


__all__ = ["CatalogService"]
