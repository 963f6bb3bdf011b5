# -*- coding: utf-8 -*-
# groupshop/app/services/pricing_service.py
# =============================================================================
# GroupShop Bot — Цены
# -----------------------------------------------------------------------------
#   • get_price(...)        — активное переопределение или цена по умолчанию
#                             типа (DEFAULT_PRICE_GROUP / DEFAULT_PRICE_CHANNEL)
#   • set_price(...)        — upsert переопределения
#   • deactivate_price(...) — выключить переопределение (вернуть дефолт)
#   • list_active()         — все активные переопределения
#
# Правила:
#   • price > 0, 2 знака, округление вниз.
#   • Повторный set_price с тем же значением даёт ту же цену и только
#     обновляет updated_at / last_updated_by.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.errors_core import NotFoundError, ValidationError
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.utils_core import append_note, money, parse_money, utcnow
from groupshop.app.crud.shop_crud import ShopCRUD
from groupshop.app.models import Pricing
from groupshop.app.services.stock_service import product_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class EffectivePrice:
    price: Decimal
    is_default: bool


class PricingService:
    """Цены за единицу товара."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.crud = ShopCRUD(session)

    async def get_effective(self, product_type: object, year: object, month: object) -> EffectivePrice:
        ptype, y, m = product_key(product_type, year, month)
        row = await self.crud.get_pricing(ptype, y, m)
        if row is not None and row.is_active:
            return EffectivePrice(price=money(row.price), is_default=False)
        return EffectivePrice(price=money(self.settings.default_price(ptype)), is_default=True)

    async def get_price(self, product_type: object, year: object, month: object) -> Decimal:
        """Активное переопределение или цена по умолчанию для типа."""
        return (await self.get_effective(product_type, year, month)).price

    async def set_price(
        self,
        product_type: object,
        year: object,
        month: object,
        price: object,
        admin_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Pricing:
        ptype, y, m = product_key(product_type, year, month)
        try:
            value = parse_money(price)  # type: ignore[arg-type]
        except ValueError:
            raise ValidationError("Price must be a number with at most 2 decimal places.", details={"price": str(price)}) from None
        if value <= 0:
            raise ValidationError("Price must be positive.", details={"price": str(value)})

        row = await self.crud.lock_pricing(ptype, y, m)
        if row is None:
            fresh = Pricing(
                product_type=ptype,
                year=y,
                month=m,
                price=value,
                is_active=True,
                set_by=admin_id,
                last_updated_by=admin_id,
                notes=append_note(None, notes),
            )
            if await self.crud.insert_unique(fresh):
                logger.info("price set", extra={"key": f"{ptype}:{y}:{m}", "price": str(value), "admin_id": admin_id})
                return fresh
            row = await self.crud.lock_pricing(ptype, y, m)
            if row is None:
                raise NotFoundError("Price override vanished after a concurrent insert.", details={"key": f"{ptype}:{y}:{m}"})
        row.price = value
        row.is_active = True
        row.last_updated_by = admin_id
        row.notes = append_note(row.notes, notes)
        row.updated_at = utcnow()
        await self.session.flush()
        logger.info("price set", extra={"key": f"{ptype}:{y}:{m}", "price": str(value), "admin_id": admin_id})
        return row

    async def deactivate_price(
        self,
        product_type: object,
        year: object,
        month: object,
        admin_id: Optional[int] = None,
    ) -> Decimal:
        """Выключает переопределение; возвращает новую действующую цену."""
        ptype, y, m = product_key(product_type, year, month)
        row = await self.crud.lock_pricing(ptype, y, m)
        if row is None or not row.is_active:
            raise NotFoundError("No active price override.", details={"key": f"{ptype}:{y}:{m}"})
        row.is_active = False
        row.last_updated_by = admin_id
        await self.session.flush()
        logger.info("price override removed", extra={"key": f"{ptype}:{y}:{m}", "admin_id": admin_id})
        return money(self.settings.default_price(ptype))

    async def list_active(self) -> List[Pricing]:
        return await self.crud.list_active_pricing()


__all__ = ["EffectivePrice", "PricingService"]
