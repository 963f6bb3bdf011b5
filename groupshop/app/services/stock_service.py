# -*- coding: utf-8 -*-
# groupshop/app/services/stock_service.py
# =============================================================================
# GroupShop Bot — Складской леджер
# -----------------------------------------------------------------------------
# Ключ: (product_type, year, month). Счётчики:
#   quantity — доступно к продаже, reserved — в резерве под заказы,
#   sold — продано, initial_quantity — сколько всего завезено.
#
# Операции:
#   • add(...)              — завоз (создать или увеличить quantity/initial)
#   • reserve(...)          — quantity → reserved
#   • confirm_reserved(...) — reserved → sold
#   • return_reserved(...)  — reserved → quantity
#   • set_absolute(...)     — установить quantity (рост добавляется в initial)
#
# Правила:
#   • Каждая мутация берёт строку под FOR UPDATE (первая запись ключа
#     вставляется в SAVEPOINT, см. ShopCRUD.insert_unique) и после изменения проверяет
#     счётчики system_locks.assert_stock_counters().
#   • Неуспешная операция счётчики не меняет.
#   • Заметки дописываются строками '[ISO-время] текст'.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.errors_core import (
    InsufficientReservedError,
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.system_locks import assert_stock_counters
from groupshop.app.core.utils_core import append_note, normalize_month, normalize_product_type
from groupshop.app.crud.shop_crud import ShopCRUD
from groupshop.app.models import Stock

logger = get_logger(__name__)


def product_key(product_type: object, year: object, month: object) -> Tuple[str, int, str]:
    """
    Нормализует ключ товара: ('Groups', '2024', 'jan') → ('group', 2024, 'January').
    Некорректный ключ → ValidationError.
    """
    ptype = normalize_product_type(str(product_type) if product_type is not None else None)
    if ptype is None:
        raise ValidationError("Unknown product type.", details={"product_type": str(product_type)})
    mname = normalize_month(str(month) if month is not None else None)
    if mname is None:
        raise ValidationError("Unknown month.", details={"month": str(month)})
    try:
        y = int(str(year).strip())
    except (TypeError, ValueError):
        raise ValidationError("Year must be an integer.", details={"year": str(year)}) from None
    if y < 2000 or y > 2100:
        raise ValidationError("Year is out of range.", details={"year": y})
    return ptype, y, mname


def _positive_qty(qty: object, *, allow_zero: bool = False) -> int:
    try:
        value = int(str(qty).strip())
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be an integer.", details={"quantity": str(qty)}) from None
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError("Quantity must be positive.", details={"quantity": value})
    return value


@dataclass
class StockTypeStats:
    """Сводка склада по типу товара."""

    total_quantity: int = 0
    total_sold: int = 0
    total_reserved: int = 0
    total_initial: int = 0
    keys: List[str] = field(default_factory=list)


class StockLedger:
    """Складской учёт по ключу (type, year, month)."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.crud = ShopCRUD(session)

    async def _locked(self, product_type: object, year: object, month: object) -> Stock:
        ptype, y, m = product_key(product_type, year, month)
        stock = await self.crud.lock_stock(ptype, y, m)
        if stock is None:
            raise ProductNotFoundError(
                "No stock record for this product.",
                details={"product_type": ptype, "year": y, "month": m},
            )
        return stock

    async def _commit_change(self, stock: Stock, action: str, qty: int) -> Stock:
        assert_stock_counters(stock)
        await self.session.flush()
        logger.info(
            "stock %s",
            action,
            extra={
                "key": stock.product_key,
                "qty": qty,
                "quantity": stock.quantity,
                "reserved": stock.reserved,
                "sold": stock.sold,
            },
        )
        return stock

    # ------------------------------------------------------------------
    # Мутации
    # ------------------------------------------------------------------
    async def _lock_or_create(self, ptype: str, y: int, m: str, admin_id: Optional[int]) -> Stock:
        """
        Строка склада под FOR UPDATE; нет строки — вставляет пустую (все
        счётчики 0). Если ключ вставил параллельный запрос, берёт его строку.
        """
        stock = await self.crud.lock_stock(ptype, y, m)
        if stock is not None:
            return stock
        fresh = Stock(
            product_type=ptype,
            year=y,
            month=m,
            quantity=0,
            initial_quantity=0,
            sold=0,
            reserved=0,
            added_by=admin_id,
            last_updated_by=admin_id,
        )
        if await self.crud.insert_unique(fresh):
            return fresh
        stock = await self.crud.lock_stock(ptype, y, m)
        if stock is None:
            raise ProductNotFoundError(
                "Stock record vanished after a concurrent insert.",
                details={"product_type": ptype, "year": y, "month": m},
            )
        return stock

    async def add(
        self,
        product_type: object,
        year: object,
        month: object,
        qty: object,
        admin_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Stock:
        """Завоз: создаёт запись или увеличивает quantity и initial_quantity."""
        ptype, y, m = product_key(product_type, year, month)
        amount = _positive_qty(qty)
        stock = await self._lock_or_create(ptype, y, m, admin_id)
        stock.quantity += amount
        stock.initial_quantity += amount
        stock.last_updated_by = admin_id
        stock.notes = append_note(stock.notes, notes)
        return await self._commit_change(stock, "added", amount)

    async def reserve(self, product_type: object, year: object, month: object, qty: object) -> Stock:
        """quantity → reserved; при нехватке InsufficientStockError без изменений."""
        amount = _positive_qty(qty)
        stock = await self._locked(product_type, year, month)
        if stock.quantity < amount:
            raise InsufficientStockError(
                "Not enough stock.",
                details={"key": stock.product_key, "available": stock.quantity, "requested": amount},
            )
        stock.quantity -= amount
        stock.reserved += amount
        return await self._commit_change(stock, "reserved", amount)

    async def confirm_reserved(self, product_type: object, year: object, month: object, qty: object) -> Stock:
        """reserved → sold."""
        amount = _positive_qty(qty)
        stock = await self._locked(product_type, year, month)
        if stock.reserved < amount:
            raise InsufficientReservedError(
                "Not enough reserved stock.",
                details={"key": stock.product_key, "reserved": stock.reserved, "requested": amount},
            )
        stock.reserved -= amount
        stock.sold += amount
        return await self._commit_change(stock, "confirmed", amount)

    async def return_reserved(self, product_type: object, year: object, month: object, qty: object) -> Stock:
        """reserved → quantity (отмена заказа)."""
        amount = _positive_qty(qty)
        stock = await self._locked(product_type, year, month)
        if stock.reserved < amount:
            raise InsufficientReservedError(
                "Not enough reserved stock.",
                details={"key": stock.product_key, "reserved": stock.reserved, "requested": amount},
            )
        stock.reserved -= amount
        stock.quantity += amount
        return await self._commit_change(stock, "returned", amount)

    async def set_absolute(
        self,
        product_type: object,
        year: object,
        month: object,
        qty: object,
        admin_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Stock:
        """
        Устанавливает quantity. Положительная разница добавляется к
        initial_quantity, уменьшение initial_quantity не трогает.
        """
        ptype, y, m = product_key(product_type, year, month)
        value = _positive_qty(qty, allow_zero=True)
        stock = await self._lock_or_create(ptype, y, m, admin_id)
        delta = value - stock.quantity
        if delta > 0:
            stock.initial_quantity += delta
        stock.quantity = value
        stock.last_updated_by = admin_id
        stock.notes = append_note(stock.notes, notes)
        return await self._commit_change(stock, "set", value)

    # ------------------------------------------------------------------
    # Чтение
    # ------------------------------------------------------------------
    async def get(self, product_type: object, year: object, month: object) -> Optional[Stock]:
        ptype, y, m = product_key(product_type, year, month)
        return await self.crud.get_stock(ptype, y, m)

    async def get_available(self, product_type: object, year: object, month: object) -> int:
        """Доступное количество; 0 если записи нет."""
        stock = await self.get(product_type, year, month)
        return int(stock.quantity) if stock else 0

    async def list_all(self, product_type: Optional[str] = None) -> List[Stock]:
        ptype = normalize_product_type(product_type) if product_type else None
        return await self.crud.list_stock(ptype)

    async def stats_by_type(self) -> Dict[str, StockTypeStats]:
        out: Dict[str, StockTypeStats] = {}
        for stock in await self.crud.list_stock():
            row = out.setdefault(stock.product_type, StockTypeStats())
            row.total_quantity += stock.quantity
            row.total_sold += stock.sold
            row.total_reserved += stock.reserved
            row.total_initial += stock.initial_quantity
            row.keys.append(f"{stock.year}-{stock.month}")
        return out


__all__ = ["StockLedger", "StockTypeStats", "product_key"]
