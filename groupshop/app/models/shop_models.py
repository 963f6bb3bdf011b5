# -*- coding: utf-8 -*-
# groupshop/app/models/shop_models.py
# =============================================================================
# Назначение кода:
#   ORM-модели витрины GroupShop Bot:
#   • Catalog / CatalogMonth — какие (тип, год, месяц) продаются;
#   • Pricing — цена за единицу с переопределением дефолта по типу;
#   • Stock — складские счётчики quantity / reserved / sold.
#
# Канон/инварианты:
#   • Ключ товара — (product_type, year, month), месяц — английское имя.
#   • Stock: quantity, reserved, sold ≥ 0; initial_quantity только растёт;
#     quantity + reserved + sold ≤ initial_quantity.
#   • Pricing: price > 0.
#   • CatalogMonth: месяц, убранный из каталога, помечается is_active=False
#     и не удаляется.
#
# ИИ-защиты:
#   • UNIQUE на ключ — upsert-операции сервисов не плодят дубли.
#
# Запреты:
#   • Никаких изменений счётчиков вне stock_service (там же блокировки строк).
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import Numeric

from ..core.database_core import Base, fk_target, table_args
from ..core.utils_core import utcnow


# -----------------------------------------------------------------------------
# Каталог
# -----------------------------------------------------------------------------
class Catalog(Base):
    """Каталог типа товара на год; месяцы — в CatalogMonth."""

    __tablename__ = "catalogs"
    __table_args__ = table_args(
        UniqueConstraint("product_type", "year", name="uq_catalogs_type_year"),
        CheckConstraint("product_type IN ('group','channel')", name="product_type_enum"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_type: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True, server_default=true())
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    added_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    last_updated_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    months: Mapped[List["CatalogMonth"]] = relationship(
        back_populates="catalog",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="CatalogMonth.position",
    )

    @property
    def active_months(self) -> List[str]:
        return [m.month for m in sorted(self.months, key=lambda m: m.position) if m.is_active]

    def __repr__(self) -> str:
        return f"<Catalog {self.product_type}:{self.year} active={self.is_active} months={self.active_months}>"


class CatalogMonth(Base):
    __tablename__ = "catalog_months"
    __table_args__ = table_args(
        UniqueConstraint("catalog_id", "month", name="uq_catalog_months_catalog_month"),
        CheckConstraint("position BETWEEN 1 AND 12", name="position_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    catalog_id: Mapped[int] = mapped_column(
        Integer, ForeignKey(fk_target("catalogs.id"), ondelete="CASCADE"), nullable=False, index=True
    )
    month: Mapped[str] = mapped_column(String(16), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True, server_default=true())

    catalog: Mapped[Catalog] = relationship(back_populates="months")

    def __repr__(self) -> str:
        return f"<CatalogMonth {self.month} active={self.is_active}>"


# -----------------------------------------------------------------------------
# Цены
# -----------------------------------------------------------------------------
class Pricing(Base):
    """Переопределение цены для ключа товара."""

    __tablename__ = "pricing"
    __table_args__ = table_args(
        UniqueConstraint("product_type", "year", "month", name="uq_pricing_key"),
        CheckConstraint("price > 0", name="price_positive"),
        CheckConstraint("product_type IN ('group','channel')", name="product_type_enum"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_type: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[str] = mapped_column(String(16), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True, server_default=true())

    set_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    last_updated_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Pricing {self.product_type}:{self.year}:{self.month} price={self.price} active={self.is_active}>"


# -----------------------------------------------------------------------------
# Склад
# -----------------------------------------------------------------------------
class Stock(Base):
    """Складская запись ключа товара."""

    __tablename__ = "stock"
    __table_args__ = table_args(
        UniqueConstraint("product_type", "year", "month", name="uq_stock_key"),
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        CheckConstraint("reserved >= 0", name="reserved_non_negative"),
        CheckConstraint("sold >= 0", name="sold_non_negative"),
        CheckConstraint("product_type IN ('group','channel')", name="product_type_enum"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_type: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[str] = mapped_column(String(16), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    initial_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    added_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    last_updated_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    @property
    def product_key(self) -> str:
        return f"{self.product_type}:{self.year}:{self.month}"

    def __repr__(self) -> str:
        return (
            f"<Stock {self.product_key} q={self.quantity} r={self.reserved} "
            f"s={self.sold} init={self.initial_quantity}>"
        )


__all__ = ["Catalog", "CatalogMonth", "Pricing", "Stock"]
