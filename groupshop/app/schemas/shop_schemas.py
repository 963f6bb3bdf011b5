# -*- coding: utf-8 -*-
# groupshop/app/schemas/shop_schemas.py
# =============================================================================
# Назначение кода:
# Pydantic-схемы витрины: каталог (тип → год → месяцы), цена товара,
# вход оформления покупки.
#
# Канон / инварианты:
# • Ключ товара — (product_type, year, month); месяц нормализуется сервисом.
# • Цена — действующая: активное переопределение или дефолт по типу.
# =============================================================================

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..core.utils_core import normalize_username
from .common_schemas import Money


class CatalogYearOut(BaseModel):
    product_type: str = Field(..., description="group | channel")
    year: int = Field(..., description="Год каталога")
    months: List[str] = Field(..., description="Активные месяцы в календарном порядке")
    description: Optional[str] = Field(None, description="Описание каталога")


class CatalogOut(BaseModel):
    """Витрина: только активные каталоги, в которых есть хотя бы один месяц."""

    items: List[CatalogYearOut] = Field(default_factory=list)


class PriceOut(BaseModel):
    product_type: str
    year: int
    month: str
    price: Money = Field(..., description="Цена за единицу")
    is_default: bool = Field(..., description="True — цена по умолчанию для типа")
    available: int = Field(..., description="Остаток на складе")


class CheckoutIn(BaseModel):
    """Покупка за баланс кошелька."""

    telegram_id: int = Field(..., description="TG ID покупателя")
    product_type: str = Field(..., description="group | channel")
    year: int = Field(..., description="Год")
    month: str = Field(..., description="Месяц (January … December, регистр не важен)")
    quantity: int = Field(..., ge=1, description="Количество (целое ≥ 1)")
    target_username: str = Field(..., description="Получатель (@username)")

    @field_validator("target_username")
    @classmethod
    def _username(cls, v: str) -> str:
        name = normalize_username(v)
        if name is None:
            raise ValueError("Некорректный username")
        return name


class CheckoutOut(BaseModel):
    order_id: int = Field(..., description="ID созданного заказа")
    total: Money = Field(..., description="Списано с баланса")
    balance: Money = Field(..., description="Баланс после покупки")


__all__ = ["CatalogYearOut", "CatalogOut", "PriceOut", "CheckoutIn", "CheckoutOut"]
