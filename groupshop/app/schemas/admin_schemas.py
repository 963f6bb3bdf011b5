# -*- coding: utf-8 -*-
# groupshop/app/schemas/admin_schemas.py
# =============================================================================
# Назначение кода:
# Pydantic-схемы админского API: склад, цены, каталог, депозиты, статистика.
#
# Канон / инварианты:
# • admin_id — TG ID админа; пишется в added_by / set_by / resolved_by.
# • Решение по депозиту: approve | reject; reject принимает причину.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .common_schemas import Money, MoneyIn, ORMModel


# -----------------------------------------------------------------------------
# Склад
# -----------------------------------------------------------------------------
class StockChangeIn(BaseModel):
    """Вход для /stock/add (quantity ≥ 1) и /stock/set (quantity ≥ 0)."""

    product_type: str
    year: int
    month: str
    quantity: int = Field(..., ge=0)
    admin_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=1000)


class StockOut(ORMModel):
    product_type: str
    year: int
    month: str
    quantity: int
    initial_quantity: int
    reserved: int
    sold: int
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None


class StockListOut(BaseModel):
    items: List[StockOut] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Цены
# -----------------------------------------------------------------------------
class PriceIn(BaseModel):
    product_type: str
    year: int
    month: str
    price: MoneyIn = Field(..., gt=0)
    admin_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=1000)


class PricingOut(ORMModel):
    product_type: str
    year: int
    month: str
    price: Money
    is_active: bool
    updated_at: Optional[datetime] = None


class PriceRemovedOut(BaseModel):
    effective_price: Money = Field(..., description="Цена после снятия переопределения (дефолт)")


# -----------------------------------------------------------------------------
# Каталог
# -----------------------------------------------------------------------------
class CatalogIn(BaseModel):
    product_type: str
    year: int
    months: Union[str, List[str]] = Field(..., description='Список месяцев, "jan,feb" или "all"')
    description: Optional[str] = Field(None, max_length=1000)
    admin_id: Optional[int] = None


# -----------------------------------------------------------------------------
# Депозиты
# -----------------------------------------------------------------------------
class DepositOut(ORMModel):
    id: int
    telegram_id: int
    amount: Money
    network: Optional[str] = None
    status: str
    proof_file_id: Optional[str] = None
    description: Optional[str] = None
    balance_after: Optional[Money] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime


class DepositListOut(BaseModel):
    items: List[DepositOut] = Field(default_factory=list)


class DepositDecisionIn(BaseModel):
    decision: Literal["approve", "reject"]
    admin_id: int = Field(..., description="TG ID админа, принявшего решение")
    reason: Optional[str] = Field(None, max_length=1000, description="Причина отклонения")


class DepositDecisionOut(BaseModel):
    deposit: DepositOut
    balance: Money = Field(..., description="Баланс пользователя после решения")


# -----------------------------------------------------------------------------
# Пользователи
# -----------------------------------------------------------------------------
class BalanceAdjustIn(BaseModel):
    amount: MoneyIn = Field(..., description="Положительная — начисление, отрицательная — списание")
    admin_id: int
    reason: Optional[str] = Field(None, max_length=1000)


class BalanceOut(BaseModel):
    telegram_id: int
    balance: Money


# -----------------------------------------------------------------------------
# Статистика
# -----------------------------------------------------------------------------
class StockTypeOut(BaseModel):
    total_quantity: int
    total_initial: int
    total_reserved: int
    total_sold: int


class MonthCountOut(BaseModel):
    year: int
    month: str
    count: int


class StatsOut(BaseModel):
    users_total: int
    users_blocked: int
    orders_total: int
    revenue: Money
    total_deposited: Money
    pending_deposits: int
    orders_by_type: Dict[str, int] = Field(default_factory=dict)
    orders_by_month_year: List[MonthCountOut] = Field(default_factory=list)
    stock_by_type: Dict[str, StockTypeOut] = Field(default_factory=dict)


__all__ = [
    "StockChangeIn",
    "StockOut",
    "StockListOut",
    "PriceIn",
    "PricingOut",
    "PriceRemovedOut",
    "CatalogIn",
    "DepositOut",
    "DepositListOut",
    "DepositDecisionIn",
    "DepositDecisionOut",
    "BalanceAdjustIn",
    "BalanceOut",
    "StockTypeOut",
    "MonthCountOut",
    "StatsOut",
]
