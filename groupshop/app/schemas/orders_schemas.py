# -*- coding: utf-8 -*-
# groupshop/app/schemas/orders_schemas.py
# =============================================================================
# Назначение кода:
# Pydantic-схемы заказов: карточка заказа, список, смена статуса и возврат.
#
# Канон / инварианты:
# • total_price = price_per_unit × quantity, фиксируется при создании.
# • 0 ≤ refund_amount ≤ total_price; полный возврат → status=refunded.
# • Переходы статусов: pending → processing/completed/cancelled,
#   processing → completed/cancelled. Проверяются в сервисе.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .common_schemas import Money, MoneyIn, ORMModel


class OrderOut(ORMModel):
    id: int
    telegram_id: int
    product_type: str
    year: int
    month: str
    quantity: int
    price_per_unit: Money
    total_price: Money
    target_username: str
    status: str = Field(..., description="pending | processing | completed | cancelled | refunded")
    payment_status: str = Field(..., description="paid | refunded | partially_refunded")
    refund_amount: Money
    refund_reason: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None


class OrderListOut(BaseModel):
    items: List[OrderOut] = Field(default_factory=list)


class OrderStatusIn(BaseModel):
    status: Literal["processing", "completed", "cancelled"]
    notes: Optional[str] = Field(None, max_length=1000, description="Заметка админа")
    admin_id: Optional[int] = Field(None, description="TG ID админа (для журнала)")


class RefundIn(BaseModel):
    amount: MoneyIn = Field(..., gt=0, description="Сумма возврата на баланс")
    reason: Optional[str] = Field(None, max_length=1000)
    admin_id: Optional[int] = None


class RefundOut(BaseModel):
    order: OrderOut
    amount: Money = Field(..., description="Возвращено этим вызовом")
    balance: Money = Field(..., description="Баланс пользователя после возврата")


__all__ = ["OrderOut", "OrderListOut", "OrderStatusIn", "RefundIn", "RefundOut"]
