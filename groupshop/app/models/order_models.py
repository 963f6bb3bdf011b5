# -*- coding: utf-8 -*-
# groupshop/app/models/order_models.py
# =============================================================================
# Назначение кода:
#   ORM-модель заказа GroupShop Bot. Заказ — точка соединения списания
#   с кошелька и резерва на складе: снимок товара, цены и статусов.
#
# Канон/инварианты:
#   • total_price = price_per_unit × quantity, фиксируется при создании.
#   • quantity ≥ 1; 0 ≤ refund_amount ≤ total_price.
#   • status ∈ {pending, processing, completed, cancelled, refunded}.
#   • payment_status ∈ {paid, refunded, partially_refunded}.
#
# ИИ-защиты:
#   • CheckConstraint на статусы и суммы — защита от «тихой» порчи данных.
#   • Индекс (telegram_id, created_at) под «Мои заказы».
#
# Запреты:
#   • Модель не двигает баланс и склад; это делает orders_service.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import Numeric

from ..core.database_core import Base, fk_target, table_args
from ..core.utils_core import utcnow


class OrderStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    ALL = (PENDING, PROCESSING, COMPLETED, CANCELLED, REFUNDED)
    # Допустимые переходы, выполняемые админом через update_status.
    TRANSITIONS = {
        PENDING: (PROCESSING, COMPLETED, CANCELLED),
        PROCESSING: (COMPLETED, CANCELLED),
    }


class PaymentStatus:
    PAID = "paid"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"

    ALL = (PAID, REFUNDED, PARTIALLY_REFUNDED)


class Order(Base):
    """
    Заказ пользователя.

    Поля:
      • user_id / telegram_id — покупатель.
      • product_type / year / month — ключ товара.
      • quantity, price_per_unit, total_price — снимок цены на момент покупки.
      • target_username — куда передать группы/каналы.
      • status / payment_status — жизненный цикл заказа и оплаты.
      • refund_amount / refund_reason — накопленный возврат.
      • admin_notes — заметки админа ('[ISO] текст' построчно).
    """

    __tablename__ = "orders"
    __table_args__ = table_args(
        CheckConstraint(
            "status IN ('pending','processing','completed','cancelled','refunded')",
            name="status_enum",
        ),
        CheckConstraint(
            "payment_status IN ('paid','refunded','partially_refunded')",
            name="payment_status_enum",
        ),
        CheckConstraint("product_type IN ('group','channel')", name="product_type_enum"),
        CheckConstraint("quantity >= 1", name="quantity_positive"),
        CheckConstraint("refund_amount >= 0 AND refund_amount <= total_price", name="refund_bounds"),
        Index("ix_orders_tg_created", "telegram_id", "created_at"),
        Index("ix_orders_created_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey(fk_target("users.id"), ondelete="CASCADE"), nullable=False, index=True
    )
    telegram_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    product_type: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[str] = mapped_column(String(16), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    target_username: Mapped[str] = mapped_column(String(64), nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=OrderStatus.PENDING, index=True)
    payment_status: Mapped[str] = mapped_column(String(24), nullable=False, default=PaymentStatus.PAID)

    refund_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    refund_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    @property
    def product_key(self) -> str:
        return f"{self.product_type}:{self.year}:{self.month}"

    @property
    def refundable_amount(self) -> Decimal:
        return Decimal(self.total_price) - Decimal(self.refund_amount or 0)

    def __repr__(self) -> str:
        return (
            f"<Order id={self.id} tg={self.telegram_id} {self.product_key} x{self.quantity} "
            f"total={self.total_price} status={self.status}/{self.payment_status}>"
        )


__all__ = ["OrderStatus", "PaymentStatus", "Order"]
