# -*- coding: utf-8 -*-
# groupshop/app/services/orders_service.py
# =============================================================================
# Назначение кода:
#   Оформление и жизненный цикл заказов GroupShop Bot.
#   • checkout(...)       — цена → проверка баланса → резерв склада →
#                           заказ → списание с кошелька (одна транзакция БД)
#   • update_status(...)  — смена статуса админом (подтверждение/отмена)
#   • cancel_order(...)   — отмена пользователем, пока заказ pending
#   • process_refund(...) — частичный/полный возврат на баланс
#   • выборки и счётчики для «Мои заказы» и статистики.
#
# Канон/инварианты:
#   • total_price = price × quantity фиксируется при создании.
#   • Выполнение заказа переводит резерв в sold; отмена возвращает резерв
#     на склад и возвращает на баланс невозвращённую часть суммы.
#   • refund_amount накопительный и не превышает total_price.
#   • Все шаги выполняются в транзакции вызывающего кода: ошибка на любом
#     шаге откатывает резерв, списание и заказ вместе.
#
# Запреты:
#   • Никаких commit() внутри сервиса.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.errors_core import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.system_locks import ensure_user_non_negative_after
from groupshop.app.core.utils_core import append_note, money, month_index, normalize_username, parse_money, utcnow
from groupshop.app.crud.order_crud import OrderCRUD
from groupshop.app.crud.user_crud import UserCRUD
from groupshop.app.models import Order, OrderStatus, PaymentStatus, TxKind, User
from groupshop.app.services.catalog_service import CatalogService
from groupshop.app.services.pricing_service import PricingService
from groupshop.app.services.stock_service import StockLedger, product_key
from groupshop.app.services.wallet_service import WalletLedger

logger = get_logger(__name__)


@dataclass
class CheckoutResult:
    order: Order
    total: Decimal


@dataclass
class RefundResult:
    order: Order
    user: User
    amount: Decimal


class OrdersService:
    """Заказы: оформление, статусы, возвраты."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.orders = OrderCRUD(session)
        self.users = UserCRUD(session)
        self.catalog = CatalogService(session, self.settings)
        self.pricing = PricingService(session, self.settings)
        self.stock = StockLedger(session, self.settings)
        self.wallet = WalletLedger(session, self.settings)

    # ------------------------------------------------------------------
    # Оформление
    # ------------------------------------------------------------------
    async def checkout(
        self,
        telegram_id: int,
        product_type: object,
        year: object,
        month: object,
        quantity: object,
        target_username: Optional[str],
    ) -> CheckoutResult:
        """
        Покупка за баланс кошелька.

        Ошибки: ValidationError (ввод), ProductNotFoundError (товар не
        продаётся / нет склада), InsufficientFundsError, InsufficientStockError.
        """
        ptype, y, m = product_key(product_type, year, month)
        try:
            qty = int(str(quantity).strip())
        except (TypeError, ValueError):
            raise ValidationError("Quantity must be an integer.", details={"quantity": str(quantity)}) from None
        if qty < 1:
            raise ValidationError("Quantity must be at least 1.", details={"quantity": qty})
        username = normalize_username(target_username)
        if username is None:
            raise ValidationError("Target username is required.", details={"target_username": target_username})

        if not await self.catalog.is_offered(ptype, y, m):
            raise ProductNotFoundError(
                "Product is not offered.",
                details={"product_type": ptype, "year": y, "month": m},
            )

        price = await self.pricing.get_price(ptype, y, m)
        total = money(price * qty)

        user = await self.users.lock_by_telegram(telegram_id)
        if user is None:
            raise NotFoundError("User not found.", details={"telegram_id": telegram_id})
        if not self.wallet.has_enough_balance(user, total):
            raise InsufficientFundsError(
                "Insufficient balance.",
                details={"balance": str(user.balance), "required": str(total)},
            )

        await self.stock.reserve(ptype, y, m, qty)

        order = await self.orders.create(
            Order(
                user_id=user.id,
                telegram_id=user.telegram_id,
                product_type=ptype,
                year=y,
                month=m,
                quantity=qty,
                price_per_unit=price,
                total_price=total,
                target_username=username,
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PAID,
                refund_amount=Decimal("0"),
            )
        )

        ensure_user_non_negative_after(Decimal(user.balance), -total)
        await self.wallet.apply_transaction(
            user,
            TxKind.PURCHASE,
            total,
            description=f"Order #{order.id}: {qty} x {ptype} {m} {y}",
            reference=f"order:{order.id}",
            order_id=order.id,
        )
        logger.info(
            "order created",
            extra={"order_id": order.id, "telegram_id": telegram_id, "key": order.product_key, "total": str(total)},
        )
        return CheckoutResult(order=order, total=total)

    # ------------------------------------------------------------------
    # Статусы
    # ------------------------------------------------------------------
    async def _locked(self, order_id: int) -> Order:
        order = await self.orders.lock(order_id)
        if order is None:
            raise NotFoundError("Order not found.", details={"order_id": order_id})
        return order

    async def _refund_remaining(self, order: Order, reason: str) -> Decimal:
        remaining = order.refundable_amount
        if remaining <= 0:
            return Decimal("0")
        user = await self.users.get_by_id(order.user_id)
        if user is None:
            raise NotFoundError("User not found.", details={"user_id": order.user_id})
        await self.wallet.apply_transaction(
            user,
            TxKind.REFUND,
            remaining,
            description=f"Refund for order #{order.id}: {reason}",
            reference=f"order:{order.id}",
            order_id=order.id,
        )
        order.refund_amount = money(Decimal(order.refund_amount) + remaining)
        order.refund_reason = reason
        order.refunded_at = utcnow()
        order.payment_status = PaymentStatus.REFUNDED
        return remaining

    async def update_status(
        self,
        order_id: int,
        status: str,
        notes: Optional[str] = None,
        admin_id: Optional[int] = None,
    ) -> Order:
        """
        Смена статуса админом.

        pending → processing / completed / cancelled;
        processing → completed / cancelled.
        completed: резерв → sold; cancelled: резерв → склад + возврат денег.
        """
        status = (status or "").strip().lower()
        if status not in OrderStatus.ALL:
            raise ValidationError("Unknown order status.", details={"status": status})
        order = await self._locked(order_id)
        allowed = OrderStatus.TRANSITIONS.get(order.status, ())
        if status not in allowed:
            raise InvalidStateError(
                f"Cannot change order status from {order.status} to {status}.",
                details={"order_id": order.id, "from": order.status, "to": status},
            )

        now = utcnow()
        if status == OrderStatus.COMPLETED:
            await self.stock.confirm_reserved(order.product_type, order.year, order.month, order.quantity)
            order.completed_at = now
        elif status == OrderStatus.CANCELLED:
            await self.stock.return_reserved(order.product_type, order.year, order.month, order.quantity)
            await self._refund_remaining(order, notes or "Order cancelled")
            order.cancelled_at = now

        order.status = status
        if admin_id is not None:
            order.admin_notes = append_note(order.admin_notes, f"status → {status} by {admin_id}", now=now)
        order.admin_notes = append_note(order.admin_notes, notes, now=now)
        await self.session.flush()
        logger.info("order status updated", extra={"order_id": order.id, "status": status, "admin_id": admin_id})
        return order

    async def cancel_order(self, order_id: int, telegram_id: int) -> Order:
        """Отмена пользователем: только свой заказ и только в статусе pending."""
        order = await self._locked(order_id)
        if order.telegram_id != int(telegram_id):
            raise NotFoundError("Order not found.", details={"order_id": order_id})
        if order.status != OrderStatus.PENDING:
            raise InvalidStateError(
                "Only pending orders can be cancelled.",
                details={"order_id": order.id, "status": order.status},
            )
        now = utcnow()
        await self.stock.return_reserved(order.product_type, order.year, order.month, order.quantity)
        await self._refund_remaining(order, "Cancelled by user")
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = now
        order.admin_notes = append_note(order.admin_notes, "cancelled by user", now=now)
        await self.session.flush()
        logger.info("order cancelled by user", extra={"order_id": order.id, "telegram_id": telegram_id})
        return order

    async def process_refund(
        self,
        order_id: int,
        amount: object,
        reason: Optional[str] = None,
        admin_id: Optional[int] = None,
    ) -> RefundResult:
        """
        Возврат на баланс. Полный возврат (refund_amount == total_price)
        переводит заказ в refunded и возвращает резерв на склад, если заказ
        ещё не выполнен.
        """
        try:
            value = parse_money(amount)  # type: ignore[arg-type]
        except ValueError:
            raise ValidationError("Refund amount must be a number with at most 2 decimal places.", details={"amount": str(amount)}) from None
        if value <= 0:
            raise ValidationError("Refund amount must be positive.", details={"amount": str(value)})

        order = await self._locked(order_id)
        if order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise InvalidStateError(
                "Order is already closed.",
                details={"order_id": order.id, "status": order.status},
            )
        already = Decimal(order.refund_amount or 0)
        total = Decimal(order.total_price)
        if already + value > total:
            raise ValidationError(
                "Refund amount exceeds the order total.",
                details={"order_id": order.id, "refunded": str(already), "requested": str(value), "total": str(total)},
            )

        user = await self.users.get_by_id(order.user_id)
        if user is None:
            raise NotFoundError("User not found.", details={"user_id": order.user_id})

        now = utcnow()
        reason = (reason or "").strip() or "Refund"
        await self.wallet.apply_transaction(
            user,
            TxKind.REFUND,
            value,
            description=f"Refund for order #{order.id}: {reason}",
            reference=f"order:{order.id}",
            order_id=order.id,
        )
        order.refund_amount = money(already + value)
        order.refund_reason = reason
        order.refunded_at = now

        if order.refund_amount == money(total):
            if order.status in (OrderStatus.PENDING, OrderStatus.PROCESSING):
                await self.stock.return_reserved(order.product_type, order.year, order.month, order.quantity)
            order.payment_status = PaymentStatus.REFUNDED
            order.status = OrderStatus.REFUNDED
        else:
            order.payment_status = PaymentStatus.PARTIALLY_REFUNDED
        order.admin_notes = append_note(order.admin_notes, f"refund {value} by {admin_id}: {reason}", now=now)
        await self.session.flush()
        logger.info(
            "order refunded",
            extra={"order_id": order.id, "amount": str(value), "payment_status": order.payment_status},
        )
        return RefundResult(order=order, user=user, amount=value)

    # ------------------------------------------------------------------
    # Чтение
    # ------------------------------------------------------------------
    async def get_order(self, order_id: int) -> Order:
        order = await self.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found.", details={"order_id": order_id})
        return order

    async def get_user_orders(self, telegram_id: int, limit: int = 10) -> List[Order]:
        return await self.orders.list_for_user(telegram_id, limit=limit)

    async def count_user_orders(self, telegram_id: int) -> int:
        return await self.orders.count(telegram_id=telegram_id)

    async def get_recent_orders(self, limit: int = 10, status: Optional[str] = None) -> List[Order]:
        return await self.orders.list_recent(limit=limit, status=status)

    async def orders_count_by_month_year(self) -> List[Tuple[int, str, int]]:
        """[(year, month, count)] по убыванию года, затем по календарю."""
        rows = await self.orders.count_by_month_year()
        return sorted(rows, key=lambda r: (-r[0], month_index(r[1])))


__all__ = ["CheckoutResult", "RefundResult", "OrdersService"]

# -----------------------------------------------------------------------------
# Пояснения «для чайника»:
#   • Порядок оформления: сначала все проверки, затем резерв склада, заказ и
#     списание. Ошибка проверки ничего не меняет; ошибка после резерва
#     откатывается транзакцией вызывающего кода.
#   • Частичный возврат не трогает склад; полный возврат незавершённого
#     заказа возвращает резерв.
# -----------------------------------------------------------------------------
