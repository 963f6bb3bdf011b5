# -*- coding: utf-8 -*-
# groupshop/app/services/wallet_service.py
# =============================================================================
# GroupShop Bot — Кошелёк-леджер
# -----------------------------------------------------------------------------
# ЕДИНСТВЕННАЯ точка входа для любых движений баланса пользователя.
# Операции:
#   • apply_transaction(...)      — проведённая запись + изменение баланса
#   • create_pending_deposit(...) — заявка на пополнение (баланс не трогаем)
#   • approve_deposit(...)        — подтверждение заявки админом
#   • reject_deposit(...)         — отклонение заявки админом
#   • adjust_balance(...)         — ручная корректировка админом
#
# Правила:
#   • deposit   → balance += a, total_deposited += a
#   • purchase  → balance -= a, total_spent += a
#   • refund    → balance += a, total_spent -= a
#   • admin_adjustment → balance += a (a может быть < 0)
#   • Каждое изменение баланса сопровождается записью в wallet_transactions
#     с balance_before / balance_after.
#   • Строки пользователя и заявки блокируются SELECT ... FOR UPDATE.
#   • Транзакцией БД управляет вызывающий код (одна на запрос/апдейт).
#
# ИИ-защита/самовосстановление:
#   • Решение по заявке возможно только из статуса pending: повторное
#     нажатие «Approve» даёт InvalidStateError, а не двойное зачисление.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.errors_core import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.utils_core import money, utcnow
from groupshop.app.crud.transactions_crud import TransactionsCRUD
from groupshop.app.crud.user_crud import UserCRUD
from groupshop.app.models import TxKind, TxStatus, User, WalletTransaction

logger = get_logger(__name__)


class WalletLedger:
    """Кошелёк пользователя и журнал операций."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.users = UserCRUD(session)
        self.txs = TransactionsCRUD(session)

    # ------------------------------------------------------------------
    # Внутренние помощники
    # ------------------------------------------------------------------
    @staticmethod
    def _apply_to_totals(user: User, kind: str, amount: Decimal) -> None:
        balance = Decimal(user.balance or 0)
        if kind == TxKind.DEPOSIT:
            user.balance = money(balance + amount)
            user.total_deposited = money(Decimal(user.total_deposited or 0) + amount)
        elif kind == TxKind.PURCHASE:
            user.balance = money(balance - amount)
            user.total_spent = money(Decimal(user.total_spent or 0) + amount)
        elif kind == TxKind.REFUND:
            user.balance = money(balance + amount)
            user.total_spent = money(Decimal(user.total_spent or 0) - amount)
        elif kind == TxKind.ADMIN_ADJUSTMENT:
            user.balance = money(balance + amount)
        else:
            raise ValidationError(f"Unknown transaction kind: {kind}")

    async def _lock_user(self, user: User) -> User:
        locked = await self.users.lock_by_id(user.id)
        if locked is None:
            raise NotFoundError("User not found.", details={"user_id": user.id})
        return locked

    async def _lock_deposit(self, transaction_id: int) -> Tuple[User, WalletTransaction]:
        tx = await self.txs.lock(transaction_id)
        if tx is None:
            raise NotFoundError("Transaction not found.", details={"transaction_id": transaction_id})
        if tx.kind != TxKind.DEPOSIT:
            raise InvalidStateError("Transaction is not a deposit.", details={"transaction_id": tx.id})
        if tx.status != TxStatus.PENDING:
            raise InvalidStateError(
                "Deposit has already been processed.",
                details={"transaction_id": tx.id, "status": tx.status},
            )
        user = await self.users.lock_by_id(tx.user_id)
        if user is None:
            raise NotFoundError("User not found.", details={"user_id": tx.user_id})
        return user, tx

    # ------------------------------------------------------------------
    # Публичный API
    # ------------------------------------------------------------------
    def has_enough_balance(self, user: User, amount: Decimal) -> bool:
        return Decimal(user.balance or 0) >= money(amount)

    async def apply_transaction(
        self,
        user: User,
        kind: str,
        amount: Decimal,
        *,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        order_id: Optional[int] = None,
    ) -> WalletTransaction:
        """
        Проводит операцию: запись completed в журнале + изменение баланса.

        Неотрицательность баланса здесь не проверяется: покупку проверяет
        оформление заказа, корректировку — adjust_balance.
        """
        if kind not in TxKind.ALL:
            raise ValidationError(f"Unknown transaction kind: {kind}")
        amount = money(amount)
        if kind != TxKind.ADMIN_ADJUSTMENT and amount <= 0:
            raise ValidationError("Amount must be positive.", details={"amount": str(amount)})

        user = await self._lock_user(user)
        before = Decimal(user.balance or 0)
        self._apply_to_totals(user, kind, amount)

        tx = WalletTransaction(
            user_id=user.id,
            telegram_id=user.telegram_id,
            kind=kind,
            status=TxStatus.COMPLETED,
            amount=amount,
            balance_before=money(before),
            balance_after=user.balance,
            order_id=order_id,
            description=description,
            reference=reference,
        )
        await self.txs.add(tx)
        logger.info(
            "wallet tx applied",
            extra={
                "telegram_id": user.telegram_id,
                "kind": kind,
                "amount": str(amount),
                "balance_after": str(user.balance),
                "tx_id": tx.id,
            },
        )
        return tx

    async def create_pending_deposit(
        self,
        user: User,
        amount: Decimal,
        *,
        description: Optional[str] = None,
        network: Optional[str] = None,
        proof_file_id: Optional[str] = None,
    ) -> WalletTransaction:
        """Заявка на пополнение в статусе pending; баланс не меняется."""
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Amount must be positive.", details={"amount": str(amount)})
        tx = WalletTransaction(
            user_id=user.id,
            telegram_id=user.telegram_id,
            kind=TxKind.DEPOSIT,
            status=TxStatus.PENDING,
            amount=amount,
            description=description,
            network=network,
            proof_file_id=proof_file_id,
        )
        await self.txs.add(tx)
        logger.info(
            "pending deposit created",
            extra={"telegram_id": user.telegram_id, "amount": str(amount), "network": network, "tx_id": tx.id},
        )
        return tx

    async def approve_deposit(self, transaction_id: int, admin_id: int) -> Tuple[User, WalletTransaction]:
        """pending → completed, зачисление суммы на баланс и в total_deposited."""
        user, tx = await self._lock_deposit(transaction_id)
        before = Decimal(user.balance or 0)
        self._apply_to_totals(user, TxKind.DEPOSIT, Decimal(tx.amount))

        tx.status = TxStatus.COMPLETED
        tx.balance_before = money(before)
        tx.balance_after = user.balance
        tx.resolved_by = int(admin_id)
        tx.resolved_at = utcnow()
        await self.session.flush()
        logger.info(
            "deposit approved",
            extra={"tx_id": tx.id, "telegram_id": user.telegram_id, "admin_id": admin_id, "amount": str(tx.amount)},
        )
        return user, tx

    async def reject_deposit(
        self,
        transaction_id: int,
        admin_id: int,
        reason: Optional[str] = None,
    ) -> Tuple[User, WalletTransaction]:
        """pending → rejected; баланс не меняется, причина дописывается в описание."""
        user, tx = await self._lock_deposit(transaction_id)
        reason = (reason or "").strip() or "No reason provided"
        tx.status = TxStatus.REJECTED
        tx.description = f"{tx.description or ''} | Rejected: {reason}"
        tx.resolved_by = int(admin_id)
        tx.resolved_at = utcnow()
        await self.session.flush()
        logger.info(
            "deposit rejected",
            extra={"tx_id": tx.id, "telegram_id": user.telegram_id, "admin_id": admin_id},
        )
        return user, tx

    async def adjust_balance(
        self,
        telegram_id: int,
        amount: Decimal,
        admin_id: int,
        reason: Optional[str] = None,
    ) -> Tuple[User, WalletTransaction]:
        """Ручная корректировка админом; уход в минус запрещён."""
        amount = money(amount)
        if amount == 0:
            raise ValidationError("Adjustment amount must not be zero.")
        user = await self.users.lock_by_telegram(telegram_id)
        if user is None:
            raise NotFoundError("User not found.", details={"telegram_id": telegram_id})
        if Decimal(user.balance or 0) + amount < 0:
            raise InsufficientFundsError(
                "Adjustment would make the balance negative.",
                details={"balance": str(user.balance), "amount": str(amount)},
            )
        tx = await self.apply_transaction(
            user,
            TxKind.ADMIN_ADJUSTMENT,
            amount,
            description=reason or "Admin adjustment",
            reference=f"admin:{admin_id}",
        )
        tx.resolved_by = int(admin_id)
        tx.resolved_at = utcnow()
        await self.session.flush()
        return user, tx

    async def list_transactions(
        self,
        user: User,
        *,
        limit: int = 10,
        cursor: Optional[Tuple[datetime, int]] = None,
    ) -> List[WalletTransaction]:
        return await self.txs.list_for_user(user.id, limit=limit, cursor=cursor)

    async def list_pending_deposits(self, *, limit: int = 20) -> List[WalletTransaction]:
        return await self.txs.list_pending_deposits(limit=limit)


__all__ = ["WalletLedger"]

# -----------------------------------------------------------------------------
# Пояснения «для чайника»:
#   • Баланс нельзя менять напрямую: только методы WalletLedger, которые
#     пишут запись в журнал и сохраняют снимок баланса до/после.
#   • Заявка на пополнение (pending) не меняет баланс до подтверждения.
#   • Отклонённая заявка остаётся в журнале с причиной в описании.
# -----------------------------------------------------------------------------
