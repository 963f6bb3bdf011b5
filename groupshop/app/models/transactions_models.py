# -*- coding: utf-8 -*-
# groupshop/app/models/transactions_models.py
# =============================================================================
# Назначение кода:
#   ORM-модель журнала кошелька: WalletTransaction — единственный источник
#   истины по движениям баланса пользователя (депозиты, покупки, возвраты,
#   корректировки админом).
#
# Канон/инварианты:
#   • kind ∈ {deposit, purchase, refund, admin_adjustment}.
#   • status ∈ {pending, completed, cancelled, rejected}.
#   • deposit создаётся pending и переходит ровно в один терминальный статус:
#     completed (подтверждён) или rejected (отклонён).
#   • amount > 0 для всех видов, кроме admin_adjustment (там знак = направление).
#   • balance_before/balance_after заполняются только когда запись реально
#     двигает баланс (completed).
#
# ИИ-защиты:
#   • FK на users.id + индекс (user_id, created_at) — история пользователя
#     читается одним индексом, без «встроенных» копий журнала.
#   • Индекс (kind, status) — быстрый список ожидающих депозитов.
#
# Запреты:
#   • Терминальные записи не редактируются, кроме дописывания description.
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


class TxKind:
    DEPOSIT = "deposit"
    PURCHASE = "purchase"
    REFUND = "refund"
    ADMIN_ADJUSTMENT = "admin_adjustment"

    ALL = (DEPOSIT, PURCHASE, REFUND, ADMIN_ADJUSTMENT)


class TxStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    ALL = (PENDING, COMPLETED, CANCELLED, REJECTED)
    TERMINAL = (COMPLETED, CANCELLED, REJECTED)


class WalletTransaction(Base):
    """
    Запись журнала кошелька.

    Поля:
      • user_id / telegram_id — владелец (FK + денормализованный TG ID для логов).
      • kind / status / amount — вид, статус и сумма операции.
      • balance_before / balance_after — снимки баланса при проведении.
      • order_id       — связанный заказ (покупка/возврат).
      • description    — человекочитаемое описание (дописывается при отклонении).
      • reference      — внешний идентификатор (номер заказа, сеть+пруф и т.п.).
      • network        — сеть депозита (TRC20/BEP20).
      • proof_file_id  — Telegram file_id скриншота оплаты.
      • resolved_by / resolved_at — кто и когда принял решение по депозиту.
    """

    __tablename__ = "wallet_transactions"
    __table_args__ = table_args(
        CheckConstraint(
            "kind IN ('deposit','purchase','refund','admin_adjustment')",
            name="kind_enum",
        ),
        CheckConstraint(
            "status IN ('pending','completed','cancelled','rejected')",
            name="status_enum",
        ),
        CheckConstraint("kind = 'admin_adjustment' OR amount > 0", name="amount_positive"),
        Index("ix_wallet_tx_user_created", "user_id", "created_at"),
        Index("ix_wallet_tx_kind_status", "kind", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey(fk_target("users.id"), ondelete="CASCADE"), nullable=False
    )
    telegram_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    kind: Mapped[str] = mapped_column(String(24), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=TxStatus.PENDING)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    balance_before: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    balance_after: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)

    order_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey(fk_target("orders.id"), ondelete="SET NULL"), nullable=True, index=True
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    network: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    proof_file_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    resolved_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<WalletTransaction id={self.id} tg={self.telegram_id} {self.kind}/{self.status} amount={self.amount}>"


__all__ = ["TxKind", "TxStatus", "WalletTransaction"]
