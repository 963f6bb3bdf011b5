# -*- coding: utf-8 -*-
# groupshop/app/models/user_models.py
# =============================================================================
# Назначение кода:
#   ORM-модель домена «Пользователи» GroupShop Bot:
#   • User — профиль пользователя Telegram и его кошелёк (баланс + итоги).
#
# Канон/инварианты:
#   • Бизнес-идентификатор — telegram_id (BigInt), уникален в системе.
#   • Денежные поля — Numeric(18,2), округление вниз выполняют СЕРВИСЫ.
#   • balance = total_deposited - total_spent + Σ(admin_adjustment).
#     Баланс меняется только кошельком-леджером вместе с записью в
#     wallet_transactions (единственный журнал операций).
#
# ИИ-защиты:
#   • Индекс (created_at, id) под курсорные списки админки.
#   • Python-side default у всех полей: ORM знает значения сразу после flush,
#     без ленивых догрузок в async-сессии.
#
# Запреты:
#   • Модель НЕ выполняет денежных операций.
#   • Пользователь никогда не удаляется (только is_blocked).
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, UniqueConstraint, false, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import Numeric

from ..core.database_core import Base, table_args
from ..core.utils_core import utcnow


class User(Base):
    """
    Пользователь GroupShop Bot (Telegram).

    Поля:
      • telegram_id       — уникальный идентификатор Telegram.
      • username / first_name / last_name — профиль (обновляется при контакте).
      • language          — выбранный язык интерфейса.
      • balance           — текущий баланс USDT.
      • total_deposited   — сумма подтверждённых депозитов.
      • total_spent       — сумма покупок за вычетом возвратов.
      • is_admin          — админ (из ADMIN_IDS на момент контакта).
      • is_blocked        — заблокирован админом.
      • joined_channels   — последняя проверка подписки на каналы успешна.
      • last_activity_at  — последняя активность в боте.
    """

    __tablename__ = "users"
    __table_args__ = table_args(
        UniqueConstraint("telegram_id", name="uq_users_telegram"),
        Index("ix_users_created_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    telegram_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    username: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    language: Mapped[str] = mapped_column(String(8), nullable=False, default="en", server_default="en")

    # Кошелёк
    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    total_deposited: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    total_spent: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0"), server_default="0"
    )

    # Статусы
    is_admin: Mapped[bool] = mapped_column(nullable=False, default=False, server_default=false())
    is_blocked: Mapped[bool] = mapped_column(nullable=False, default=False, server_default=false(), index=True)
    joined_channels: Mapped[bool] = mapped_column(nullable=False, default=False, server_default=false())

    last_activity_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    @property
    def display_name(self) -> str:
        if self.username:
            return f"@{self.username}"
        full = " ".join(x for x in (self.first_name, self.last_name) if x)
        return full or str(self.telegram_id)

    def __repr__(self) -> str:
        return f"<User tg={self.telegram_id} balance={self.balance} admin={self.is_admin} blocked={self.is_blocked}>"


__all__ = ["User"]
