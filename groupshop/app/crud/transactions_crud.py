"""Read/write helpers for the wallet transaction log (wallet_transactions).

======================================================================
Назначение:
    • Добавление записей журнала и выборки: история пользователя,
      ожидающие депозиты, агрегаты для статистики.
    • Баланс пользователя здесь не меняется: движение денег и запись
      журнала выполняет wallet_service в одной транзакции.

Канон/инварианты:
    • Курсорная пагинация (created_at DESC, id DESC).
    • lock() — SELECT ... FOR UPDATE перед решением по депозиту.
======================================================================
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.logging_core import get_logger
from groupshop.app.models import TxKind, TxStatus, WalletTransaction

logger = get_logger(__name__)


class TransactionsCRUD:
    """CRUD для журнала кошелька."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, tx_id: int) -> WalletTransaction | None:
        return await self.session.get(WalletTransaction, int(tx_id))

    async def lock(self, tx_id: int) -> WalletTransaction | None:
        """Запись журнала под FOR UPDATE."""

        await self.session.flush()

        stmt: Select[WalletTransaction] = (
            select(WalletTransaction)
            .where(WalletTransaction.id == int(tx_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def add(self, tx: WalletTransaction) -> WalletTransaction:
        self.session.add(tx)
        await self.session.flush()
        return tx

    async def list_for_user(
        self,
        user_id: int,
        *,
        limit: int,
        cursor: tuple[datetime, int] | None = None,
    ) -> list[WalletTransaction]:
        """История операций пользователя, новые сверху."""

        stmt: Select[WalletTransaction] = (
            select(WalletTransaction)
            .where(WalletTransaction.user_id == int(user_id))
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .limit(limit)
        )
        if cursor:
            ts, tid = cursor
            stmt = stmt.where(
                (WalletTransaction.created_at < ts)
                | ((WalletTransaction.created_at == ts) & (WalletTransaction.id < tid))
            )
        rows: Iterable[WalletTransaction] = await self.session.scalars(stmt)
        return list(rows)

    async def list_pending_deposits(self, *, limit: int) -> list[WalletTransaction]:
        """Ожидающие депозиты, старые сверху (очередь на проверку)."""

        stmt: Select[WalletTransaction] = (
            select(WalletTransaction)
            .where(
                WalletTransaction.kind == TxKind.DEPOSIT,
                WalletTransaction.status == TxStatus.PENDING,
            )
            .order_by(WalletTransaction.created_at.asc(), WalletTransaction.id.asc())
            .limit(limit)
        )
        rows: Iterable[WalletTransaction] = await self.session.scalars(stmt)
        return list(rows)

    async def count_by(self, *, kind: str, status: str) -> int:
        stmt = select(func.count(WalletTransaction.id)).where(
            WalletTransaction.kind == kind, WalletTransaction.status == status
        )
        return int(await self.session.scalar(stmt) or 0)

    async def sum_by(self, *, kind: str, status: str) -> Decimal:
        stmt = select(func.coalesce(func.sum(WalletTransaction.amount), 0)).where(
            WalletTransaction.kind == kind, WalletTransaction.status == status
        )
        return Decimal(str(await self.session.scalar(stmt) or 0))


__all__ = ["TransactionsCRUD"]
