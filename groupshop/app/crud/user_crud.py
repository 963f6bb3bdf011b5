"""User CRUD with cursor helpers and read-through creation by telegram_id.

======================================================================
Назначение:
    • Безопасный доступ к таблице users: поиск, создание без дублей,
      блокировка строки, курсорные выборки, агрегаты для статистики.
    • Денежные балансы здесь не изменяются; это делает wallet_service.

Канон/инварианты:
    • Только cursor-based пагинация (created_at DESC, id DESC) без OFFSET.

ИИ-защита/самовосстановление:
    • create_if_absent() делает read-through по telegram_id, избегая дублей.
    • lock_by_telegram() — SELECT ... FOR UPDATE перед правкой кошелька.

Запреты:
    • Не обновлять балансы в CRUD.
======================================================================
"""

from __future__ import annotations

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.logging_core import get_logger
from groupshop.app.models import User

logger = get_logger(__name__)


class UserCRUD:
    """CRUD-обёртка для users без денежных побочных эффектов."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> User | None:
        return await self.session.get(User, int(user_id))

    async def get_by_telegram(self, telegram_id: int) -> User | None:
        """Найти пользователя по Telegram ID (уникальное поле)."""

        stmt: Select[User] = select(User).where(User.telegram_id == int(telegram_id))
        return await self.session.scalar(stmt)

    async def create_if_absent(self, telegram_id: int, **fields) -> tuple[User, bool]:
        """Идемпотентно создать пользователя по telegram_id.

        Возвращает (user, created). commit выполняет вызывающий код.
        """

        existing = await self.get_by_telegram(telegram_id)
        if existing:
            return existing, False
        user = User(telegram_id=int(telegram_id), **fields)
        self.session.add(user)
        await self.session.flush()
        logger.info("user created", extra={"telegram_id": telegram_id})
        return user, True

    async def lock_by_telegram(self, telegram_id: int) -> User | None:
        """Получить пользователя под FOR UPDATE (кошелёк, блокировка)."""

        await self.session.flush()

        stmt: Select[User] = (
            select(User)
            .where(User.telegram_id == int(telegram_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def lock_by_id(self, user_id: int) -> User | None:
        await self.session.flush()
        stmt: Select[User] = (
            select(User)
            .where(User.id == int(user_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def count(self, *, blocked: bool | None = None) -> int:
        stmt = select(func.count(User.id))
        if blocked is not None:
            stmt = stmt.where(User.is_blocked.is_(blocked))
        return int(await self.session.scalar(stmt) or 0)


__all__ = ["UserCRUD"]

# ======================================================================
# Пояснения «для чайника»:
#   • CRUD не трогает деньги: только читает/создаёт записи users.
#   • Дубли по telegram_id исключены за счёт create_if_absent (read-through)
#     и UNIQUE в схеме.
# ======================================================================
