# -*- coding: utf-8 -*-
# groupshop/app/services/users_service.py
# =============================================================================
# Назначение кода:
#   Пользователи GroupShop Bot: регистрация при первом контакте, профиль,
#   язык, блокировка, отметка активности и подписки на каналы.
#
# Канон/инварианты:
#   • Пользователь создаётся один раз (по telegram_id) и не удаляется.
#   • Флаг is_admin выставляется из ADMIN_IDS при каждом контакте.
#   • Баланс здесь не меняется.
# =============================================================================

from __future__ import annotations

from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.errors_core import NotFoundError, ValidationError
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.utils_core import utcnow
from groupshop.app.crud.user_crud import UserCRUD
from groupshop.app.models import User

logger = get_logger(__name__)


class UsersService:
    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.crud = UserCRUD(session)

    async def find_or_create(
        self,
        telegram_id: int,
        username: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        language: Optional[str] = None,
    ) -> Tuple[User, bool]:
        """
        Возвращает (user, created). Профиль обновляется данными из Telegram,
        язык нового пользователя — из language_code, если он поддерживается.
        """
        is_admin = self.settings.is_admin(telegram_id)
        lang = (language or "").split("-")[0].lower()
        if lang not in self.settings.SUPPORTED_LANGS:
            lang = self.settings.DEFAULT_LANG

        user, created = await self.crud.create_if_absent(
            telegram_id,
            username=username,
            first_name=first_name,
            last_name=last_name,
            language=lang,
            is_admin=is_admin,
            last_activity_at=utcnow(),
        )
        if not created:
            if username is not None:
                user.username = username
            if first_name is not None:
                user.first_name = first_name
            if last_name is not None:
                user.last_name = last_name
            user.is_admin = is_admin
            await self.session.flush()
        return user, created

    async def get(self, telegram_id: int) -> User:
        user = await self.crud.get_by_telegram(telegram_id)
        if user is None:
            raise NotFoundError("User not found.", details={"telegram_id": telegram_id})
        return user

    async def touch_activity(self, user: User) -> None:
        user.last_activity_at = utcnow()
        await self.session.flush()

    async def set_language(self, telegram_id: int, language: str) -> User:
        lang = (language or "").strip().lower()
        if lang not in self.settings.SUPPORTED_LANGS:
            raise ValidationError("Unsupported language.", details={"language": language})
        user = await self.get(telegram_id)
        user.language = lang
        await self.session.flush()
        logger.info("language changed", extra={"telegram_id": telegram_id, "language": lang})
        return user

    async def set_block(self, telegram_id: int, blocked: bool) -> User:
        user = await self.crud.lock_by_telegram(telegram_id)
        if user is None:
            raise NotFoundError("User not found.", details={"telegram_id": telegram_id})
        user.is_blocked = bool(blocked)
        await self.session.flush()
        logger.info("user block changed", extra={"telegram_id": telegram_id, "blocked": blocked})
        return user

    async def mark_joined_channels(self, user: User, joined: bool) -> None:
        if user.joined_channels != joined:
            user.joined_channels = joined
            await self.session.flush()


__all__ = ["UsersService"]
