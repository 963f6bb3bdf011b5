"""Админ: сводная статистика магазина."""

from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config_core import Settings
from ....services.stats_service import StatsService, render_stats
from ...filters import ButtonText, IsAdmin

router = Router(name="admin-stats")
router.message.filter(IsAdmin())


@router.message(Command("stats"))
@router.message(ButtonText("statistics_button"))
async def handle_stats(
    message: Message,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    lang: str,
) -> None:
    await state.clear()
    stats = await StatsService(session, settings).collect_stats()
    await message.answer(render_stats(lang, stats))
