"""Админ-панель: справка, разбор аргументов команд, отказ не-админам."""

from __future__ import annotations

from typing import List, Optional

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from ....core.i18n_core import t
from ....core.utils_core import escape_html
from ...filters import IsAdmin

router = Router(name="admin-main")
router.message.filter(IsAdmin())

# Команды, которые не-админ получает с ответом admin_only
ADMIN_COMMANDS = (
    "admin",
    "stats",
    "addstock",
    "setstock",
    "stock",
    "setprice",
    "delprice",
    "prices",
    "addcatalog",
    "updatecatalog",
    "delcatalog",
    "deposits",
    "recent",
    "order",
    "setstatus",
    "refund",
    "adjust",
    "block",
    "unblock",
    "reply",
)

denied_router = Router(name="admin-denied")


def command_args(command: CommandObject, minimum: int, maxsplit: int = -1) -> Optional[List[str]]:
    """
    Аргументы команды: '/setprice group 2024 jan 6.5 note' → ['group', ...].
    maxsplit > 0 склеивает хвост (заметки, причина) в последний элемент.
    Меньше minimum аргументов → None.
    """
    parts = (command.args or "").split(maxsplit=maxsplit) if maxsplit > 0 else (command.args or "").split()
    return parts if len(parts) >= minimum else None


async def answer_usage(message: Message, lang: str, usage: str) -> None:
    await message.answer(t(lang, "usage", usage=escape_html(usage)))


@router.message(Command("admin"))
async def handle_admin_entry(message: Message, lang: str) -> None:
    """Краткая справка по командам админа."""

    await message.answer(t(lang, "admin_panel"))


@denied_router.message(Command(*ADMIN_COMMANDS))
async def handle_admin_denied(message: Message, lang: str) -> None:
    await message.answer(t(lang, "admin_only"))
