# -*- coding: utf-8 -*-
# groupshop/app/core/utils_core.py
# =============================================================================
# Назначение:
#   • Базовые утилиты уровня "core" без зависимостей от FastAPI/SQLAlchemy.
#   • Работа с Decimal (денежные суммы, фиксированное округление вниз).
#   • Нормализация месяцев/типов товара, заметки с меткой времени.
#   • Время/таймстемпы, форматирование текста для сообщений бота.
#
# Канон:
#   • Денежные суммы во всех публичных форматах — MONEY_DECIMALS знаков (2).
#   • Округление по умолчанию DOWN (обрезаем, а не округляем вверх).
#   • Пользовательский ввод сумм идёт через parse_money: лишние знаки — ошибка.
#   • Все функции чистые: без сетевых вызовов и без побочных эффектов.
#
# ИИ-защита:
#   • normalize_month/normalize_product_type принимают ввод в любом регистре
#     и возвращают канонические значения либо None — решение об ошибке
#     принимает сервис.
# =============================================================================

from __future__ import annotations

import html
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import List, Optional, Union

from groupshop.app.core.config_core import DEPOSIT_NETWORKS, MONTHS, PRODUCT_TYPES

NumberLike = Union[str, int, float, Decimal]

MONEY_DECIMALS: int = 2
_Q_MONEY = Decimal(1).scaleb(-MONEY_DECIMALS)


# -----------------------------------------------------------------------------
# Decimal helpers
# -----------------------------------------------------------------------------
def decimal_from(value: NumberLike) -> Decimal:
    """
    Безопасно приводит значение к Decimal.

    float приводим через str(), чтобы минимизировать бинарные артефакты.
    Некорректный ввод → ValueError.
    """
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip().replace(",", "."))
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"Некорректное число: {value!r}") from exc
    if not d.is_finite():
        raise ValueError(f"Некорректное число: {value!r}")
    return d


def money(value: NumberLike) -> Decimal:
    """Денежная сумма: Decimal с MONEY_DECIMALS знаками, округление вниз."""
    return decimal_from(value).quantize(_Q_MONEY, rounding=ROUND_DOWN)


def parse_money(value: NumberLike) -> Decimal:
    """
    Сумма из пользовательского ввода (депозит, цена, возврат, корректировка).
    Больше MONEY_DECIMALS знаков после точки → ValueError, без тихого обрезания.
    """
    d = decimal_from(value)
    if d != d.quantize(_Q_MONEY, rounding=ROUND_DOWN):
        raise ValueError(f"Не больше {MONEY_DECIMALS} знаков после точки: {value!r}")
    return money(d)


def format_money(value: NumberLike, currency: str = "USDT") -> str:
    """'12.50 USDT' — строка для сообщений бота."""
    return f"{money(value):.{MONEY_DECIMALS}f} {currency}".strip()


# -----------------------------------------------------------------------------
# Товары / месяцы
# -----------------------------------------------------------------------------
def normalize_month(raw: Optional[str]) -> Optional[str]:
    """
    'january' / 'JAN' / '1' → 'January'. Неизвестное значение → None.
    """
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    if s.isdigit():
        idx = int(s)
        return MONTHS[idx - 1] if 1 <= idx <= 12 else None
    low = s.lower()
    for month in MONTHS:
        if month.lower() == low or (len(low) >= 3 and month.lower().startswith(low)):
            return month
    return None


def month_index(month: str) -> int:
    """Порядковый номер месяца (1..12) для сортировки."""
    return MONTHS.index(month) + 1


def parse_months(raw: Union[str, List[str], None]) -> List[str]:
    """
    Разбирает список месяцев: 'all' | 'Jan,Feb' | ['January', 'March'].
    Возвращает канонические имена в календарном порядке без повторов.
    Неизвестный месяц → ValueError.
    """
    if raw is None:
        return []
    items = raw if isinstance(raw, list) else str(raw).replace(" ", ",").split(",")
    items = [str(x).strip() for x in items if str(x).strip()]
    if len(items) == 1 and items[0].lower() == "all":
        return list(MONTHS)
    out: List[str] = []
    for item in items:
        month = normalize_month(item)
        if month is None:
            raise ValueError(f"Неизвестный месяц: {item}")
        if month not in out:
            out.append(month)
    return sorted(out, key=month_index)


def normalize_product_type(raw: Optional[str]) -> Optional[str]:
    """'Group' / 'groups' / 'CHANNEL' → 'group' / 'channel'."""
    if raw is None:
        return None
    s = str(raw).strip().lower().rstrip("s")
    return s if s in PRODUCT_TYPES else None


def normalize_network(raw: Optional[str]) -> Optional[str]:
    """'trc20' → 'TRC20'; неизвестная сеть → None."""
    if raw is None:
        return None
    s = str(raw).strip().upper()
    return s if s in DEPOSIT_NETWORKS else None


def normalize_username(raw: Optional[str]) -> Optional[str]:
    """'@name' / 'https://t.me/name' → 'name'. Пусто → None."""
    if raw is None:
        return None
    s = str(raw).strip()
    for prefix in ("https://t.me/", "http://t.me/", "t.me/"):
        if s.lower().startswith(prefix):
            s = s[len(prefix):]
    s = s.lstrip("@").strip()
    if not s or " " in s or len(s) > 64:
        return None
    return s


# -----------------------------------------------------------------------------
# Время / заметки
# -----------------------------------------------------------------------------
def utcnow() -> datetime:
    """Текущее время в UTC с tzinfo=UTC."""
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Приводит naive datetime (например, из SQLite) к UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def append_note(existing: Optional[str], note: Optional[str], *, now: Optional[datetime] = None) -> Optional[str]:
    """
    Добавляет строку '[ISO-время] note' к накопленным заметкам.
    Пустая заметка ничего не меняет.
    """
    if not note or not str(note).strip():
        return existing
    stamp = (now or utcnow()).isoformat()
    line = f"[{stamp}] {str(note).strip()}"
    return f"{existing}\n{line}" if existing else line


def format_date(value: Optional[datetime]) -> str:
    """'2024-01-31 12:00' для сообщений бота; None → '-'."""
    if value is None:
        return "-"
    return as_utc(value).strftime("%Y-%m-%d %H:%M")


# -----------------------------------------------------------------------------
# Текст
# -----------------------------------------------------------------------------
def truncate_text(text: Optional[str], max_length: int = 100) -> str:
    """Обрезает текст до max_length символов с многоточием."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def escape_html(text: Optional[str]) -> str:
    """Экранирование для parse_mode=HTML."""
    return html.escape(text or "", quote=False)


def split_long_message(text: str, max_length: int = 4000) -> List[str]:
    """
    Делит длинный текст на куски ≤ max_length по строкам (лимит Telegram 4096).
    """
    if len(text) <= max_length:
        return [text]
    parts: List[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > max_length:
            if current:
                parts.append(current)
                current = ""
            parts.append(line[:max_length])
            line = line[max_length:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > max_length:
            parts.append(current)
            current = line
        else:
            current = candidate
    if current:
        parts.append(current)
    return parts


__all__ = [
    "MONEY_DECIMALS",
    "decimal_from",
    "money",
    "parse_money",
    "format_money",
    "normalize_month",
    "month_index",
    "parse_months",
    "normalize_product_type",
    "normalize_network",
    "normalize_username",
    "utcnow",
    "as_utc",
    "append_note",
    "format_date",
    "truncate_text",
    "escape_html",
    "split_long_message",
]
