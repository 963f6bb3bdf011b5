# -*- coding: utf-8 -*-
# groupshop/app/core/system_locks.py
# =============================================================================
# Назначение кода:
#   Единый «канон-замок» GroupShop Bot. Гарантирует инварианты магазина до
#   старта приложения и во время работы:
#   • цены по умолчанию и минимальный депозит положительны;
#   • сети депозита только TRC20/BEP20, для каждой задан адрес;
#   • счётчики склада никогда не уходят в минус;
#   • пользователь не уходит в минус после списания.
#
# Канон / инварианты (фиксируем жёстко):
#   • quantity ≥ 0, reserved ≥ 0, sold ≥ 0 для любой складской позиции.
#   • quantity + reserved + sold ≤ initial_quantity (initial только растёт).
#   • Баланс пользователя меняется только через кошелёк-леджер.
#
# ИИ-защита / самовосстановление:
#   • Стартовые проверки (assert_shop_canon) выполняются в boot_core() и
#     возвращают отчёт, а не роняют процесс.
#   • Проверки во время работы поднимают LockViolation — это ошибка проекта,
#     транзакция откатывается целиком.
#
# Запреты:
#   • Здесь нет бизнес-логики денег/склада. Только проверки.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List

from groupshop.app.core.config_core import DEPOSIT_NETWORKS, Settings
from groupshop.app.core.logging_core import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Исключения и DTO для нарушений канона
# -----------------------------------------------------------------------------
class LockViolation(RuntimeError):
    """
    Нарушение канона / архитектурных запретов.

    Важно:
    • Это ОШИБКА ПРОЕКТА, а не «ошибка пользователя».
    • Должна отлавливаться верхним слоем и логироваться.
    """


@dataclass(frozen=True)
class StockSnapshot:
    """Снимок счётчиков складской позиции для проверки инвариантов."""

    quantity: int
    reserved: int
    sold: int
    initial_quantity: int

    @classmethod
    def of(cls, stock: Any) -> "StockSnapshot":
        return cls(
            quantity=int(stock.quantity),
            reserved=int(stock.reserved),
            sold=int(stock.sold),
            initial_quantity=int(stock.initial_quantity),
        )


# -----------------------------------------------------------------------------
# Публичные проверки — импортируются сервисами
# -----------------------------------------------------------------------------
def assert_stock_counters(stock: Any) -> None:
    """
    Проверяет счётчики складской позиции ПОСЛЕ изменения.

    При нарушении поднимает LockViolation: транзакция обновления должна
    откатиться, а в логах останется подробное описание.
    """
    snap = StockSnapshot.of(stock)
    if snap.quantity < 0 or snap.reserved < 0 or snap.sold < 0:
        raise LockViolation(
            "Отрицательные счётчики склада: "
            f"quantity={snap.quantity}, reserved={snap.reserved}, sold={snap.sold}",
        )
    if snap.quantity + snap.reserved + snap.sold > snap.initial_quantity:
        raise LockViolation(
            "Счётчики склада превышают initial_quantity: "
            f"{snap.quantity}+{snap.reserved}+{snap.sold} > {snap.initial_quantity}",
        )


def ensure_user_non_negative_after(balance: Decimal, delta: Decimal) -> None:
    """
    Проверка «не уйти в минус» для пользователя.

    Вызывать ПЕРЕД применением списания, когда вызывающий код уже проверил
    достаточность средств доменной ошибкой; здесь — последняя страховка.
    """
    after = balance + delta
    if after < 0:
        raise LockViolation(
            "Списание привело бы к отрицательному балансу пользователя: "
            f"after={after}. Операция запрещена.",
        )


def assert_shop_canon(settings: Settings) -> List[str]:
    """
    Стартовая проверка конфигурации магазина.

    Возвращает список предупреждений (пустой — всё в порядке). Жёсткие
    нарушения (цены ≤ 0) поднимают LockViolation.
    """
    if settings.DEFAULT_PRICE_GROUP <= 0 or settings.DEFAULT_PRICE_CHANNEL <= 0:
        raise LockViolation("Цены по умолчанию должны быть > 0.")
    if settings.MIN_DEPOSIT <= 0:
        raise LockViolation("MIN_DEPOSIT должен быть > 0.")

    warnings: List[str] = []
    for network in DEPOSIT_NETWORKS:
        if not settings.deposit_address(network):
            warnings.append(f"Не задан адрес USDT для сети {network}.")
    if not settings.ADMIN_IDS:
        warnings.append("ADMIN_IDS пуст: депозиты некому подтверждать.")
    if any(a < settings.MIN_DEPOSIT for a in settings.PREDEFINED_AMOUNTS):
        warnings.append("Часть PREDEFINED_AMOUNTS меньше MIN_DEPOSIT.")
    for warning in warnings:
        logger.warning("SystemLocks: %s", warning)
    return warnings


__all__ = [
    "LockViolation",
    "StockSnapshot",
    "assert_stock_counters",
    "ensure_user_non_negative_after",
    "assert_shop_canon",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Складской сервис вызывает assert_stock_counters(stock) после каждого
#     изменения. Если где-то ошиблись в арифметике — увидите LockViolation,
#     а не тихо «уехавшие» остатки.
#   • Кошелёк вызывает ensure_user_non_negative_after(...) перед списанием
#     покупки уже после проверки InsufficientFunds.
# =============================================================================
