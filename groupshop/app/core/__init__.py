# -*- coding: utf-8 -*-
# groupshop/app/core/__init__.py
# =============================================================================
# Назначение кода:
# Единая точка входа ядра GroupShop Bot: загрузка настроек, первичная
# инициализация логирования, запуск проверок «канона» (system_locks) и
# безопасный экспорт ключевых утилит ядра во внешние модули.
#
# Канон/инварианты (важно):
# • Источником истины служит config_core.get_settings() — никаких локальных
#   дублей констант здесь не создаём.
# • Денежные операции здесь НЕ выполняются (только конфиг/проверки/экспорты).
#
# ИИ-защита/самовосстановление:
# • boot_core() запускает стартовые проверки и всегда возвращает
#   диагностический словарь — без падения всего процесса.
# • core_health() проверяет «минимально достаточный» набор настроек.
#
# Запреты:
# • Не импортируем тяжёлые слои (CRUD/Services) в ядро.
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .config_core import Settings, get_settings
from .logging_core import get_logger
from . import system_locks
from . import utils_core

# Версия ядра (повышать при несовместимых изменениях ядра)
CORE_VERSION = "1.0.0"

logger = get_logger(__name__)

__all__ = [
    "CORE_VERSION",
    "get_settings",
    "boot_core",
    "core_health",
    "utils_core",
]


def _run_system_locks(settings: Settings) -> Dict[str, Any]:
    """Запускает стартовые проверки «канона» и возвращает диагностический словарь."""
    try:
        warnings = system_locks.assert_shop_canon(settings)
    except system_locks.LockViolation as e:
        logger.error("System locks failed: %s", e)
        return {"ok": False, "warnings": [], "error": str(e)}
    return {"ok": True, "warnings": warnings, "error": None}


def boot_core(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Безопасная инициализация ядра: настройки, проверки «канона», лог старта.

    Возвращает dict c ключами timestamp_utc, core_version, health, locks.
    """
    settings = settings or get_settings()
    ts = datetime.now(timezone.utc).isoformat()
    logger.info(
        "GroupShop core boot: version=%s env=%s schema=%s",
        CORE_VERSION,
        settings.env_normalized,
        settings.DB_SCHEMA or "default",
    )

    health = core_health(settings)
    locks = _run_system_locks(settings)

    if not health.get("ok"):
        logger.warning("Core health warnings: %s", health.get("errors"))
    if not locks.get("ok"):
        logger.error("System locks did not pass: %s", locks.get("error"))

    return {
        "timestamp_utc": ts,
        "core_version": CORE_VERSION,
        "health": health,
        "locks": locks,
    }


def core_health(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Быстрые sanity-checks по ключевым настройкам. Никаких падений —
    только отчёт для логов/админки.

    Возвращает: { ok: bool, errors: List[str], snapshot: Dict[str, str] }
    """
    settings = settings or get_settings()
    errors: List[str] = []

    if not settings.BOT_TOKEN:
        errors.append("BOT_TOKEN must be set.")
    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL must be set.")
    if not settings.ADMIN_IDS:
        errors.append("ADMIN_IDS must contain at least one admin.")
    if settings.DEFAULT_LANG not in settings.SUPPORTED_LANGS:
        errors.append("DEFAULT_LANG must be one of SUPPORTED_LANGS.")
    if settings.SUPPORT_TIMEOUT_SEC <= 0:
        errors.append("SUPPORT_TIMEOUT_SEC must be positive.")

    return {"ok": not errors, "errors": errors, "snapshot": settings.debug_dump()}
