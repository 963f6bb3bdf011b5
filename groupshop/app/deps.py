# -*- coding: utf-8 -*-
# groupshop/app/deps.py
# =============================================================================
# GroupShop — Общие зависимости FastAPI: БД-сессия, настройки, админ-гейт
#             по X-Admin-Api-Key, лимит списков, ETag.
# -----------------------------------------------------------------------------
# Канон/требования:
#   • Транзакцией управляет роут (async with db.begin()); сервисы не коммитят.
#   • Админские маршруты закрыты ключом ADMIN_API_KEY; без ключа в настройках
#     админский API выключен (503).
#
# Этот модуль НЕ делает бизнес-логику, только инфраструктуру/валидацию.
# =============================================================================
from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, Query, status
from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.database_core import get_db
from groupshop.app.core.logging_core import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Админ-гейт
# -----------------------------------------------------------------------------
async def require_admin_api_key(
    settings: Settings = Depends(get_settings),
    api_key: Optional[str] = Header(default=None, alias="X-Admin-Api-Key"),
) -> None:
    """
    Depend для /admin/*: сравнивает X-Admin-Api-Key с ADMIN_API_KEY
    за постоянное время.
    """
    expected = settings.ADMIN_API_KEY
    if not expected:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin API is disabled.")
    if not api_key or not hmac.compare_digest(api_key.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("admin api: invalid key")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin API key.")


# -----------------------------------------------------------------------------
# Списки
# -----------------------------------------------------------------------------
async def list_limit(limit: int = Query(20, ge=1, le=100, description="Размер выборки (1..100)")) -> int:
    return limit


def make_etag(payload: Dict[str, Any]) -> str:
    """
    Детерминированный ETag из JSON-представления payload (витрина каталога).
    """
    raw = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
    return '"' + hashlib.sha256(raw).hexdigest() + '"'


__all__ = [
    "get_db",
    "require_admin_api_key",
    "list_limit",
    "make_etag",
]
