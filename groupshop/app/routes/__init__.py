# -*- coding: utf-8 -*-
# groupshop/app/routes/__init__.py
# =============================================================================
# Назначение кода:
#   Единая точка подключения HTTP-роутов GroupShop: общий APIRouter
#   (api_router) и register(app, prefix) для фабрики приложения.
#
# Канон/инварианты:
#   • Модуль НЕ выполняет бизнес-логику — только проводка маршрутов.
#   • Каждый модуль роутов экспортирует `router: APIRouter` со своим prefix
#     ("/shop", "/admin"); общий префикс API задаёт register().
# =============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, FastAPI

from groupshop.app.core.logging_core import get_logger
from groupshop.app.routes import shop_routes
from groupshop.app.routes.admin import admin_routes

logger = get_logger(__name__)

api_router = APIRouter()
api_router.include_router(shop_routes.router)
api_router.include_router(admin_routes.router)


def register(app: FastAPI, prefix: str = "") -> None:
    """Регистрирует агрегированный роутер в приложении (prefix обычно "/api")."""
    app.include_router(api_router, prefix=prefix)
    logger.info("routes: registered (prefix=%r): %s", prefix, ", ".join(list_registered_routes()))


def list_registered_routes() -> List[str]:
    """Пути всех подключённых маршрутов (для диагностики)."""
    return sorted({getattr(r, "path", "") for r in api_router.routes})


__all__ = ["api_router", "register", "list_registered_routes"]
