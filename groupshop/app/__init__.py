# ==============================================================================
# GroupShop Bot — FastAPI application factory
# ------------------------------------------------------------------------------
# Назначение: создаёт и конфигурирует FastAPI-приложение: корреляция запросов,
# обработчики доменных ошибок, роутеры магазина и админки, /health.
#
# Канон/инварианты:
#   • Стартовые проверки ядра (boot_core) выполняются в lifespan; их
#     предупреждения видны в логах и в /health, но не валят процесс.
#   • При остановке пул соединений БД закрывается (dispose_engine).
#
# Запреты:
#   • Не запускает бота — только HTTP-API (бот: groupshop-bot).
# ==============================================================================
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .core import boot_core, core_health
from .core.config_core import Settings, get_settings
from .core.database_core import db_ping, dispose_engine
from .core.errors_core import setup_exception_handlers
from .core.logging_core import CorrelationIdMiddleware, get_logger
from .routes import register
from .schemas.common_schemas import HealthOut

logger = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    settings.initialize_runtime()
    boot_core(settings)
    try:
        yield
    finally:
        await dispose_engine()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Создать FastAPI-приложение GroupShop."""

    settings = settings or get_settings()
    app = FastAPI(title=settings.PROJECT_NAME, version=settings.APP_VERSION, lifespan=_lifespan)
    app.state.settings = settings
    app.add_middleware(CorrelationIdMiddleware)
    setup_exception_handlers(app)
    register(app, prefix=settings.API_PREFIX)

    @app.get("/health", response_model=HealthOut, tags=["health"])
    async def health() -> HealthOut:
        """Живость: SELECT 1 в БД и sanity-check настроек."""

        db_ok = await db_ping()
        core = core_health(settings)
        return HealthOut(status="ok" if db_ok else "degraded", db=db_ok, core=core)

    logger.info("FastAPI app initialised", extra={"api_prefix": settings.API_PREFIX})
    return app


__all__ = ["create_app"]
