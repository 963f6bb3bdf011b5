"""Точка входа HTTP API GroupShop (uvicorn)."""

from __future__ import annotations

import uvicorn

from groupshop.app import create_app
from groupshop.app.core.config_core import get_settings


def main() -> None:
    """Запуск FastAPI-сервера (groupshop-api)."""

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
