"""GroupShop: Telegram-магазин групп и каналов (бот + REST API)."""

__version__ = "1.0.0"
