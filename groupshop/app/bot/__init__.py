"""Telegram-бот GroupShop (aiogram v3): клавиатуры, middlewares, хэндлеры."""
