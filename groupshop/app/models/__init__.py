# -*- coding: utf-8 -*-
# groupshop/app/models/__init__.py
# =============================================================================
# Назначение кода:
# Единая точка входа слоя моделей GroupShop Bot. Централизует:
#  • загрузку ORM-базиса (Base, схема БД),
#  • импорт всех модулей моделей (регистрация таблиц в Base.metadata),
#  • реестр MODEL_REGISTRY для удобного доступа к классам моделей,
#  • лёгкую диагностику полноты набора таблиц (models_health).
#
# Канон/инварианты (важно):
#  • Модели описывают структуру данных, НЕ содержат бизнес-логики и денег.
#  • Денежные операции выполняются ТОЛЬКО в services/wallet_service.py.
#
# Запреты:
#  • Не размещать в __init__ бизнес-операции, миграции и DDL.
#  • Ошибка импорта модуля моделей — ошибка старта, не «пропуск».
# =============================================================================

from __future__ import annotations

import importlib
import inspect
from typing import Dict, List, Optional, Tuple, Type

from ..core.database_core import SCHEMA, Base
from ..core.logging_core import get_logger
from .order_models import Order, OrderStatus, PaymentStatus
from .shop_models import Catalog, CatalogMonth, Pricing, Stock
from .transactions_models import TxKind, TxStatus, WalletTransaction
from .user_models import User

logger = get_logger(__name__)

_MODEL_MODULES: List[str] = [
    "user_models",
    "transactions_models",
    "order_models",
    "shop_models",
]


def _collect_model_classes(module) -> Dict[str, Type[Base]]:
    """{ClassName: Class} для всех подклассов Base с __tablename__."""
    registry: Dict[str, Type[Base]] = {}
    for name, obj in vars(module).items():
        if inspect.isclass(obj) and issubclass(obj, Base) and hasattr(obj, "__tablename__"):
            registry[name] = obj
    return registry


MODEL_REGISTRY: Dict[str, Type[Base]] = {}
for _name in _MODEL_MODULES:
    MODEL_REGISTRY.update(_collect_model_classes(importlib.import_module(f"{__name__}.{_name}")))


def get_model(name: str) -> Optional[Type[Base]]:
    """get_model("User") → <class User> или None."""
    return MODEL_REGISTRY.get(name)


def list_models() -> List[Tuple[str, str]]:
    """Пары (ClassName, __tablename__) всех моделей, по алфавиту."""
    return [
        (cls_name, getattr(cls, "__tablename__", "?"))
        for cls_name, cls in sorted(MODEL_REGISTRY.items(), key=lambda kv: kv[0].lower())
    ]


def models_health() -> Dict[str, object]:
    """
    Проверяет наличие ключевых сущностей:
      • User, WalletTransaction — кошелёк и журнал;
      • Order — заказы;
      • Stock, Pricing, Catalog, CatalogMonth — витрина.
    """
    required = ["User", "WalletTransaction", "Order", "Stock", "Pricing", "Catalog", "CatalogMonth"]
    missing = [name for name in required if name not in MODEL_REGISTRY]
    report = {
        "ok": not missing,
        "missing_classes": missing,
        "present": list_models(),
        "schema": SCHEMA,
    }
    if missing:
        logger.warning("models_health: missing=%s", missing)
    return report


__all__ = [
    "Base",
    "SCHEMA",
    "MODEL_REGISTRY",
    "get_model",
    "list_models",
    "models_health",
    "User",
    "WalletTransaction",
    "TxKind",
    "TxStatus",
    "Order",
    "OrderStatus",
    "PaymentStatus",
    "Catalog",
    "CatalogMonth",
    "Pricing",
    "Stock",
]
