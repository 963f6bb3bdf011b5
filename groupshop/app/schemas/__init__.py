# -*- coding: utf-8 -*-
# groupshop/app/schemas/__init__.py
# =============================================================================
# Назначение кода:
# Фасад Pydantic-схем GroupShop API, единый импорт:
#     from groupshop.app.schemas import CheckoutIn, OrderOut, ...
# Бизнес-логики нет: только агрегация схем подмодулей по их __all__.
# =============================================================================

from __future__ import annotations

from .admin_schemas import *  # noqa: F401,F403
from .admin_schemas import __all__ as _admin_all
from .common_schemas import *  # noqa: F401,F403
from .common_schemas import __all__ as _common_all
from .orders_schemas import *  # noqa: F401,F403
from .orders_schemas import __all__ as _orders_all
from .shop_schemas import *  # noqa: F401,F403
from .shop_schemas import __all__ as _shop_all

SCHEMAS_VERSION: str = "v1.0"

__all__ = ["SCHEMAS_VERSION", *_common_all, *_shop_all, *_orders_all, *_admin_all]
