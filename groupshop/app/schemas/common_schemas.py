# -*- coding: utf-8 -*-
# groupshop/app/schemas/common_schemas.py
# =============================================================================
# Назначение кода:
# Базовые Pydantic-схемы GroupShop API: денежный тип (строка с 2 знаками),
# типовые ответы/ошибки, health-ответ.
#
# Канон / инварианты:
# • Все суммы — Decimal(18, 2), округление вниз. Наружу — строкой ("5.00").
# • Форма ошибки совпадает с ShopError.to_payload(): error / message / details.
#
# Запреты:
# • Нет бизнес-логики — только декларативные DTO/валидаторы.
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from ..core.utils_core import money, parse_money


def _to_money(value: Any) -> Decimal:
    try:
        return money(value)
    except ValueError:
        raise ValueError("Некорректное денежное значение") from None


def _parse_money_in(value: Any) -> Decimal:
    try:
        return parse_money(value)
    except ValueError:
        raise ValueError("Сумма: число, не больше 2 знаков после точки") from None


# Денежная сумма: на входе число/строка, на выходе строка с 2 знаками
Money = Annotated[
    Decimal,
    BeforeValidator(_to_money),
    PlainSerializer(lambda v: f"{v:.2f}", return_type=str, when_used="json"),
]

# Сумма во входящем запросе: лишние знаки → 422, а не обрезание
MoneyIn = Annotated[Decimal, BeforeValidator(_parse_money_in)]


class ORMModel(BaseModel):
    """База для ответов, собираемых из ORM-объектов (model_validate(obj))."""

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    """Стандартная форма ошибки API."""

    error: str = Field(..., description="Машинный код ошибки (snake_case)")
    message: str = Field(..., description="Короткое описание проблемы")
    details: Optional[Dict[str, Any]] = Field(None, description="Безопасные детали")


class OkResponse(BaseModel):
    ok: bool = Field(True, description="Флаг успешной операции")
    server_time: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="UTC-время формирования ответа (ISO-8601)",
    )


class HealthOut(BaseModel):
    status: str = Field(..., description="ok | degraded")
    db: bool = Field(..., description="SELECT 1 прошёл")
    core: Dict[str, Any] = Field(default_factory=dict, description="core_health(): ok/errors/snapshot")


__all__ = ["Money", "MoneyIn", "ORMModel", "ErrorResponse", "OkResponse", "HealthOut"]
