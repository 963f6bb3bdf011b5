# -*- coding: utf-8 -*-
# groupshop/app/core/errors_core.py
# =============================================================================
# Назначение кода:
#   Доменные ошибки GroupShop и их перевод в HTTP-ответы API.
#
# Канон / инварианты:
#   • Леджеры (кошелёк, склад, заказы) бросают только ошибки отсюда
#     или LockViolation из system_locks; автоматических ретраев нет.
#   • У каждой ошибки стабильный code; бот показывает t(lang, f"error_{code}"),
#     API отдаёт {"error": code, "message": ..., "details": ...}.
#   • Неизвестное исключение наружу уходит как "internal_error" без деталей.
# =============================================================================

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.system_locks import LockViolation

logger = get_logger(__name__)


class ShopError(Exception):
    """
    База доменных ошибок. Наследник задаёт code, http_status и текст
    по умолчанию; details попадают в ответ API и в логи, секретов там нет.
    """

    code: ClassVar[str] = "shop_error"
    http_status: ClassVar[int] = status.HTTP_400_BAD_REQUEST
    default_message: ClassVar[str] = "Request failed."

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details: Dict[str, Any] = dict(details or {})
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class NotFoundError(ShopError):
    """Нет записи: пользователь, склад, цена, каталог, заказ, транзакция."""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class ProductNotFoundError(NotFoundError):
    """(type, year, month) не продаётся или для него нет складской позиции."""

    code = "product_not_found"
    default_message = "Product not found."


class InvalidStateError(ShopError):
    code = "invalid_state"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Operation is not allowed in the current state."


class InsufficientFundsError(ShopError):
    code = "insufficient_funds"
    default_message = "Insufficient funds."


class InsufficientStockError(ShopError):
    code = "insufficient_stock"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Insufficient stock."


class InsufficientReservedError(ShopError):
    code = "insufficient_reserved"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Insufficient reserved stock."


class ValidationError(ShopError):
    """Сумма вне диапазона, неизвестный месяц/тип/сеть, quantity < 1 и т.п."""

    code = "validation_error"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid data."


# -----------------------------------------------------------------------------
# Исключение → (HTTP-статус, тело)
# -----------------------------------------------------------------------------
def normalize_exception(exc: BaseException) -> Tuple[int, Dict[str, Any]]:
    """
    ShopError → свой статус и payload; LockViolation → 500 "lock_violation";
    HTTPException → его статус и "http_error"; остальное → 500 "internal_error".
    """
    if isinstance(exc, ShopError):
        return exc.http_status, exc.to_payload()

    if isinstance(exc, LockViolation):
        logger.error("lock violation: %s", exc)
        return status.HTTP_500_INTERNAL_SERVER_ERROR, {
            "error": "lock_violation",
            "message": "Internal invariant violated.",
        }

    if isinstance(exc, HTTPException):
        body: Dict[str, Any] = {"error": "http_error", "message": "HTTP error."}
        if isinstance(exc.detail, str):
            body["message"] = exc.detail
        elif isinstance(exc.detail, dict):
            body["message"] = exc.detail.get("message") or exc.detail.get("detail") or body["message"]
            body["details"] = dict(exc.detail)
        return exc.status_code, body

    logger.error("unexpected exception", exc_info=exc, extra={"error_type": type(exc).__name__})
    return status.HTTP_500_INTERNAL_SERVER_ERROR, {
        "error": "internal_error",
        "message": "Internal server error.",
    }


async def _handle(request: Request, exc: Exception) -> JSONResponse:
    status_code, payload = normalize_exception(exc)
    level = "warning" if isinstance(exc, ShopError) else "error"
    getattr(logger, level)(
        "api error",
        extra={"path": request.url.path, "status": status_code, "error": payload["error"]},
    )
    return JSONResponse(status_code=status_code, content=payload)


def setup_exception_handlers(app: FastAPI) -> None:
    """ShopError, LockViolation и всё прочее → JSON через normalize_exception."""
    for exc_class in (ShopError, LockViolation, Exception):
        app.add_exception_handler(exc_class, _handle)


__all__ = [
    "ShopError",
    "NotFoundError",
    "ProductNotFoundError",
    "InvalidStateError",
    "InsufficientFundsError",
    "InsufficientStockError",
    "InsufficientReservedError",
    "ValidationError",
    "normalize_exception",
    "setup_exception_handlers",
]
