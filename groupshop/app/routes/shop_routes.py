# -*- coding: utf-8 -*-
# groupshop/app/routes/shop_routes.py
# =============================================================================
# Назначение кода:
# Публичный REST магазина: витрина каталога, цена товара, покупка за баланс
# кошелька, список заказов пользователя.
#
# Канон / инварианты:
# • Покупка — одна транзакция (async with db.begin()): резерв склада,
#   создание заказа и списание с кошелька либо все вместе, либо ничего.
# • Ошибки домена (ShopError) отдаются через общий обработчик с кодом:
#   insufficient_funds / insufficient_stock / product_not_found /
#   validation_error / not_found.
# • Витрина отдаёт ETag; If-None-Match с тем же значением → 304.
#
# Запреты:
# • Нет прямого SQL: только сервисы.
# =============================================================================

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.errors_core import NotFoundError
from groupshop.app.core.logging_core import get_logger
from groupshop.app.crud.user_crud import UserCRUD
from groupshop.app.deps import get_db, list_limit, make_etag
from groupshop.app.schemas.orders_schemas import OrderListOut, OrderOut
from groupshop.app.schemas.shop_schemas import (
    CatalogOut,
    CatalogYearOut,
    CheckoutIn,
    CheckoutOut,
    PriceOut,
)
from groupshop.app.services.catalog_service import CatalogService
from groupshop.app.services.orders_service import OrdersService
from groupshop.app.services.pricing_service import PricingService
from groupshop.app.services.stock_service import StockLedger, product_key

logger = get_logger(__name__)

router = APIRouter(prefix="/shop", tags=["shop"])


# -----------------------------------------------------------------------------
# GET /shop/catalog — витрина
# -----------------------------------------------------------------------------
@router.get("/catalog", response_model=CatalogOut, summary="Активные каталоги (тип → год → месяцы)")
async def get_catalog(
    response: Response,
    product_type: Optional[str] = Query(None, description="group | channel; пусто — все типы"),
    if_none_match: Optional[str] = Header(None, alias="If-None-Match"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CatalogOut | Response:
    catalogs = await CatalogService(db, settings).get_active_catalogs(product_type)
    out = CatalogOut(
        items=[
            CatalogYearOut(
                product_type=c.product_type,
                year=c.year,
                months=c.active_months,
                description=c.description,
            )
            for c in sorted(catalogs, key=lambda c: (c.product_type, c.year))
        ]
    )
    tag = make_etag(out.model_dump(mode="json"))
    if if_none_match == tag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": tag})
    response.headers["ETag"] = tag
    return out


# -----------------------------------------------------------------------------
# GET /shop/price — действующая цена и остаток
# -----------------------------------------------------------------------------
@router.get("/price", response_model=PriceOut, summary="Цена за единицу и остаток на складе")
async def get_price(
    product_type: str = Query(...),
    year: int = Query(...),
    month: str = Query(...),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> PriceOut:
    ptype, y, m = product_key(product_type, year, month)
    effective = await PricingService(db, settings).get_effective(ptype, y, m)
    available = await StockLedger(db, settings).get_available(ptype, y, m)
    return PriceOut(
        product_type=ptype,
        year=y,
        month=m,
        price=effective.price,
        is_default=effective.is_default,
        available=available,
    )


# -----------------------------------------------------------------------------
# POST /shop/checkout — покупка за баланс
# -----------------------------------------------------------------------------
@router.post("/checkout", response_model=CheckoutOut, status_code=status.HTTP_201_CREATED, summary="Покупка")
async def checkout(
    payload: CheckoutIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CheckoutOut:
    """
    Вход: {telegram_id, product_type, year, month, quantity ≥ 1, target_username}.
    Выход: {order_id, total, balance}.
    """
    async with db.begin():
        result = await OrdersService(db, settings).checkout(
            payload.telegram_id,
            payload.product_type,
            payload.year,
            payload.month,
            payload.quantity,
            payload.target_username,
        )
        user = await UserCRUD(db).get_by_telegram(payload.telegram_id)
        if user is None:
            raise NotFoundError("User not found.", details={"telegram_id": payload.telegram_id})
    return CheckoutOut(order_id=result.order.id, total=result.total, balance=user.balance)


# -----------------------------------------------------------------------------
# GET /shop/orders — заказы пользователя
# -----------------------------------------------------------------------------
@router.get("/orders", response_model=OrderListOut, summary="Последние заказы пользователя")
async def list_orders(
    telegram_id: int = Query(..., description="TG ID пользователя"),
    limit: int = Depends(list_limit),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> OrderListOut:
    orders = await OrdersService(db, settings).get_user_orders(telegram_id, limit=limit)
    return OrderListOut(items=[OrderOut.model_validate(o) for o in orders])


__all__ = ["router"]
