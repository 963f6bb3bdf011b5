# -*- coding: utf-8 -*-
# groupshop/app/routes/admin/admin_routes.py
# =============================================================================
# Назначение кода:
#   Админский REST GroupShop: склад, цены, каталог, решения по депозитам,
#   статусы и возвраты заказов, корректировка баланса, статистика.
#
# Канон/инварианты:
#   • Доступ только по заголовку X-Admin-Api-Key (require_admin_api_key).
#   • Каждая мутация — одна транзакция (async with db.begin()).
#   • Деньги и склад двигают только сервисы-леджеры; здесь только проводка.
#
# Запреты:
#   • Нет прямого SQL и нет уведомлений в Telegram (это делает бот).
# =============================================================================

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.logging_core import get_logger
from groupshop.app.deps import get_db, list_limit, require_admin_api_key
from groupshop.app.schemas.admin_schemas import (
    BalanceAdjustIn,
    BalanceOut,
    CatalogIn,
    DepositDecisionIn,
    DepositDecisionOut,
    DepositListOut,
    DepositOut,
    MonthCountOut,
    PriceIn,
    PriceRemovedOut,
    PricingOut,
    StatsOut,
    StockChangeIn,
    StockListOut,
    StockOut,
    StockTypeOut,
)
from groupshop.app.schemas.common_schemas import OkResponse
from groupshop.app.schemas.orders_schemas import OrderListOut, OrderOut, OrderStatusIn, RefundIn, RefundOut
from groupshop.app.schemas.shop_schemas import CatalogYearOut
from groupshop.app.services.catalog_service import CatalogService
from groupshop.app.services.deposits_service import DepositsService
from groupshop.app.services.orders_service import OrdersService
from groupshop.app.services.pricing_service import PricingService
from groupshop.app.services.stats_service import StatsService
from groupshop.app.services.stock_service import StockLedger
from groupshop.app.services.wallet_service import WalletLedger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_api_key)])


# =============================================================================
# Склад
# =============================================================================
@router.post("/stock/add", response_model=StockOut, summary="Завоз: quantity и initial_quantity += qty")
async def stock_add(
    payload: StockChangeIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> StockOut:
    async with db.begin():
        stock = await StockLedger(db, settings).add(
            payload.product_type,
            payload.year,
            payload.month,
            payload.quantity,
            admin_id=payload.admin_id,
            notes=payload.notes,
        )
    return StockOut.model_validate(stock)


@router.post("/stock/set", response_model=StockOut, summary="Установить quantity (инвентаризация)")
async def stock_set(
    payload: StockChangeIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> StockOut:
    async with db.begin():
        stock = await StockLedger(db, settings).set_absolute(
            payload.product_type,
            payload.year,
            payload.month,
            payload.quantity,
            admin_id=payload.admin_id,
            notes=payload.notes,
        )
    return StockOut.model_validate(stock)


@router.get("/stock", response_model=StockListOut)
async def stock_list(
    product_type: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> StockListOut:
    rows = await StockLedger(db, settings).list_all(product_type)
    return StockListOut(items=[StockOut.model_validate(s) for s in rows])


# =============================================================================
# Цены
# =============================================================================
@router.post("/pricing", response_model=PricingOut, summary="Переопределить цену товара")
async def pricing_set(
    payload: PriceIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> PricingOut:
    async with db.begin():
        row = await PricingService(db, settings).set_price(
            payload.product_type,
            payload.year,
            payload.month,
            payload.price,
            admin_id=payload.admin_id,
            notes=payload.notes,
        )
    return PricingOut.model_validate(row)


@router.delete("/pricing", response_model=PriceRemovedOut, summary="Снять переопределение (вернуть дефолт)")
async def pricing_delete(
    product_type: str = Query(...),
    year: int = Query(...),
    month: str = Query(...),
    admin_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> PriceRemovedOut:
    async with db.begin():
        price = await PricingService(db, settings).deactivate_price(product_type, year, month, admin_id=admin_id)
    return PriceRemovedOut(effective_price=price)


# =============================================================================
# Каталог
# =============================================================================
@router.post("/catalog", response_model=CatalogYearOut, summary="Создать/обновить каталог (тип, год)")
async def catalog_upsert(
    payload: CatalogIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CatalogYearOut:
    async with db.begin():
        catalog = await CatalogService(db, settings).add_catalog(
            payload.product_type,
            payload.year,
            payload.months,
            admin_id=payload.admin_id,
            description=payload.description,
        )
        out = CatalogYearOut(
            product_type=catalog.product_type,
            year=catalog.year,
            months=catalog.active_months,
            description=catalog.description,
        )
    return out


@router.delete("/catalog", response_model=OkResponse, summary="Выключить каталог (тип, год)")
async def catalog_delete(
    product_type: str = Query(...),
    year: int = Query(...),
    admin_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> OkResponse:
    async with db.begin():
        await CatalogService(db, settings).deactivate_catalog(product_type, year, admin_id=admin_id)
    return OkResponse()


# =============================================================================
# Депозиты
# =============================================================================
@router.get("/deposits/pending", response_model=DepositListOut)
async def deposits_pending(
    limit: int = Depends(list_limit),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DepositListOut:
    rows = await DepositsService(db, settings).list_pending(limit=limit)
    return DepositListOut(items=[DepositOut.model_validate(tx) for tx in rows])


@router.post("/deposits/{tx_id}/decision", response_model=DepositDecisionOut, summary="Подтвердить/отклонить депозит")
async def deposit_decision(
    tx_id: int,
    payload: DepositDecisionIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DepositDecisionOut:
    """
    approve: pending → completed, баланс и total_deposited += amount.
    reject: pending → rejected, баланс без изменений.
    Повторное решение → 409 invalid_state.
    """
    service = DepositsService(db, settings)
    async with db.begin():
        if payload.decision == "approve":
            user, tx = await service.approve(tx_id, payload.admin_id)
        else:
            user, tx = await service.reject(tx_id, payload.admin_id, payload.reason)
    return DepositDecisionOut(deposit=DepositOut.model_validate(tx), balance=user.balance)


# =============================================================================
# Заказы
# =============================================================================
@router.get("/orders", response_model=OrderListOut, summary="Последние заказы (опционально по статусу)")
async def orders_recent(
    status: Optional[str] = Query(None),
    limit: int = Depends(list_limit),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> OrderListOut:
    orders = await OrdersService(db, settings).get_recent_orders(limit=limit, status=status)
    return OrderListOut(items=[OrderOut.model_validate(o) for o in orders])


@router.get("/orders/{order_id}", response_model=OrderOut)
async def order_get(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> OrderOut:
    return OrderOut.model_validate(await OrdersService(db, settings).get_order(order_id))


@router.post("/orders/{order_id}/status", response_model=OrderOut, summary="Смена статуса заказа")
async def order_status(
    order_id: int,
    payload: OrderStatusIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> OrderOut:
    async with db.begin():
        order = await OrdersService(db, settings).update_status(
            order_id, payload.status, notes=payload.notes, admin_id=payload.admin_id
        )
    return OrderOut.model_validate(order)


@router.post("/orders/{order_id}/refund", response_model=RefundOut, summary="Возврат на баланс (полный/частичный)")
async def order_refund(
    order_id: int,
    payload: RefundIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RefundOut:
    async with db.begin():
        result = await OrdersService(db, settings).process_refund(
            order_id, payload.amount, reason=payload.reason, admin_id=payload.admin_id
        )
    return RefundOut(order=OrderOut.model_validate(result.order), amount=result.amount, balance=result.user.balance)


# =============================================================================
# Пользователи
# =============================================================================
@router.post("/users/{telegram_id}/adjust", response_model=BalanceOut, summary="Корректировка баланса (±amount)")
async def user_adjust(
    telegram_id: int,
    payload: BalanceAdjustIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> BalanceOut:
    async with db.begin():
        user, _tx = await WalletLedger(db, settings).adjust_balance(
            telegram_id, payload.amount, payload.admin_id, payload.reason
        )
    return BalanceOut(telegram_id=user.telegram_id, balance=user.balance)


# =============================================================================
# Статистика
# =============================================================================
@router.get("/stats", response_model=StatsOut)
async def stats(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> StatsOut:
    s = await StatsService(db, settings).collect_stats()
    return StatsOut(
        users_total=s.users_total,
        users_blocked=s.users_blocked,
        orders_total=s.orders_total,
        revenue=s.revenue,
        total_deposited=s.total_deposited,
        pending_deposits=s.pending_deposits,
        orders_by_type=s.orders_by_type,
        orders_by_month_year=[MonthCountOut(year=y, month=m, count=c) for y, m, c in s.orders_by_month_year],
        stock_by_type={
            ptype: StockTypeOut(
                total_quantity=row.total_quantity,
                total_initial=row.total_initial,
                total_reserved=row.total_reserved,
                total_sold=row.total_sold,
            )
            for ptype, row in s.stock_by_type.items()
        },
    )


__all__ = ["router"]
