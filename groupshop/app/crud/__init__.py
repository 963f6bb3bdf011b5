"""GroupShop Bot CRUD facade.

======================================================================
Назначение модуля:
    • Экспортировать CRUD-классы для доменных таблиц магазина (users,
      wallet_transactions, orders, stock/pricing/catalogs).
    • Не содержит бизнес-логики и не меняет балансы — только доступ к БД.

Канон/инварианты:
    • Денежные движения выполняются только в wallet_service.
    • Курсоры вместо OFFSET.
======================================================================
"""

from groupshop.app.crud.order_crud import OrderCRUD
from groupshop.app.crud.shop_crud import ShopCRUD
from groupshop.app.crud.transactions_crud import TransactionsCRUD
from groupshop.app.crud.user_crud import UserCRUD

__all__ = [
    "OrderCRUD",
    "ShopCRUD",
    "TransactionsCRUD",
    "UserCRUD",
]
