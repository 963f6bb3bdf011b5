"""FSM состояния бота GroupShop.

Данные сценария лежат в FSMContext (MemoryStorage): ключи перечислены
в докстрингах групп, суммы хранятся строкой, чтобы не терять Decimal.
"""

from __future__ import annotations

from aiogram.fsm.state import State, StatesGroup


class DepositStates(StatesGroup):
    """Пополнение: сумма → сеть → доказательство (data: amount, network)."""

    amount: State = State()
    network: State = State()
    proof: State = State()


class CheckoutStates(StatesGroup):
    """Покупка: тип → год → месяц → количество → получатель → подтверждение.

    data: product_type, year, month, price, available, quantity, target_username.
    """

    product_type: State = State()
    year: State = State()
    month: State = State()
    quantity: State = State()
    target_username: State = State()
    confirm: State = State()


class SupportStates(StatesGroup):
    """Чат поддержки (data: started_at, last_message_at в ISO-8601)."""

    active: State = State()


class AdminStates(StatesGroup):
    """Причина отклонения депозита (data: tx_id)."""

    reject_reason: State = State()
