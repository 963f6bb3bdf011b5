"""Кошелёк-леджер: заявки на пополнение, решения админа, корректировки."""

from decimal import Decimal

import pytest

from groupshop.app.core.errors_core import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from groupshop.app.models import TxKind, TxStatus
from groupshop.app.services.wallet_service import WalletLedger

from .conftest import ADMIN_ID


async def test_approve_pending_deposit_credits_balance(session, settings, make_user):
    user = await make_user(1001, balance="2.50")
    ledger = WalletLedger(session, settings)

    tx = await ledger.create_pending_deposit(user, Decimal("10"), network="TRC20", proof_file_id="photo-1")
    assert tx.status == TxStatus.PENDING
    assert user.balance == Decimal("2.50")

    user, tx = await ledger.approve_deposit(tx.id, ADMIN_ID)

    assert tx.status == TxStatus.COMPLETED
    assert user.balance == Decimal("12.50")
    assert user.total_deposited == Decimal("10.00")
    assert tx.balance_before == Decimal("2.50")
    assert tx.balance_after == Decimal("12.50")
    assert tx.resolved_by == ADMIN_ID
    assert tx.resolved_at is not None


async def test_reject_keeps_balance_and_records_reason(session, settings, make_user):
    user = await make_user(1002, balance="3")
    ledger = WalletLedger(session, settings)
    tx = await ledger.create_pending_deposit(user, Decimal("5"), description="Deposit 5 USDT")

    user, tx = await ledger.reject_deposit(tx.id, ADMIN_ID, "screenshot is unreadable")

    assert tx.status == TxStatus.REJECTED
    assert user.balance == Decimal("3.00")
    assert user.total_deposited == Decimal("0")
    assert "Rejected: screenshot is unreadable" in tx.description


async def test_second_decision_is_invalid_state(session, settings, make_user):
    user = await make_user(1003)
    ledger = WalletLedger(session, settings)
    tx = await ledger.create_pending_deposit(user, Decimal("10"))
    await ledger.approve_deposit(tx.id, ADMIN_ID)

    with pytest.raises(InvalidStateError):
        await ledger.approve_deposit(tx.id, ADMIN_ID)
    with pytest.raises(InvalidStateError):
        await ledger.reject_deposit(tx.id, ADMIN_ID, "late")

    assert user.balance == Decimal("10.00")


async def test_decision_on_missing_transaction(session, settings):
    with pytest.raises(NotFoundError):
        await WalletLedger(session, settings).approve_deposit(424242, ADMIN_ID)


async def test_decision_on_non_deposit_transaction(session, settings, make_user):
    user = await make_user(1004, balance="10")
    ledger = WalletLedger(session, settings)
    purchase = await ledger.apply_transaction(user, TxKind.PURCHASE, Decimal("4"))

    with pytest.raises(InvalidStateError):
        await ledger.approve_deposit(purchase.id, ADMIN_ID)
    assert user.balance == Decimal("6.00")


async def test_apply_transaction_updates_totals(session, settings, make_user):
    user = await make_user(1005, balance="20")
    ledger = WalletLedger(session, settings)

    purchase = await ledger.apply_transaction(user, TxKind.PURCHASE, Decimal("7"))
    refund = await ledger.apply_transaction(user, TxKind.REFUND, Decimal("2"))

    assert purchase.status == TxStatus.COMPLETED
    assert (purchase.balance_before, purchase.balance_after) == (Decimal("20.00"), Decimal("13.00"))
    assert refund.balance_after == Decimal("15.00")
    assert user.total_spent == Decimal("5.00")


@pytest.mark.parametrize("amount", ["0", "-1"])
async def test_apply_transaction_rejects_non_positive(session, settings, make_user, amount):
    user = await make_user(1006, balance="5")
    with pytest.raises(ValidationError):
        await WalletLedger(session, settings).apply_transaction(user, TxKind.DEPOSIT, Decimal(amount))


async def test_pending_deposit_requires_positive_amount(session, settings, make_user):
    user = await make_user(1007)
    with pytest.raises(ValidationError):
        await WalletLedger(session, settings).create_pending_deposit(user, Decimal("0"))


async def test_adjust_balance_credit_and_debit(session, settings, make_user):
    await make_user(1008, balance="5")
    ledger = WalletLedger(session, settings)

    user, tx = await ledger.adjust_balance(1008, Decimal("3"), ADMIN_ID, "bonus")
    assert user.balance == Decimal("8.00")
    assert tx.kind == TxKind.ADMIN_ADJUSTMENT
    assert tx.reference == f"admin:{ADMIN_ID}"

    user, tx = await ledger.adjust_balance(1008, Decimal("-8"), ADMIN_ID)
    assert user.balance == Decimal("0.00")
    assert tx.amount == Decimal("-8.00")


async def test_adjust_balance_cannot_go_negative(session, settings, make_user):
    await make_user(1009, balance="2")
    ledger = WalletLedger(session, settings)

    with pytest.raises(InsufficientFundsError):
        await ledger.adjust_balance(1009, Decimal("-3"), ADMIN_ID)
    with pytest.raises(ValidationError):
        await ledger.adjust_balance(1009, Decimal("0"), ADMIN_ID)
    with pytest.raises(NotFoundError):
        await ledger.adjust_balance(555, Decimal("1"), ADMIN_ID)


async def test_history_and_pending_queue(session, settings, make_user):
    user = await make_user(1010, balance="10")
    ledger = WalletLedger(session, settings)
    first = await ledger.create_pending_deposit(user, Decimal("1"))
    second = await ledger.create_pending_deposit(user, Decimal("2"))
    await ledger.apply_transaction(user, TxKind.PURCHASE, Decimal("1"))
    await ledger.approve_deposit(second.id, ADMIN_ID)

    pending = await ledger.list_pending_deposits()
    assert [tx.id for tx in pending] == [first.id]

    history = await ledger.list_transactions(user, limit=10)
    assert len(history) == 3
    assert {tx.kind for tx in history} == {TxKind.DEPOSIT, TxKind.PURCHASE}
