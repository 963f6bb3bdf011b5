"""Пополнение в USDT: приём заявки, рассылка админам, решение, уведомление."""

from decimal import Decimal

import pytest

from groupshop.app.bot.keyboards import DepositDecisionCb
from groupshop.app.core.errors_core import NotFoundError, ValidationError
from groupshop.app.models import TxStatus
from groupshop.app.services.deposits_service import (
    DepositsService,
    admin_caption,
    notify_admins,
    notify_user_decision,
)

from .conftest import ADMIN_ID, SECOND_ADMIN_ID, FakeBot, build_settings


async def test_submit_creates_pending_deposit(session, settings, make_user):
    user = await make_user(3001, balance="1")

    same_user, tx = await DepositsService(session, settings).submit_deposit(3001, "10", "trc20", "photo-file-id")

    assert same_user is user
    assert tx.status == TxStatus.PENDING
    assert tx.amount == Decimal("10.00")
    assert tx.network == "TRC20"
    assert tx.proof_file_id == "photo-file-id"
    assert tx.description == "Deposit 10.00 USDT via TRC20"
    assert user.balance == Decimal("1.00")


@pytest.mark.parametrize(
    "amount, network, proof",
    [
        ("0.99", "TRC20", "p"),
        ("ten", "TRC20", "p"),
        ("10.009", "TRC20", "p"),
        ("5", "ERC20", "p"),
        ("5", "BEP20", None),
        ("5", "BEP20", ""),
    ],
)
async def test_submit_validation(session, settings, make_user, amount, network, proof):
    await make_user(3002)
    with pytest.raises(ValidationError):
        await DepositsService(session, settings).submit_deposit(3002, amount, network, proof)


async def test_minimum_follows_settings(session):
    service = DepositsService(session, build_settings(MIN_DEPOSIT=Decimal("20")))
    with pytest.raises(ValidationError) as exc_info:
        service.validate_amount("19.99")
    assert "20.00 USDT" in exc_info.value.message
    assert service.validate_amount("20") == Decimal("20.00")


async def test_submit_for_unknown_user(session, settings):
    with pytest.raises(NotFoundError):
        await DepositsService(session, settings).submit_deposit(404, "5", "TRC20", "p")


async def test_approve_and_reject_via_service(session, settings, make_user):
    user = await make_user(3003)
    service = DepositsService(session, settings)
    _, first = await service.submit_deposit(3003, "10", "TRC20", "p1")
    _, second = await service.submit_deposit(3003, "4", "BEP20", "p2")
    assert [tx.id for tx in await service.list_pending()] == [first.id, second.id]

    await service.approve(first.id, ADMIN_ID)
    await service.reject(second.id, ADMIN_ID, "wrong network")

    assert user.balance == Decimal("10.00")
    assert user.total_deposited == Decimal("10.00")
    assert await service.list_pending() == []


async def test_notify_admins_fans_out_and_survives_failures(session, settings, make_user):
    user = await make_user(3004, username="payer")
    _, tx = await DepositsService(session, settings).submit_deposit(3004, "10", "TRC20", "proof-photo")
    bot = FakeBot(failing=[ADMIN_ID])

    delivered = await notify_admins(bot, settings, user, tx)

    assert delivered == 1
    assert bot.send_photo.await_count == 2
    [sent] = bot.sent
    assert sent["chat_id"] == SECOND_ADMIN_ID
    assert sent["photo"] == "proof-photo"
    assert str(tx.id) in sent["caption"]
    assert "3004" in sent["caption"]
    buttons = sent["reply_markup"].inline_keyboard[0]
    assert [b.callback_data for b in buttons] == [f"dep:approve:{tx.id}", f"dep:reject:{tx.id}"]


async def test_notify_admins_without_photo_sends_text(session, settings, make_user):
    user = await make_user(3005)
    tx = await DepositsService(session, settings).wallet.create_pending_deposit(user, Decimal("3"))
    bot = FakeBot()

    assert await notify_admins(bot, settings, user, tx) == 2
    assert {s["kind"] for s in bot.sent} == {"message"}
    assert bot.sent[0]["text"] == admin_caption(settings, user, tx)


async def test_notify_user_decision(session, settings, make_user):
    user = await make_user(3006, language="ru")
    service = DepositsService(session, settings)
    _, tx = await service.submit_deposit(3006, "10", "TRC20", "p")
    user, tx = await service.approve(tx.id, ADMIN_ID)
    bot = FakeBot()

    assert await notify_user_decision(bot, user, tx, approved=True) is True
    assert bot.sent[0]["chat_id"] == 3006
    assert "10.00 USDT" in bot.sent[0]["text"]

    assert await notify_user_decision(FakeBot(failing=[3006]), user, tx, approved=False, reason="<fake>") is False


def test_decision_callback_data_round_trip():
    packed = DepositDecisionCb(action="reject", tx_id=42).pack()
    assert packed == "dep:reject:42"
    unpacked = DepositDecisionCb.unpack(packed)
    assert (unpacked.action, unpacked.tx_id) == ("reject", 42)
