"""
Бот: middleware (ошибки, сессия, пользователь, подписка), проверка каналов,
поддержка, уведомления, фильтры и клавиатуры.

Апдейты Telegram собираются из моделей aiogram, Bot заменён FakeBot.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from aiogram.types import Chat, Message, Update, User as TgUser
from sqlalchemy import select

from groupshop.app.bot.filters import ButtonText, IsAdmin, MenuButton
from groupshop.app.bot.keyboards import (
    CHECK_MEMBERSHIP,
    ProductMonthCb,
    deposit_amounts_keyboard,
    main_menu_keyboard,
    months_keyboard,
    order_cancel_keyboard,
)
from groupshop.app.bot.middlewares import (
    ChannelGateMiddleware,
    DbSessionMiddleware,
    SafeMiddleware,
    UserMiddleware,
)
from groupshop.app.bot.notify import broadcast, send_safe
from groupshop.app.core.config_core import RequiredChannel
from groupshop.app.core.errors_core import InsufficientFundsError
from groupshop.app.core.i18n_core import t
from groupshop.app.models import User
from groupshop.app.services.channels_service import check_membership
from groupshop.app.services.support_service import forward_to_admins, is_expired, relay_reply

from .conftest import ADMIN_ID, SECOND_ADMIN_ID, FakeBot, build_settings

NEWS = RequiredChannel(id="@news", title="News", invite_link="https://t.me/news")
CHAT = RequiredChannel(id="-1001234", title="Chat", invite_link="https://t.me/+chat")


def message_update(telegram_id: int, text: str) -> Update:
    return Update(
        update_id=1,
        message=Message(
            message_id=10,
            date=datetime.now(tz=timezone.utc),
            chat=Chat(id=telegram_id, type="private"),
            from_user=TgUser(id=telegram_id, is_bot=False, first_name="Test"),
            text=text,
        ),
    )


def tg_user(telegram_id: int, **fields):
    fields.setdefault("username", "tester")
    fields.setdefault("first_name", "Test")
    fields.setdefault("last_name", None)
    fields.setdefault("language_code", "en")
    return SimpleNamespace(id=telegram_id, is_bot=False, **fields)


class Recorder:
    """Хендлер-заглушка: запоминает data и возвращает 'handled'."""

    def __init__(self) -> None:
        self.calls = []

    async def __call__(self, event, data):
        self.calls.append(dict(data))
        return "handled"


# ---------------------------------------------------------------------------
# SafeMiddleware
# ---------------------------------------------------------------------------
async def test_safe_middleware_answers_with_error_code():
    bot = FakeBot()
    data = {"bot": bot, "event_chat": SimpleNamespace(id=55), "lang": "en"}

    async def handler(event, data):
        raise InsufficientFundsError()

    assert await SafeMiddleware()(handler, SimpleNamespace(), data) is None
    assert bot.sent[0]["text"] == t("en", "error_insufficient_funds")


async def test_safe_middleware_hides_unexpected_errors():
    bot = FakeBot()
    data = {"bot": bot, "event_chat": SimpleNamespace(id=55), "lang": "ru"}

    async def handler(event, data):
        raise RuntimeError("database exploded")

    assert await SafeMiddleware()(handler, SimpleNamespace(), data) is None
    assert bot.sent[0]["text"] == t("ru", "error_occurred")


# ---------------------------------------------------------------------------
# DbSessionMiddleware
# ---------------------------------------------------------------------------
async def test_db_session_commits_on_success(session_factory):
    async def handler(event, data):
        data["session"].add(User(telegram_id=5001, language="en"))
        return "ok"

    assert await DbSessionMiddleware(session_factory)(handler, SimpleNamespace(), {}) == "ok"

    async with session_factory() as s:
        assert await s.scalar(select(User).where(User.telegram_id == 5001)) is not None


async def test_db_session_rolls_back_on_error(session_factory):
    async def handler(event, data):
        data["session"].add(User(telegram_id=5002, language="en"))
        await data["session"].flush()
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await DbSessionMiddleware(session_factory)(handler, SimpleNamespace(), {})

    async with session_factory() as s:
        assert await s.scalar(select(User).where(User.telegram_id == 5002)) is None


# ---------------------------------------------------------------------------
# UserMiddleware
# ---------------------------------------------------------------------------
async def test_user_middleware_registers_and_sets_language(session, settings):
    handler = Recorder()
    data = {"event_from_user": tg_user(5101, language_code="zh"), "session": session, "settings": settings}

    assert await UserMiddleware()(handler, SimpleNamespace(), data) == "handled"

    seen = handler.calls[0]
    assert seen["user_created"] is True
    assert seen["user"].telegram_id == 5101
    assert seen["lang"] == "zh"

    await UserMiddleware()(handler, SimpleNamespace(), dict(data))
    assert handler.calls[1]["user_created"] is False


async def test_user_middleware_stops_blocked_user(session, settings, make_user):
    user = await make_user(5102)
    user.is_blocked = True
    await session.flush()
    bot = FakeBot()
    handler = Recorder()
    data = {
        "event_from_user": tg_user(5102),
        "session": session,
        "settings": settings,
        "bot": bot,
        "event_chat": SimpleNamespace(id=5102),
    }

    assert await UserMiddleware()(handler, SimpleNamespace(), data) is None
    assert handler.calls == []
    assert bot.sent[0]["text"] == t("en", "user_blocked")


async def test_user_middleware_without_sender(settings):
    handler = Recorder()
    await UserMiddleware()(handler, SimpleNamespace(), {"settings": settings})
    assert handler.calls[0]["lang"] == settings.DEFAULT_LANG


# ---------------------------------------------------------------------------
# ChannelGateMiddleware
# ---------------------------------------------------------------------------
async def _gate(session, user, bot, text):
    settings = build_settings(REQUIRED_CHANNELS=[NEWS.model_dump()])
    handler = Recorder()
    data = {
        "settings": settings,
        "user": user,
        "session": session,
        "bot": bot,
        "lang": "en",
        "event_chat": SimpleNamespace(id=user.telegram_id),
    }
    result = await ChannelGateMiddleware()(handler, message_update(user.telegram_id, text), data)
    return result, handler


async def test_gate_blocks_until_subscribed(session, make_user):
    user = await make_user(5201)
    bot = FakeBot(statuses={"@news": "left"})

    result, handler = await _gate(session, user, bot, "/wallet")

    assert result is None
    assert handler.calls == []
    sent = bot.sent[0]
    assert sent["text"] == t("en", "join_channels")
    rows = sent["reply_markup"].inline_keyboard
    assert rows[0][0].url == NEWS.invite_link
    assert rows[-1][0].callback_data == CHECK_MEMBERSHIP
    assert user.joined_channels is False


async def test_gate_passes_members_and_remembers(session, make_user):
    user = await make_user(5202)
    bot = FakeBot(statuses={"@news": "member"})

    result, handler = await _gate(session, user, bot, "/shop")

    assert result == "handled"
    assert user.joined_channels is True


async def test_gate_lets_start_through(session, make_user):
    user = await make_user(5203)
    result, _ = await _gate(session, user, FakeBot(), "/start")
    assert result == "handled"


async def test_check_membership_statuses():
    bot = FakeBot(statuses={"@news": "administrator", "-1001234": "kicked"})
    assert await check_membership(bot, 1, [NEWS, CHAT]) == [CHAT]

    # ошибка Bot API трактуется как «не подписан»
    assert await check_membership(FakeBot(), 1, [NEWS]) == [NEWS]


# ---------------------------------------------------------------------------
# Поддержка
# ---------------------------------------------------------------------------
def test_support_session_expiry():
    now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    started = now - timedelta(hours=2)

    assert is_expired(started, now - timedelta(minutes=59), now, 3600) is False
    assert is_expired(started, now - timedelta(minutes=60), now, 3600) is True
    assert is_expired(started, None, now, 3600) is True
    assert is_expired(None, None, now, 3600) is True
    # naive datetime из SQLite считается UTC
    assert is_expired(now.replace(tzinfo=None) - timedelta(seconds=10), None, now, 3600) is False


async def test_forward_to_admins_and_reply(session, settings, make_user):
    user = await make_user(5301, language="ru")
    bot = FakeBot(failing=[ADMIN_ID])
    message = SimpleNamespace(chat=SimpleNamespace(id=5301), message_id=77)

    assert await forward_to_admins(bot, settings, user, message) == 1
    kinds = [(s["kind"], s["chat_id"]) for s in bot.sent]
    assert kinds == [("message", SECOND_ADMIN_ID), ("copy", SECOND_ADMIN_ID)]
    assert "/reply 5301" in bot.sent[0]["text"]

    assert await relay_reply(bot, user, "<b>hi</b>") is True
    assert "&lt;b&gt;hi&lt;/b&gt;" in bot.sent[-1]["text"]
    assert await relay_reply(FakeBot(failing=[5301]), user, "hi") is False


# ---------------------------------------------------------------------------
# Уведомления
# ---------------------------------------------------------------------------
async def test_send_safe_and_broadcast():
    bot = FakeBot(failing=[2])
    assert await send_safe(bot, 1, "hello") is True
    assert await send_safe(bot, 2, "hello") is False
    assert await broadcast(bot, [1, 2, 3], "news") == 2


# ---------------------------------------------------------------------------
# Фильтры и клавиатуры
# ---------------------------------------------------------------------------
async def test_filters():
    assert await ButtonText("wallet_button")(SimpleNamespace(text=t("ru", "wallet_button"))) is True
    assert await ButtonText("wallet_button")(SimpleNamespace(text="wallet")) is False
    assert await MenuButton()(SimpleNamespace(text="/cancel")) is True
    assert await MenuButton()(SimpleNamespace(text="my_channel")) is False
    assert await IsAdmin()(SimpleNamespace(), user=SimpleNamespace(is_admin=True)) is True
    assert await IsAdmin()(SimpleNamespace(), user=None) is False


def test_main_menu_statistics_only_for_admins():
    def texts(markup):
        return [b.text for row in markup.keyboard for b in row]

    assert t("en", "statistics_button") in texts(main_menu_keyboard("en", is_admin=True))
    assert t("en", "statistics_button") not in texts(main_menu_keyboard("en"))


def test_shop_and_wallet_keyboards():
    markup = months_keyboard("en", "group", 2024, ["January", "February"])
    data = markup.inline_keyboard[0][0].callback_data
    assert data == "pmonth:group:2024:January"
    assert ProductMonthCb.unpack(data).year == 2024

    amounts = deposit_amounts_keyboard("en", [Decimal("1"), Decimal("10"), Decimal("50")])
    assert [b.text for b in amounts.inline_keyboard[0]] == ["1.00 USDT", "10.00 USDT"]
    assert amounts.inline_keyboard[2][0].callback_data == "depamt:custom"

    assert order_cancel_keyboard("en", []) is None
    assert order_cancel_keyboard("en", [7]).inline_keyboard[0][0].callback_data == "ocancel:7"
