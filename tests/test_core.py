"""Ядро: настройки, утилиты, нормализация ошибок, i18n, стартовые проверки."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi import HTTPException
from pydantic import ValidationError as SettingsError

from groupshop.app.core import boot_core, core_health
from groupshop.app.core.errors_core import (
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
    normalize_exception,
)
from groupshop.app.core.i18n_core import all_translations, normalize_lang, t
from groupshop.app.core.system_locks import LockViolation, assert_shop_canon, ensure_user_non_negative_after
from groupshop.app.core.utils_core import (
    append_note,
    decimal_from,
    format_money,
    money,
    parse_money,
    normalize_month,
    normalize_network,
    normalize_product_type,
    normalize_username,
    parse_months,
    split_long_message,
)

from .conftest import build_settings


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
def test_csv_and_json_settings():
    settings = build_settings(
        ADMIN_IDS="5, 6,5",
        SUPPORTED_LANGS="RU,en",
        PREDEFINED_AMOUNTS="10,20",
        REQUIRED_CHANNELS='[{"id": -1001, "title": "Main", "invite_link": "https://t.me/+main"}]',
    )

    assert settings.ADMIN_IDS == [5, 6]
    assert settings.is_admin(6) and not settings.is_admin(7)
    assert settings.SUPPORTED_LANGS == ["ru", "en"]
    assert settings.PREDEFINED_AMOUNTS == [Decimal("10"), Decimal("20")]
    assert settings.REQUIRED_CHANNELS[0].id == "-1001"


@pytest.mark.parametrize(
    "field, value",
    [
        ("ADMIN_IDS", "1,two"),
        ("DEFAULT_PRICE_GROUP", "0"),
        ("MIN_DEPOSIT", "-1"),
        ("PREDEFINED_AMOUNTS", "10,0"),
        ("DEFAULT_LANG", "fr"),
    ],
)
def test_bad_settings_are_rejected(field, value):
    with pytest.raises(SettingsError):
        build_settings(**{field: value})


def test_settings_helpers():
    settings = build_settings(DATABASE_URL="postgres://u:p@db/shop")
    assert settings.database_url_asyncpg() == "postgresql+asyncpg://u:p@db/shop"
    assert build_settings().database_url_asyncpg() == "sqlite+aiosqlite://"

    assert settings.default_price("channel") == Decimal("7")
    assert settings.default_price("group") == Decimal("5")
    assert settings.deposit_address("BEP20") == "0xTestBep20Address"

    hook = build_settings(WEBHOOK_ENABLED=True, WEBHOOK_BASE_URL="https://shop.example/", TELEGRAM_WEBHOOK_PATH="tg")
    assert hook.build_tg_webhook_url() == "https://shop.example/tg"
    assert build_settings().build_tg_webhook_url() is None


# ---------------------------------------------------------------------------
# Утилиты
# ---------------------------------------------------------------------------
def test_money_helpers():
    assert money("12,345") == Decimal("12.34")
    assert money(1) == Decimal("1.00")
    assert format_money("3.5") == "3.50 USDT"
    assert parse_money("10,5") == Decimal("10.50")
    assert parse_money("10.000") == Decimal("10.00")
    with pytest.raises(ValueError):
        parse_money("10.009")
    with pytest.raises(ValueError):
        decimal_from("abc")
    with pytest.raises(ValueError):
        decimal_from("NaN")


def test_normalizers():
    assert normalize_month("jan") == "January"
    assert normalize_month("12") == "December"
    assert normalize_month("13") is None
    assert normalize_month("ja") is None
    assert normalize_product_type("Groups") == "group"
    assert normalize_product_type("gift") is None
    assert normalize_network(" trc20 ") == "TRC20"
    assert normalize_network("erc20") is None
    assert normalize_username("https://t.me/somebody") == "somebody"
    assert normalize_username("@ ") is None
    assert normalize_username("two words") is None


def test_parse_months():
    assert parse_months("Mar, jan mar") == ["January", "March"]
    assert parse_months(["dec", "1"]) == ["January", "December"]
    assert len(parse_months("ALL")) == 12
    assert parse_months(None) == []
    with pytest.raises(ValueError):
        parse_months("jan,foo")


def test_append_note():
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    first = append_note(None, "paid", now=now)
    assert first == "[2024-05-01T00:00:00+00:00] paid"
    assert append_note(first, "  ") == first
    assert append_note(first, "sent", now=now).splitlines()[1].endswith("sent")


def test_split_long_message():
    text = "\n".join(f"line {i}" for i in range(50))
    parts = split_long_message(text, max_length=40)
    assert all(len(p) <= 40 for p in parts)
    assert "\n".join(parts) == text
    assert split_long_message("x" * 90, max_length=40) == ["x" * 40, "x" * 40, "x" * 10]


# ---------------------------------------------------------------------------
# Ошибки
# ---------------------------------------------------------------------------
def test_normalize_exception():
    status_code, payload = normalize_exception(InsufficientStockError(details={"available": 1}))
    assert status_code == 409
    assert payload["error"] == "insufficient_stock"
    assert payload["details"] == {"available": 1}

    assert normalize_exception(ProductNotFoundError())[0] == 404
    assert normalize_exception(ValidationError("bad"))[1]["message"] == "bad"
    assert normalize_exception(LockViolation("x")) == (
        500,
        {"error": "lock_violation", "message": "Internal invariant violated."},
    )
    assert normalize_exception(HTTPException(status_code=403, detail="nope")) == (
        403,
        {"error": "http_error", "message": "nope"},
    )
    assert normalize_exception(KeyError("secret")) == (
        500,
        {"error": "internal_error", "message": "Internal server error."},
    )


# ---------------------------------------------------------------------------
# i18n
# ---------------------------------------------------------------------------
def test_translation_fallbacks():
    assert normalize_lang("ru-RU") == "ru"
    assert normalize_lang(None) == "en"
    assert normalize_lang("de") == "en"
    assert t("de", "error_not_found") == t("en", "error_not_found")
    assert t("ru", "no_such_key") == "no_such_key"
    assert t("en", "error_validation_error", message="bad month") == "❌ Invalid data: bad month"
    # неизвестный плейсхолдер остаётся как есть
    assert "{message}" in t("en", "error_validation_error", other=1)
    assert len(all_translations("wallet_button")) > 1


# ---------------------------------------------------------------------------
# Стартовые проверки
# ---------------------------------------------------------------------------
def test_shop_canon_and_health():
    assert assert_shop_canon(build_settings()) == []

    warnings = assert_shop_canon(build_settings(ADMIN_IDS=[], USDT_ADDRESS_BEP20=""))
    assert len(warnings) == 2

    health = core_health(build_settings(BOT_TOKEN=""))
    assert health["ok"] is False
    assert "BOT_TOKEN must be set." in health["errors"]

    report = boot_core(build_settings())
    assert report["locks"]["ok"] is True
    assert report["health"]["ok"] is True

    with pytest.raises(LockViolation):
        ensure_user_non_negative_after(Decimal("1"), Decimal("-2"))
