# -*- coding: utf-8 -*-
# groupshop/app/services/deposits_service.py
# =============================================================================
# Назначение кода:
#   Пополнение баланса в USDT с ручной проверкой: пользователь присылает
#   скриншот перевода, создаётся заявка pending, админы получают фото с
#   кнопками Approve / Reject и принимают решение.
#
# Канон/инварианты:
#   • Сумма ≥ MIN_DEPOSIT, сеть только TRC20 / BEP20, доказательство
#     (file_id фото) обязательно.
#   • Баланс меняется только при approve (через WalletLedger).
#   • Уведомления отправляются ПОСЛЕ commit; ошибка доставки одному админу
#     логируется и не прерывает рассылку остальным.
#
# Запреты:
#   • Никакой проверки в блокчейне: решение принимает человек.
# =============================================================================

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Tuple

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from groupshop.app.bot.keyboards import deposit_decision_keyboard
from groupshop.app.core.config_core import Settings, get_settings
from groupshop.app.core.errors_core import NotFoundError, ValidationError
from groupshop.app.core.i18n_core import t
from groupshop.app.core.logging_core import get_logger
from groupshop.app.core.utils_core import escape_html, format_money, money, normalize_network, parse_money
from groupshop.app.crud.user_crud import UserCRUD
from groupshop.app.models import User, WalletTransaction
from groupshop.app.services.wallet_service import WalletLedger

logger = get_logger(__name__)


class DepositsService:
    """Заявки на пополнение: приём, решение админа."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.users = UserCRUD(session)
        self.wallet = WalletLedger(session, self.settings)

    def validate_amount(self, amount: object) -> Decimal:
        """Сумма депозита как Decimal; меньше MIN_DEPOSIT или не число → ValidationError."""
        try:
            value = parse_money(amount)  # type: ignore[arg-type]
        except ValueError:
            raise ValidationError("Amount must be a number with at most 2 decimal places.", details={"amount": str(amount)}) from None
        if value < money(self.settings.MIN_DEPOSIT):
            raise ValidationError(
                f"Minimum deposit is {format_money(self.settings.MIN_DEPOSIT)}.",
                details={"amount": str(value), "min": str(self.settings.MIN_DEPOSIT)},
            )
        return value

    def validate_network(self, network: object) -> str:
        net = normalize_network(str(network) if network is not None else None)
        if net is None:
            raise ValidationError("Unsupported network.", details={"network": str(network)})
        return net

    async def submit_deposit(
        self,
        telegram_id: int,
        amount: object,
        network: object,
        proof_file_id: Optional[str],
        description: Optional[str] = None,
    ) -> Tuple[User, WalletTransaction]:
        value = self.validate_amount(amount)
        net = self.validate_network(network)
        if not proof_file_id:
            raise ValidationError("Payment proof is required.")
        user = await self.users.get_by_telegram(telegram_id)
        if user is None:
            raise NotFoundError("User not found.", details={"telegram_id": telegram_id})

        tx = await self.wallet.create_pending_deposit(
            user,
            value,
            description=description or f"Deposit {value} USDT via {net}",
            network=net,
            proof_file_id=proof_file_id,
        )
        return user, tx

    async def approve(self, transaction_id: int, admin_id: int) -> Tuple[User, WalletTransaction]:
        return await self.wallet.approve_deposit(transaction_id, admin_id)

    async def reject(
        self,
        transaction_id: int,
        admin_id: int,
        reason: Optional[str] = None,
    ) -> Tuple[User, WalletTransaction]:
        return await self.wallet.reject_deposit(transaction_id, admin_id, reason)

    async def list_pending(self, limit: int = 20) -> List[WalletTransaction]:
        return await self.wallet.list_pending_deposits(limit=limit)


# -----------------------------------------------------------------------------
# Уведомления (вызываются после commit)
# -----------------------------------------------------------------------------
def admin_caption(settings: Settings, user: User, tx: WalletTransaction) -> str:
    return t(
        settings.DEFAULT_LANG,
        "deposit_admin_caption",
        user=escape_html(user.display_name),
        telegram_id=user.telegram_id,
        amount=format_money(tx.amount),
        network=tx.network or "-",
        tx_id=tx.id,
    )


async def notify_admins(bot: Bot, settings: Settings, user: User, tx: WalletTransaction) -> int:
    """
    Рассылает заявку всем ADMIN_IDS: фото-доказательство с подписью и кнопками
    решения (или текст, если фото нет). Возвращает число успешных доставок.
    """
    caption = admin_caption(settings, user, tx)
    markup = deposit_decision_keyboard(settings.DEFAULT_LANG, tx.id)
    delivered = 0
    for admin_id in settings.ADMIN_IDS:
        try:
            if tx.proof_file_id:
                await bot.send_photo(admin_id, photo=tx.proof_file_id, caption=caption, reply_markup=markup)
            else:
                await bot.send_message(admin_id, caption, reply_markup=markup)
            delivered += 1
        except TelegramAPIError as exc:
            logger.warning(
                "deposit notification failed",
                extra={"admin_id": admin_id, "tx_id": tx.id, "error": str(exc)},
            )
    logger.info("deposit fan-out done", extra={"tx_id": tx.id, "delivered": delivered})
    return delivered


async def notify_user_decision(
    bot: Bot,
    user: User,
    tx: WalletTransaction,
    approved: bool,
    reason: Optional[str] = None,
) -> bool:
    """Сообщает пользователю о решении по заявке; False при ошибке доставки."""
    if approved:
        text = t(
            user.language,
            "deposit_approved_user",
            amount=format_money(tx.amount),
            balance=format_money(user.balance),
        )
    else:
        text = t(
            user.language,
            "deposit_rejected_user",
            amount=format_money(tx.amount),
            reason=escape_html(reason or "-"),
        )
    try:
        await bot.send_message(user.telegram_id, text)
    except TelegramAPIError as exc:
        logger.warning(
            "deposit decision notification failed",
            extra={"telegram_id": user.telegram_id, "tx_id": tx.id, "error": str(exc)},
        )
        return False
    return True


__all__ = ["DepositsService", "admin_caption", "notify_admins", "notify_user_decision"]
