# -*- coding: utf-8 -*-
# groupshop/app/core/i18n_core.py
# =============================================================================
# Назначение кода:
#   Локализация сообщений бота GroupShop: словари текстов по языкам,
#   функция t(lang, key, **params) и описания команд для setMyCommands.
#
# Канон/инварианты:
#   • Английский (en) — полный базовый словарь; ru — полный перевод.
#   • id / zh / uz переводят основные экраны, остальное берётся из en.
#   • Неизвестный ключ возвращается как есть (видно в UI и логах).
#   • Подстановки — str.format: {balance}, {amount} и т.д.; отсутствующий
#     параметр остаётся в тексте в фигурных скобках.
#
# Запреты:
#   • Никаких обращений к БД/сети: только чистые функции.
# =============================================================================

from __future__ import annotations

from typing import Dict, List, Tuple

from groupshop.app.core.config_core import LANGUAGE_TITLES
from groupshop.app.core.logging_core import get_logger

logger = get_logger(__name__)

FALLBACK_LANG = "en"


class _SafeDict(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


_EN: Dict[str, str] = {
    # --- общее ---
    "error_occurred": "⚠️ Something went wrong. Please try again later.",
    "error_not_found": "❌ Not found.",
    "error_product_not_found": "❌ This product is not available.",
    "error_invalid_state": "❌ This action is not possible right now.",
    "error_insufficient_funds": "❌ Insufficient balance. Please top up your wallet.",
    "error_insufficient_stock": "❌ Not enough stock for this product.",
    "error_insufficient_reserved": "❌ Not enough reserved stock.",
    "error_validation_error": "❌ Invalid data: {message}",
    "user_blocked": "⛔ Your account is blocked. Contact support.",
    "admin_only": "⛔ This command is for admins only.",
    "action_cancelled": "Cancelled.",
    "nothing_to_cancel": "Nothing to cancel.",
    "cancel_button": "❌ Cancel",
    "back_button": "⬅️ Back",
    "confirm_button": "✅ Confirm",
    # --- главное меню ---
    "wallet_button": "💰 Wallet",
    "shop_button": "🛒 Shop",
    "orders_button": "📦 My orders",
    "statistics_button": "📊 Statistics",
    "ready_accounts_button": "🎁 Ready accounts",
    "support_button": "🆘 Support",
    "settings_button": "⚙️ Settings",
    "welcome": (
        "👋 Welcome, {name}!\n\n"
        "Here you can buy Telegram groups and channels by month and year.\n"
        "Top up your wallet with USDT and place an order in the shop."
    ),
    "help": (
        "ℹ️ <b>Commands</b>\n"
        "/wallet — balance and top up\n"
        "/shop — buy groups and channels\n"
        "/orders — your orders\n"
        "/support — chat with support\n"
        "/settings — language\n"
        "/cancel — cancel the current action"
    ),
    "ready_accounts_text": "🎁 Ready accounts are sold directly by the admin: {link}",
    # --- каналы ---
    "join_channels": "📢 To use the bot, please join our channels:",
    "check_membership_button": "✅ I have joined",
    "channels_ok": "✅ Thank you! Access granted.",
    "channels_missing": "❌ You have not joined all channels yet.",
    # --- кошелёк ---
    "wallet_info": (
        "💰 <b>Your wallet</b>\n\n"
        "Balance: <b>{balance}</b>\n"
        "Total deposited: {deposited}\n"
        "Total spent: {spent}\n"
        "Orders: {orders}"
    ),
    "topup_button": "➕ Top up USDT",
    "history_button": "📜 Transaction history",
    "select_deposit_amount": "Select the amount to deposit:",
    "custom_amount_button": "✏️ Custom amount",
    "enter_custom_amount": "Enter the amount in USDT (minimum {min}):",
    "invalid_deposit_amount": "❌ Invalid amount. Minimum deposit is {min}.",
    "select_network": "Select the network for the USDT transfer:",
    "network_not_configured": "❌ Deposits via {network} are not available right now.",
    "deposit_instructions": (
        "💳 Send <b>{amount}</b> to the address below.\n\n"
        "🔹 <b>{network}</b>\n<code>{address}</code>\n\n"
        "After the transfer, press the button and send a screenshot of the payment."
    ),
    "send_proof_button": "📤 Send payment proof",
    "send_deposit_proof": "📸 Send a screenshot of the payment as a photo.",
    "proof_must_be_photo": "❌ Please send the payment proof as a photo.",
    "deposit_proof_received": "✅ Payment proof received. Your deposit #{tx_id} is waiting for admin approval.",
    "deposit_cancelled": "Deposit cancelled.",
    "deposit_approved_user": "✅ Your deposit of {amount} has been approved. New balance: {balance}.",
    "deposit_rejected_user": "❌ Your deposit of {amount} has been rejected.\nReason: {reason}",
    "no_transactions": "You have no transactions yet.",
    "transaction_history_title": "📜 <b>Last transactions</b>",
    "tx_deposit": "Deposit",
    "tx_purchase": "Purchase",
    "tx_refund": "Refund",
    "tx_admin_adjustment": "Adjustment",
    "tx_status_pending": "⏳ pending",
    "tx_status_completed": "✅ completed",
    "tx_status_cancelled": "🚫 cancelled",
    "tx_status_rejected": "❌ rejected",
    "balance_adjusted_user": "ℹ️ Your balance was adjusted by {amount}. New balance: {balance}.",
    # --- магазин ---
    "no_products_available": "😔 No products are available right now.",
    "choose_type": "🛒 What would you like to buy?",
    "type_group": "👥 Groups",
    "type_channel": "📢 Channels",
    "choose_year": "📅 Choose the year:",
    "choose_month": "🗓 Choose the month:",
    "product_info": (
        "📦 <b>{type} {month} {year}</b>\n"
        "Price: {price} per unit\n"
        "In stock: {stock}"
    ),
    "out_of_stock": "😔 This product is out of stock.",
    "enter_quantity": "How many do you want to buy? (1 to {max})",
    "invalid_quantity": "❌ Enter a whole number from 1 to {max}.",
    "enter_target_username": "Send the Telegram username that should receive the purchase (for example @username):",
    "invalid_username": "❌ Invalid username. Send it like @username.",
    "checkout_confirm": (
        "🧾 <b>Order summary</b>\n\n"
        "Product: {type} {month} {year}\n"
        "Quantity: {quantity}\n"
        "Price per unit: {price}\n"
        "Total: <b>{total}</b>\n"
        "Recipient: @{username}\n\n"
        "Your balance: {balance}"
    ),
    "order_created": "✅ Order #{order_id} created. {total} was debited from your balance.\nAn admin will deliver it soon.",
    "checkout_cancelled": "Checkout cancelled.",
    # --- заказы ---
    "no_orders": "You have no orders yet.",
    "orders_title": "📦 <b>Your orders</b>",
    "order_line": "#{id} · {type} {month} {year} × {quantity} · {total} · {status} · {date}",
    "order_status_pending": "⏳ pending",
    "order_status_processing": "🔄 processing",
    "order_status_completed": "✅ completed",
    "order_status_cancelled": "🚫 cancelled",
    "order_status_refunded": "↩️ refunded",
    "cancel_order_button": "🚫 Cancel order #{id}",
    "order_cancelled_user": "🚫 Order #{id} was cancelled. {amount} returned to your balance.",
    "order_status_changed_user": "ℹ️ Order #{id} status: {status}",
    "order_refunded_user": "↩️ Refund for order #{id}: {amount} returned to your balance.",
    # --- настройки ---
    "settings_title": "⚙️ <b>Settings</b>\nLanguage: {language}",
    "choose_language": "🌐 Choose your language:",
    "language_changed": "✅ Language changed to {language}.",
    # --- поддержка ---
    "support_started": "🆘 Support chat is open. Write your message; it will be forwarded to the admins.\nThe chat closes after {minutes} minutes of inactivity or with /cancel.",
    "support_forwarded": "📨 Sent to support.",
    "support_ended": "Support chat closed.",
    "support_timeout": "⌛ Support chat closed due to inactivity.",
    "support_reply": "💬 <b>Support:</b>\n{text}",
    "support_admin_header": "🆘 Support message from {user} (<code>{telegram_id}</code>)\nReply: <code>/reply {telegram_id} text</code>",
    # --- админ ---
    "admin_panel": (
        "🛠 <b>Admin panel</b>\n\n"
        "/stats — statistics\n"
        "/deposits — pending deposits\n"
        "/recent [n] — recent orders\n"
        "/order &lt;id&gt; — order details\n"
        "/setstatus &lt;id&gt; &lt;status&gt; [notes]\n"
        "/refund &lt;id&gt; &lt;amount&gt; [reason]\n"
        "/stock [type] — stock list\n"
        "/addstock &lt;type&gt; &lt;year&gt; &lt;month&gt; &lt;qty&gt; [notes]\n"
        "/setstock &lt;type&gt; &lt;year&gt; &lt;month&gt; &lt;qty&gt; [notes]\n"
        "/prices — active prices\n"
        "/setprice &lt;type&gt; &lt;year&gt; &lt;month&gt; &lt;price&gt; [notes]\n"
        "/delprice &lt;type&gt; &lt;year&gt; &lt;month&gt;\n"
        "/addcatalog &lt;type&gt; &lt;year&gt; &lt;months|all&gt; [description]\n"
        "/updatecatalog &lt;type&gt; &lt;year&gt; &lt;months|all&gt;\n"
        "/delcatalog &lt;type&gt; &lt;year&gt;\n"
        "/adjust &lt;telegram_id&gt; &lt;amount&gt; [reason]\n"
        "/block &lt;telegram_id&gt; · /unblock &lt;telegram_id&gt;\n"
        "/reply &lt;telegram_id&gt; &lt;text&gt;"
    ),
    "usage": "Usage: {usage}",
    "stats_text": (
        "📊 <b>Statistics</b>\n\n"
        "Users: {users} (blocked: {blocked})\n"
        "Orders: {orders}\n"
        "Revenue: {revenue}\n"
        "Deposited: {deposited}\n"
        "Pending deposits: {pending}\n\n"
        "<b>Orders by type</b>\n{by_type}\n\n"
        "<b>Orders by month</b>\n{by_month}\n\n"
        "<b>Stock</b>\n{stock}"
    ),
    "deposit_admin_caption": (
        "💰 <b>New deposit request</b>\n\n"
        "User: {user}\n"
        "Telegram ID: <code>{telegram_id}</code>\n"
        "Amount: <b>{amount}</b>\n"
        "Network: <b>{network}</b>\n"
        "Transaction ID: <code>{tx_id}</code>"
    ),
    "approve_button": "✅ Approve",
    "reject_button": "❌ Reject",
    "deposit_approved_admin": "✅ Deposit #{tx_id} approved. User balance: {balance}.",
    "deposit_rejected_admin": "❌ Deposit #{tx_id} rejected.",
    "enter_reject_reason": "✏️ Send the rejection reason for deposit #{tx_id}:",
    "no_pending_deposits": "No pending deposits.",
    "pending_deposit_line": "#{tx_id} · {telegram_id} · {amount} · {network} · {date}",
    "stock_line": "{type} {month} {year}: {quantity} available, {reserved} reserved, {sold} sold",
    "stock_empty": "Stock is empty.",
    "stock_updated": "✅ Stock {type} {month} {year}: {quantity} available.",
    "price_line": "{type} {month} {year}: {price}",
    "prices_empty": "No price overrides. Defaults: group {group}, channel {channel}.",
    "price_updated": "✅ Price {type} {month} {year}: {price}.",
    "price_removed": "✅ Price override removed. Effective price: {price}.",
    "catalog_updated": "✅ Catalog {type} {year}: {months}.",
    "catalog_removed": "✅ Catalog {type} {year} deactivated.",
    "order_details": (
        "🧾 <b>Order #{id}</b>\n"
        "User: <code>{telegram_id}</code>\n"
        "Product: {type} {month} {year} × {quantity}\n"
        "Total: {total} (refunded {refunded})\n"
        "Recipient: @{username}\n"
        "Status: {status} / {payment_status}\n"
        "Created: {date}\n"
        "Notes: {notes}"
    ),
    "new_order_admin": "🛒 New order #{id}: {type} {month} {year} × {quantity} → @{username} ({total}) from <code>{telegram_id}</code>",
    "order_status_updated": "✅ Order #{id} → {status}.",
    "order_refunded_admin": "✅ Order #{id}: refunded {amount}, payment status {payment_status}.",
    "balance_adjusted_admin": "✅ Balance of {telegram_id}: {balance}.",
    "user_blocked_admin": "✅ User {telegram_id} blocked.",
    "user_unblocked_admin": "✅ User {telegram_id} unblocked.",
    "reply_sent": "✅ Reply sent.",
    "user_not_found": "❌ User not found.",
}

_RU: Dict[str, str] = {
    "error_occurred": "⚠️ Что-то пошло не так. Попробуйте позже.",
    "error_not_found": "❌ Не найдено.",
    "error_product_not_found": "❌ Этот товар недоступен.",
    "error_invalid_state": "❌ Сейчас это действие невозможно.",
    "error_insufficient_funds": "❌ Недостаточно средств. Пополните кошелёк.",
    "error_insufficient_stock": "❌ Недостаточно товара на складе.",
    "error_insufficient_reserved": "❌ Недостаточно зарезервированного товара.",
    "error_validation_error": "❌ Некорректные данные: {message}",
    "user_blocked": "⛔ Ваш аккаунт заблокирован. Обратитесь в поддержку.",
    "admin_only": "⛔ Команда доступна только администраторам.",
    "action_cancelled": "Отменено.",
    "nothing_to_cancel": "Нечего отменять.",
    "cancel_button": "❌ Отмена",
    "back_button": "⬅️ Назад",
    "confirm_button": "✅ Подтвердить",
    "wallet_button": "💰 Кошелёк",
    "shop_button": "🛒 Магазин",
    "orders_button": "📦 Мои заказы",
    "statistics_button": "📊 Статистика",
    "ready_accounts_button": "🎁 Готовые аккаунты",
    "support_button": "🆘 Поддержка",
    "settings_button": "⚙️ Настройки",
    "welcome": (
        "👋 Добро пожаловать, {name}!\n\n"
        "Здесь можно купить Telegram-группы и каналы по месяцу и году.\n"
        "Пополните кошелёк в USDT и оформите заказ в магазине."
    ),
    "help": (
        "ℹ️ <b>Команды</b>\n"
        "/wallet — баланс и пополнение\n"
        "/shop — купить группы и каналы\n"
        "/orders — ваши заказы\n"
        "/support — чат с поддержкой\n"
        "/settings — язык\n"
        "/cancel — отменить текущее действие"
    ),
    "ready_accounts_text": "🎁 Готовые аккаунты продаёт администратор: {link}",
    "join_channels": "📢 Чтобы пользоваться ботом, подпишитесь на каналы:",
    "check_membership_button": "✅ Я подписался",
    "channels_ok": "✅ Спасибо! Доступ открыт.",
    "channels_missing": "❌ Вы подписались не на все каналы.",
    "wallet_info": (
        "💰 <b>Ваш кошелёк</b>\n\n"
        "Баланс: <b>{balance}</b>\n"
        "Всего пополнено: {deposited}\n"
        "Всего потрачено: {spent}\n"
        "Заказов: {orders}"
    ),
    "topup_button": "➕ Пополнить USDT",
    "history_button": "📜 История операций",
    "select_deposit_amount": "Выберите сумму пополнения:",
    "custom_amount_button": "✏️ Другая сумма",
    "enter_custom_amount": "Введите сумму в USDT (минимум {min}):",
    "invalid_deposit_amount": "❌ Некорректная сумма. Минимальное пополнение {min}.",
    "select_network": "Выберите сеть для перевода USDT:",
    "network_not_configured": "❌ Пополнение через {network} сейчас недоступно.",
    "deposit_instructions": (
        "💳 Отправьте <b>{amount}</b> на адрес ниже.\n\n"
        "🔹 <b>{network}</b>\n<code>{address}</code>\n\n"
        "После перевода нажмите кнопку и пришлите скриншот платежа."
    ),
    "send_proof_button": "📤 Отправить подтверждение",
    "send_deposit_proof": "📸 Пришлите скриншот платежа как фото.",
    "proof_must_be_photo": "❌ Пришлите подтверждение оплаты фотографией.",
    "deposit_proof_received": "✅ Подтверждение получено. Пополнение #{tx_id} ждёт проверки администратором.",
    "deposit_cancelled": "Пополнение отменено.",
    "deposit_approved_user": "✅ Пополнение на {amount} подтверждено. Новый баланс: {balance}.",
    "deposit_rejected_user": "❌ Пополнение на {amount} отклонено.\nПричина: {reason}",
    "no_transactions": "Операций пока нет.",
    "transaction_history_title": "📜 <b>Последние операции</b>",
    "tx_deposit": "Пополнение",
    "tx_purchase": "Покупка",
    "tx_refund": "Возврат",
    "tx_admin_adjustment": "Корректировка",
    "tx_status_pending": "⏳ ожидает",
    "tx_status_completed": "✅ выполнено",
    "tx_status_cancelled": "🚫 отменено",
    "tx_status_rejected": "❌ отклонено",
    "balance_adjusted_user": "ℹ️ Ваш баланс скорректирован на {amount}. Новый баланс: {balance}.",
    "no_products_available": "😔 Сейчас нет доступных товаров.",
    "choose_type": "🛒 Что хотите купить?",
    "type_group": "👥 Группы",
    "type_channel": "📢 Каналы",
    "choose_year": "📅 Выберите год:",
    "choose_month": "🗓 Выберите месяц:",
    "product_info": (
        "📦 <b>{type} {month} {year}</b>\n"
        "Цена: {price} за штуку\n"
        "В наличии: {stock}"
    ),
    "out_of_stock": "😔 Товар закончился.",
    "enter_quantity": "Сколько штук купить? (от 1 до {max})",
    "invalid_quantity": "❌ Введите целое число от 1 до {max}.",
    "enter_target_username": "Пришлите username Telegram, на который передать покупку (например @username):",
    "invalid_username": "❌ Некорректный username. Пришлите в виде @username.",
    "checkout_confirm": (
        "🧾 <b>Ваш заказ</b>\n\n"
        "Товар: {type} {month} {year}\n"
        "Количество: {quantity}\n"
        "Цена за штуку: {price}\n"
        "Итого: <b>{total}</b>\n"
        "Получатель: @{username}\n\n"
        "Ваш баланс: {balance}"
    ),
    "order_created": "✅ Заказ #{order_id} оформлен. С баланса списано {total}.\nАдминистратор скоро передаст покупку.",
    "checkout_cancelled": "Оформление отменено.",
    "no_orders": "Заказов пока нет.",
    "orders_title": "📦 <b>Ваши заказы</b>",
    "order_line": "#{id} · {type} {month} {year} × {quantity} · {total} · {status} · {date}",
    "order_status_pending": "⏳ ожидает",
    "order_status_processing": "🔄 в работе",
    "order_status_completed": "✅ выполнен",
    "order_status_cancelled": "🚫 отменён",
    "order_status_refunded": "↩️ возвращён",
    "cancel_order_button": "🚫 Отменить заказ #{id}",
    "order_cancelled_user": "🚫 Заказ #{id} отменён. {amount} возвращено на баланс.",
    "order_status_changed_user": "ℹ️ Статус заказа #{id}: {status}",
    "order_refunded_user": "↩️ Возврат по заказу #{id}: {amount} зачислено на баланс.",
    "settings_title": "⚙️ <b>Настройки</b>\nЯзык: {language}",
    "choose_language": "🌐 Выберите язык:",
    "language_changed": "✅ Язык изменён: {language}.",
    "support_started": "🆘 Чат с поддержкой открыт. Напишите сообщение, оно будет передано администраторам.\nЧат закроется через {minutes} мин. бездействия или по /cancel.",
    "support_forwarded": "📨 Отправлено в поддержку.",
    "support_ended": "Чат с поддержкой закрыт.",
    "support_timeout": "⌛ Чат с поддержкой закрыт из-за бездействия.",
    "support_reply": "💬 <b>Поддержка:</b>\n{text}",
    "support_admin_header": "🆘 Сообщение в поддержку от {user} (<code>{telegram_id}</code>)\nОтвет: <code>/reply {telegram_id} текст</code>",
    "usage": "Использование: {usage}",
    "stats_text": (
        "📊 <b>Статистика</b>\n\n"
        "Пользователей: {users} (заблокировано: {blocked})\n"
        "Заказов: {orders}\n"
        "Выручка: {revenue}\n"
        "Пополнено: {deposited}\n"
        "Ожидают пополнения: {pending}\n\n"
        "<b>Заказы по типу</b>\n{by_type}\n\n"
        "<b>Заказы по месяцам</b>\n{by_month}\n\n"
        "<b>Склад</b>\n{stock}"
    ),
    "approve_button": "✅ Подтвердить",
    "reject_button": "❌ Отклонить",
    "deposit_approved_admin": "✅ Пополнение #{tx_id} подтверждено. Баланс пользователя: {balance}.",
    "deposit_rejected_admin": "❌ Пополнение #{tx_id} отклонено.",
    "enter_reject_reason": "✏️ Пришлите причину отклонения пополнения #{tx_id}:",
    "no_pending_deposits": "Нет ожидающих пополнений.",
    "stock_empty": "Склад пуст.",
    "prices_empty": "Переопределений цен нет. По умолчанию: группа {group}, канал {channel}.",
    "order_status_updated": "✅ Заказ #{id} → {status}.",
    "reply_sent": "✅ Ответ отправлен.",
    "user_not_found": "❌ Пользователь не найден.",
}

_ID: Dict[str, str] = {
    "wallet_button": "💰 Dompet",
    "shop_button": "🛒 Toko",
    "orders_button": "📦 Pesanan saya",
    "statistics_button": "📊 Statistik",
    "ready_accounts_button": "🎁 Akun siap",
    "support_button": "🆘 Dukungan",
    "settings_button": "⚙️ Pengaturan",
    "cancel_button": "❌ Batal",
    "welcome": "👋 Selamat datang, {name}!\n\nDi sini Anda dapat membeli grup dan channel Telegram berdasarkan bulan dan tahun.",
    "error_occurred": "⚠️ Terjadi kesalahan. Silakan coba lagi nanti.",
    "error_insufficient_funds": "❌ Saldo tidak cukup. Silakan isi dompet Anda.",
    "choose_language": "🌐 Pilih bahasa:",
    "language_changed": "✅ Bahasa diubah ke {language}.",
}

_ZH: Dict[str, str] = {
    "wallet_button": "💰 钱包",
    "shop_button": "🛒 商店",
    "orders_button": "📦 我的订单",
    "statistics_button": "📊 统计",
    "ready_accounts_button": "🎁 现成账号",
    "support_button": "🆘 客服",
    "settings_button": "⚙️ 设置",
    "cancel_button": "❌ 取消",
    "welcome": "👋 欢迎，{name}！\n\n您可以在这里按月份和年份购买 Telegram 群组和频道。",
    "error_occurred": "⚠️ 出现错误，请稍后再试。",
    "error_insufficient_funds": "❌ 余额不足，请先充值。",
    "choose_language": "🌐 请选择语言：",
    "language_changed": "✅ 语言已切换为 {language}。",
}

_UZ: Dict[str, str] = {
    "wallet_button": "💰 Hamyon",
    "shop_button": "🛒 Do'kon",
    "orders_button": "📦 Buyurtmalarim",
    "statistics_button": "📊 Statistika",
    "ready_accounts_button": "🎁 Tayyor akkauntlar",
    "support_button": "🆘 Yordam",
    "settings_button": "⚙️ Sozlamalar",
    "cancel_button": "❌ Bekor qilish",
    "welcome": "👋 Xush kelibsiz, {name}!\n\nBu yerda Telegram guruh va kanallarini oy va yil bo'yicha sotib olishingiz mumkin.",
    "error_occurred": "⚠️ Xatolik yuz berdi. Keyinroq urinib ko'ring.",
    "error_insufficient_funds": "❌ Balans yetarli emas. Hamyonni to'ldiring.",
    "choose_language": "🌐 Tilni tanlang:",
    "language_changed": "✅ Til {language} ga o'zgartirildi.",
}

TEXTS: Dict[str, Dict[str, str]] = {
    "en": _EN,
    "ru": _RU,
    "id": _ID,
    "zh": _ZH,
    "uz": _UZ,
}

# Команды для setMyCommands: (команда, описание) по языкам.
_USER_COMMANDS: Dict[str, List[Tuple[str, str]]] = {
    "en": [
        ("start", "Start the bot"),
        ("wallet", "Wallet and top up"),
        ("shop", "Buy groups and channels"),
        ("orders", "My orders"),
        ("support", "Contact support"),
        ("settings", "Language settings"),
        ("help", "Help"),
        ("cancel", "Cancel current action"),
    ],
    "ru": [
        ("start", "Запустить бота"),
        ("wallet", "Кошелёк и пополнение"),
        ("shop", "Купить группы и каналы"),
        ("orders", "Мои заказы"),
        ("support", "Поддержка"),
        ("settings", "Язык"),
        ("help", "Помощь"),
        ("cancel", "Отменить действие"),
    ],
    "id": [
        ("start", "Mulai bot"),
        ("wallet", "Dompet dan isi saldo"),
        ("shop", "Beli grup dan channel"),
        ("orders", "Pesanan saya"),
        ("support", "Hubungi dukungan"),
        ("settings", "Pengaturan bahasa"),
        ("help", "Bantuan"),
        ("cancel", "Batalkan tindakan"),
    ],
    "zh": [
        ("start", "启动机器人"),
        ("wallet", "钱包与充值"),
        ("shop", "购买群组和频道"),
        ("orders", "我的订单"),
        ("support", "联系客服"),
        ("settings", "语言设置"),
        ("help", "帮助"),
        ("cancel", "取消当前操作"),
    ],
    "uz": [
        ("start", "Botni ishga tushirish"),
        ("wallet", "Hamyon va to'ldirish"),
        ("shop", "Guruh va kanallar sotib olish"),
        ("orders", "Buyurtmalarim"),
        ("support", "Yordam"),
        ("settings", "Til sozlamalari"),
        ("help", "Yordam"),
        ("cancel", "Amalni bekor qilish"),
    ],
}


def normalize_lang(lang: str | None) -> str:
    """'RU' / 'ru-RU' → 'ru'; неизвестный язык → FALLBACK_LANG."""
    code = (lang or "").strip().lower().split("-")[0]
    return code if code in TEXTS else FALLBACK_LANG


def t(lang: str | None, key: str, **params: object) -> str:
    """Локализованный текст по ключу с подстановкой параметров."""
    code = normalize_lang(lang)
    text = TEXTS[code].get(key)
    if text is None:
        text = _EN.get(key)
    if text is None:
        logger.debug("i18n: missing key %s", key)
        return key
    if not params:
        return text
    return text.format_map(_SafeDict({k: v for k, v in params.items()}))


def all_translations(key: str) -> List[str]:
    """Все варианты текста ключа (для сопоставления кнопок reply-клавиатуры)."""
    seen: List[str] = []
    for code in TEXTS:
        value = t(code, key)
        if value not in seen:
            seen.append(value)
    return seen


def user_commands(lang: str) -> List[Tuple[str, str]]:
    return _USER_COMMANDS.get(normalize_lang(lang), _USER_COMMANDS[FALLBACK_LANG])


def language_title(lang: str) -> str:
    return LANGUAGE_TITLES.get(normalize_lang(lang), lang)


__all__ = [
    "FALLBACK_LANG",
    "TEXTS",
    "normalize_lang",
    "t",
    "all_translations",
    "user_commands",
    "language_title",
]
