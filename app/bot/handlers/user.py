# app/bot/handlers/user.py

import html
import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import Message, PreCheckoutQuery, WebAppInfo
from aiogram.utils.keyboard import InlineKeyboardBuilder

from app.bot.services.notification import Notifier, Recipient
from app.core.config import settings
from app.crud import user as crud_user
from app.dependencies import get_db_context
from app.services import auth as auth_service, payment as payment_service, profile as profile_service

logger = logging.getLogger(__name__)
# Создаем роутер для этого модуля.
user_router = Router()


def _open_app_keyboard():
    builder = InlineKeyboardBuilder()
    builder.button(text="🚀 Открыть StarMatch", web_app=WebAppInfo(url=settings.MINI_APP_URL))
    return builder.as_markup()


@user_router.message(CommandStart())
async def command_start_handler(message: Message, command: CommandObject, notifier: Notifier) -> None:
    """
    Обрабатывает команду /start: регистрирует пользователя,
    ловит реферальный код и учитывает ежедневный вход.
    """
    referral_code = profile_service.parse_referral_code(command.args)

    with get_db_context() as db:
        try:
            db_user = auth_service.bootstrap_session(
                db,
                user_info=message.from_user.model_dump(),
                referral_code=referral_code,
                notifier=notifier,
            )
            if not db_user.bot_accessible:
                logger.info(f"User {db_user.id} re-activated the bot. Setting bot_accessible to True.")
                db_user.bot_accessible = True
                db.commit()
        except Exception:
            logger.error(f"Error in /start for TG ID {message.from_user.id}", exc_info=True)
            await message.answer("❌ Произошла ошибка. Пожалуйста, попробуйте еще раз.")
            return

        text = (
            f"💫 Добро пожаловать в StarMatch, {html.escape(db_user.first_name or '')}!\n\n"
            f"✨ Серия входов: {db_user.login_streak} дн.\n"
            f"⭐ Баланс звезд: {db_user.balance}\n"
            f"🎯 Бесплатных подборов: {db_user.free_matches}\n\n"
            f"💝 Найдите свою пару уже сегодня!\n\n"
            f"📱 Нажмите кнопку ниже, чтобы открыть StarMatch:"
        )

    await message.answer(text, reply_markup=_open_app_keyboard())


@user_router.message(Command("profile"))
async def profile_handler(message: Message) -> None:
    """Краткая анкета, баланс и реферальный код."""
    with get_db_context() as db:
        user = crud_user.get_user_by_telegram_id(db, message.from_user.id)
        if not user:
            await message.answer("❌ Пользователь не найден. Сначала отправьте /start.")
            return
        referral = profile_service.get_referral_info(db, user)

        not_set = "не указано"
        name = html.escape(f"{user.first_name or ''} {user.last_name or ''}".strip() or not_set)
        interests = html.escape(", ".join(user.interests or [])) or not_set
        text = (
            f"👤 <b>Ваша анкета:</b>\n\n"
            f"Имя: {name}\n"
            f"Username: @{user.username or not_set}\n"
            f"Возраст: {user.age or not_set}\n"
            f"Пол: {user.gender or not_set}\n"
            f"Город: {html.escape(user.location or not_set)}\n"
            f"Интересы: {interests}\n"
            f"О себе: {html.escape(user.bio or not_set)}\n\n"
            f"⭐ Звезды: {user.balance}\n"
            f"🎯 Бесплатные подборы: {user.free_matches}\n"
            f"🔥 Серия входов: {user.login_streak} дн.\n"
            f"🎁 Приглашено друзей: {user.referral_count}\n\n"
            f"📋 Ваш реферальный код: <code>{referral.referral_code}</code>\n"
            f"Ссылка для друзей: {referral.referral_link}"
        )
    await message.answer(text)


@user_router.pre_checkout_query()
async def pre_checkout_handler(query: PreCheckoutQuery) -> None:
    """Подтверждаем любой счет на звезды: цену задаем мы сами при создании."""
    await query.answer(ok=True)


@user_router.message(F.successful_payment)
async def successful_payment_handler(message: Message, notifier: Notifier) -> None:
    """Зачисляет оплаченные звезды на баланс."""
    payment = message.successful_payment
    with get_db_context() as db:
        try:
            user, credited = payment_service.process_successful_payment(
                db,
                telegram_id=message.from_user.id,
                amount=payment.total_amount,
                payment_id=payment.telegram_payment_charge_id,
                description=payment.invoice_payload,
            )
        except Exception:
            logger.error(f"Payment processing error for TG ID {message.from_user.id}", exc_info=True)
            return
        if not user or not credited:
            return
        recipient, balance = Recipient.from_user(user), user.balance

    await notifier.send_payment_success(recipient, payment.total_amount, balance)


@user_router.message(Command("stats"))
async def stats_denied_handler(message: Message) -> None:
    """Сюда /stats доходит только от не-админов: админский роутер подключен раньше."""
    await message.answer("⛔ Unauthorized. Admin only.")
