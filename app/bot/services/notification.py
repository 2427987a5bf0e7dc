# app/bot/services/notification.py
import asyncio
import html
import logging
from dataclasses import dataclass

from aiogram import Bot
from aiogram.exceptions import TelegramForbiddenError

from app.core.config import settings
from app.dependencies import get_db_context
from app.models.user import User

logger = logging.getLogger(__name__)

# Лимит длины одного сообщения Telegram
TELEGRAM_MESSAGE_LIMIT = 4096
MAX_REQUEST_LINE = 500
TRUNCATED_MARK = "[...]\n"


@dataclass(frozen=True)
class Recipient:
    """
    Снимок данных пользователя для отправки сообщения.
    Не зависит от сессии БД, поэтому безопасен для фоновых задач.
    """
    user_id: int
    telegram_id: int
    first_name: str | None
    username: str | None

    @classmethod
    def from_user(cls, user: User) -> "Recipient":
        return cls(
            user_id=user.id,
            telegram_id=user.telegram_id,
            first_name=user.first_name,
            username=user.username,
        )

    @property
    def display_name(self) -> str:
        if self.first_name:
            return self.first_name
        if self.username:
            return f"@{self.username}"
        return f"Пользователь #{self.telegram_id}"


def _mark_bot_inaccessible(user_id: int) -> None:
    with get_db_context() as db:
        user = db.query(User).filter(User.id == user_id).first()
        if user and user.bot_accessible:
            user.bot_accessible = False
            db.commit()


class Notifier:
    """
    Исходящие сообщения пользователям через бота.
    Все ошибки логируются и не пробрасываются наружу.
    """

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send(self, recipient: Recipient, text: str) -> tuple[bool, str | None]:
        """Возвращает кортеж (успех, причина_неудачи)."""
        try:
            await self.bot.send_message(chat_id=recipient.telegram_id, text=text)
            return True, None
        except TelegramForbiddenError:
            reason = "User has blocked the bot"
            logger.error(f"User {recipient.user_id} has blocked the bot. Updating status.")
            try:
                _mark_bot_inaccessible(recipient.user_id)
            except Exception:
                logger.error(f"Failed to mark user {recipient.user_id} as bot-inaccessible", exc_info=True)
            return False, reason
        except Exception as e:
            reason = str(e)
            logger.error(f"Failed to send message to user {recipient.user_id}: {reason}")
            return False, reason

    async def notify_mutual_match(self, first: Recipient, second: Recipient) -> None:
        """Сообщает обеим сторонам о взаимной симпатии. Ровно одно сообщение на сторону."""
        await asyncio.gather(
            self.send(first, _mutual_match_text(second)),
            self.send(second, _mutual_match_text(first)),
        )

    async def send_payment_success(self, recipient: Recipient, stars: int, balance: int) -> None:
        await self.send(
            recipient,
            f"✅ Оплата прошла успешно!\n"
            f"⭐ На баланс зачислено звезд: <b>{stars}</b>.\n"
            f"Текущий баланс: <b>{balance}</b>"
        )

    async def send_referral_bonus(self, recipient: Recipient, amount: int) -> None:
        await self.send(
            recipient,
            f"🎁 По вашей ссылке зарегистрировался новый пользователь! "
            f"Вам начислено <b>{amount}</b> ⭐."
        )

    async def send_error_to_admins(self, error_message: str) -> None:
        """
        Отправляет сообщение о критической ошибке всем админам в личные сообщения.
        Ожидает готовый HTML не длиннее лимита Telegram (см. build_error_report);
        слишком длинный текст уходит обрезанным и без разметки.
        """
        if not settings.ADMIN_TELEGRAM_IDS:
            logger.warning("ADMIN_TELEGRAM_IDS is not set. Critical error cannot be sent.")
            return

        send_kwargs = {"text": error_message}
        if len(error_message) > TELEGRAM_MESSAGE_LIMIT:
            # Обрезанный HTML Telegram не распарсит
            logger.warning(f"Error report is {len(error_message)} chars long. Sending as plain text.")
            send_kwargs = {"text": error_message[:TELEGRAM_MESSAGE_LIMIT - 6] + "\n[...]", "parse_mode": None}

        results = await asyncio.gather(
            *(self.bot.send_message(chat_id=admin_id, **send_kwargs) for admin_id in settings.ADMIN_TELEGRAM_IDS),
            return_exceptions=True,
        )
        for admin_id, result in zip(settings.ADMIN_TELEGRAM_IDS, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to send critical error to admin {admin_id}: {result}")


def build_error_report(request_line: str, traceback_text: str) -> str:
    """
    HTML-отчет об ошибке для админов, гарантированно не длиннее лимита Telegram.
    Обрезается сырой traceback (остается хвост с самим исключением),
    экранирование и теги применяются после обрезки.
    """
    header = (
        f"🚨 <b>Критическая ошибка в API!</b>\n\n"
        f"<b>URL:</b> <code>{html.escape(request_line[:MAX_REQUEST_LINE])}</code>\n\n"
        f"<b>Traceback:</b>\n<pre>"
    )
    footer = "</pre>"
    budget = TELEGRAM_MESSAGE_LIMIT - len(header) - len(footer)

    details = traceback_text
    escaped = html.escape(details)
    if len(escaped) > budget:
        budget -= len(TRUNCATED_MARK)
        while len(escaped) > budget:
            # Экранирование только удлиняет текст, поэтому срез на избыток всегда сокращает
            details = details[len(escaped) - budget:]
            escaped = html.escape(details)
        escaped = TRUNCATED_MARK + escaped
    return header + escaped + footer


def _mutual_match_text(partner: Recipient) -> str:
    text = f"🎉 Это взаимно! {html.escape(partner.display_name)} тоже проявил(а) к вам интерес!"
    if partner.username:
        text += f"\nНачните общение: @{partner.username}"
    else:
        text += f'\nНачните общение: <a href="tg://user?id={partner.telegram_id}">написать</a>'
    return text


def fire_and_forget(coro) -> asyncio.Task:
    """
    Запускает корутину в фоне и логирует ее исключение, если оно все же вылетит.
    Никогда не блокирует вызывающий код.
    """
    task = asyncio.create_task(coro)
    _background_tasks.add(task)

    def _done(t: asyncio.Task) -> None:
        _background_tasks.discard(t)
        if not t.cancelled() and t.exception() is not None:
            logger.error("Background notification failed", exc_info=t.exception())

    task.add_done_callback(_done)
    return task

# Держим ссылки на задачи, чтобы их не собрал GC до завершения
_background_tasks: set[asyncio.Task] = set()
