# app/bot/filters/admin.py
from aiogram.filters import Filter
from aiogram.types import Message

from app.dependencies import is_admin


class IsAdminFilter(Filter):
    """Пропускает только сообщения от Telegram ID из ADMIN_TELEGRAM_IDS."""

    async def __call__(self, message: Message) -> bool:
        return message.from_user is not None and is_admin(message.from_user.id)
