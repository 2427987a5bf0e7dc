# app/bot/core.py
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from app.bot.services.notification import Notifier
from app.core.config import settings


def create_bot() -> Bot:
    # HTML по умолчанию для всех сообщений
    default_properties = DefaultBotProperties(parse_mode=ParseMode.HTML)
    return Bot(token=settings.TELEGRAM_BOT_TOKEN, default=default_properties)


def create_dispatcher(notifier: Notifier) -> Dispatcher:
    """
    Диспетчер со всеми роутерами. `notifier` попадает в хендлеры
    как именованный аргумент через workflow data.
    """
    # Импорт внутри, чтобы хендлеры не тянули бота при импорте core
    from app.bot.handlers.admin import admin_router
    from app.bot.handlers.user import user_router

    dp = Dispatcher()
    dp["notifier"] = notifier
    # Сначала админские (более специфичные), потом пользовательские
    dp.include_router(admin_router)
    dp.include_router(user_router)
    return dp
