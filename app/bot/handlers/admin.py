# app/bot/handlers/admin.py
import logging

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from app.bot.filters.admin import IsAdminFilter
from app.dependencies import get_db_context
from app.services import admin as admin_service

logger = logging.getLogger(__name__)

admin_router = Router()
admin_router.message.filter(IsAdminFilter()) # Защищаем все команды в этом файле


@admin_router.message(Command("stats"))
async def get_stats_handler(message: Message):
    """Выводит общую статистику по пользователям, парам и оплатам."""
    with get_db_context() as db:
        stats = admin_service.collect_stats(db)
    await message.answer(admin_service.format_stats(stats))
