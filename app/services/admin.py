# app/services/admin.py

import logging

from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import match as crud_match, transaction as crud_transaction, user as crud_user
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.admin import AdminStats

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = "admin:stats"
STATS_CACHE_TTL = 300


def list_users(db: Session) -> list[User]:
    return crud_user.get_users(db, limit=settings.ADMIN_USERS_LIMIT)


def list_transactions(db: Session) -> list[Transaction]:
    return crud_transaction.get_transactions(db, limit=settings.ADMIN_TRANSACTIONS_LIMIT)


def collect_stats(db: Session) -> AdminStats:
    return AdminStats(
        total_users=crud_user.count_all_users(db),
        active_users=crud_user.count_active_users(db),
        total_matches=crud_match.count_matches(db),
        accepted_matches=crud_match.count_matches(db, status="accepted"),
        pending_matches=crud_match.count_matches(db, status="pending"),
        completed_transactions=crud_transaction.count_completed_transactions(db),
        total_revenue=crud_transaction.get_total_revenue(db),
    )


async def get_stats(db: Session, redis: Redis) -> AdminStats:
    """Сводная статистика, кешируется в Redis на 5 минут."""
    try:
        cached = await redis.get(STATS_CACHE_KEY)
    except Exception:
        logger.error("Failed to read admin stats from cache", exc_info=True)
        cached = None
    if cached:
        logger.info("Serving admin stats from cache.")
        return AdminStats.model_validate_json(cached)

    stats = collect_stats(db)
    try:
        await redis.set(STATS_CACHE_KEY, stats.model_dump_json(), ex=STATS_CACHE_TTL)
    except Exception:
        logger.error("Failed to cache admin stats", exc_info=True)
    return stats


def format_stats(stats: AdminStats) -> str:
    return (
        f"📊 <b>Статистика StarMatch:</b>\n\n"
        f"👥 <b>Всего пользователей:</b> {stats.total_users}\n"
        f"✅ <b>Активных:</b> {stats.active_users}\n\n"
        f"💝 <b>Всего пар:</b> {stats.total_matches}\n"
        f"🤝 <b>Взаимных:</b> {stats.accepted_matches}\n"
        f"⏳ <b>Ожидают ответа:</b> {stats.pending_matches}\n\n"
        f"💰 <b>Успешных операций:</b> {stats.completed_transactions}\n"
        f"⭐ <b>Выручка:</b> {stats.total_revenue} звезд"
    )
