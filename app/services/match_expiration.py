# app/services/match_expiration.py
import logging

from app.dependencies import get_db_context
from app.services import match_lifecycle

logger = logging.getLogger(__name__)


def expire_stale_matches_task():
    """Фоновая задача: закрывает пары, на которые не ответили за MATCH_TTL_HOURS."""
    logger.info("--- Starting scheduled job: Expire Stale Matches ---")
    with get_db_context() as db:
        try:
            expired_count = match_lifecycle.expire_stale_matches(db)
            if expired_count > 0:
                logger.info(f"Marked {expired_count} pending matches as expired.")
            else:
                logger.info("No stale matches to expire.")
        except Exception:
            logger.error("An error occurred during match expiration task", exc_info=True)
    logger.info("--- Finished scheduled job: Expire Stale Matches ---")
