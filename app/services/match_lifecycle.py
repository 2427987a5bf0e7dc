# app/services/match_lifecycle.py

import logging
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.bot.services.notification import Notifier, Recipient, fire_and_forget
from app.core.config import settings
from app.crud import match as crud_match
from app.models.match import Match, MATCH_TYPES
from app.models.user import User

logger = logging.getLogger(__name__)

# Сколько раз повторяем реакцию при конфликте версий
MAX_REACT_ATTEMPTS = 3


def resolve_status(user1_status: str, user2_status: str) -> str:
    """
    Общий статус пары как функция реакций сторон.
    Отказ любой стороны важнее взаимного интереса.
    """
    if user1_status == "passed" or user2_status == "passed":
        return "rejected"
    if user1_status == "interested" and user2_status == "interested":
        return "accepted"
    return "pending"


def create_match(
    db: Session,
    user1: User,
    user2: User,
    match_type: str,
    filters: dict | None = None,
) -> Match:
    """
    Единственный способ создать пару. Обе реакции 'pending',
    срок жизни MATCH_TTL_HOURS. Коммит делает вызывающий код.
    """
    if match_type not in MATCH_TYPES:
        raise ValueError(f"Unknown match type: {match_type}")
    if user1.id == user2.id:
        raise ValueError("A match requires two distinct users")
    if match_type != "filtered":
        filters = None

    expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.MATCH_TTL_HOURS)
    match = crud_match.create_match(
        db,
        user1_id=user1.id,
        user2_id=user2.id,
        match_type=match_type,
        expires_at=expires_at,
        filters=filters,
    )
    logger.info(f"Match {match.id} created: {match_type} user {user1.id} <-> user {user2.id}")
    return match


def _side_of(match: Match, user: User) -> str | None:
    if match.user1_id == user.id:
        return "user1"
    if match.user2_id == user.id:
        return "user2"
    return None


def react(
    db: Session,
    match_id: int,
    acting_user: User,
    reaction: str,
    notifier: Notifier | None = None,
) -> Match:
    """
    Записывает реакцию стороны и пересчитывает статус пары.
    Чтение-изменение-запись идет под блокировкой строки и с проверкой версии;
    при конфликте версий попытка повторяется.
    Уведомление о взаимности отправляется в фоне только тем запросом,
    который перевел пару в 'accepted'.
    """
    if reaction not in ("interested", "passed"):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Reaction must be 'interested' or 'passed'")

    for attempt in range(1, MAX_REACT_ATTEMPTS + 1):
        match = crud_match.get_match_for_update(db, match_id)
        if not match:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")

        side = _side_of(match, acting_user)
        if side is None:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not a participant of this match")
        if match.status != "pending":
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Match is already {match.status}")
        if getattr(match, f"{side}_status") != "pending":
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already reacted to this match")

        setattr(match, f"{side}_status", reaction)
        match.status = resolve_status(match.user1_status, match.user2_status)
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(f"Version conflict on match {match_id} (attempt {attempt}/{MAX_REACT_ATTEMPTS}). Retrying.")
            continue
        except Exception:
            db.rollback()
            raise
        break
    else:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Match was modified concurrently, please retry")

    match = crud_match.get_match(db, match_id)
    logger.info(f"Match {match.id}: {side} -> {reaction}, status={match.status}")

    if match.status == "accepted" and notifier is not None:
        fire_and_forget(notifier.notify_mutual_match(
            Recipient.from_user(match.user1), Recipient.from_user(match.user2)
        ))
    return match


def list_matches(db: Session, user: User) -> list[Match]:
    """Последние пары пользователя, от новых к старым."""
    return crud_match.get_user_matches(db, user_id=user.id, limit=settings.MATCH_HISTORY_LIMIT)


def expire_stale_matches(db: Session, now: datetime | None = None) -> int:
    """Переводит ожидающие пары с истекшим сроком в 'expired'."""
    now = now or datetime.now(timezone.utc)
    try:
        expired = crud_match.expire_pending_matches(db, now)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return expired
