# app/crud/match.py
from datetime import datetime
from typing import List

import json
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session, joinedload

from app.models.match import Match
from app.models.user import User


def _escape_like(value: str) -> str:
    return value.replace("!", "!!").replace("%", "!%").replace("_", "!_")


def create_match(
    db: Session,
    user1_id: int,
    user2_id: int,
    match_type: str,
    expires_at: datetime,
    filters: dict | None = None,
) -> Match:
    """Добавляет новую пару в сессию. Требует внешнего вызова db.commit()."""
    match = Match(
        user1_id=user1_id,
        user2_id=user2_id,
        match_type=match_type,
        status="pending",
        user1_status="pending",
        user2_status="pending",
        filters=filters,
        expires_at=expires_at,
    )
    db.add(match)
    db.flush()
    return match

def get_match(db: Session, match_id: int) -> Match | None:
    return db.query(Match).options(
        joinedload(Match.user1), joinedload(Match.user2)
    ).filter(Match.id == match_id).first()

def get_match_for_update(db: Session, match_id: int) -> Match | None:
    """Читает пару с блокировкой строки (SELECT ... FOR UPDATE)."""
    return db.query(Match).populate_existing().filter(Match.id == match_id).with_for_update().first()

def get_user_matches(db: Session, user_id: int, limit: int = 20) -> List[Match]:
    """Пары пользователя, от новых к старым."""
    return db.query(Match).options(
        joinedload(Match.user1), joinedload(Match.user2)
    ).filter(
        or_(Match.user1_id == user_id, Match.user2_id == user_id)
    ).order_by(Match.created_at.desc(), Match.id.desc()).limit(limit).all()

def get_counterpart_ids(db: Session, user_id: int) -> set[int]:
    """ID всех, с кем у пользователя уже была пара (в любом статусе)."""
    rows = db.query(Match.user1_id, Match.user2_id).filter(
        or_(Match.user1_id == user_id, Match.user2_id == user_id)
    ).all()
    return {u2 if u1 == user_id else u1 for u1, u2 in rows}

def expire_pending_matches(db: Session, now: datetime) -> int:
    """
    Переводит просроченные ожидающие пары в 'expired' одним UPDATE.
    Увеличивает версию, чтобы параллельная реакция получила конфликт.
    """
    return db.query(Match).filter(
        Match.status == "pending",
        Match.expires_at < now
    ).update(
        {Match.status: "expired", Match.version: Match.version + 1},
        synchronize_session=False
    )

def count_matches(db: Session, status: str | None = None) -> int:
    query = db.query(Match)
    if status:
        query = query.filter(Match.status == status)
    return query.count()


def find_candidates(
    db: Session,
    excluded_ids: set[int],
    limit: int,
    gender: str | None = None,
    location: str | None = None,
    min_age: int | None = None,
    max_age: int | None = None,
    interests: list[str] | None = None,
) -> List[User]:
    """
    Активные пользователи вне множества исключений с фильтрами по полу,
    городу (подстрока без учета регистра) и возрасту (включительно).
    Интересы: пересечение хотя бы по одному тегу. Теги ищутся в JSON-тексте
    массива в том же экранировании, в каком их сериализует SQLAlchemy.
    """
    query = db.query(User).filter(User.is_active == True)
    if excluded_ids:
        query = query.filter(User.id.notin_(excluded_ids))
    if gender:
        query = query.filter(User.gender == gender)
    if location:
        query = query.filter(User.location.ilike(f"%{_escape_like(location)}%", escape="!"))
    if min_age is not None:
        query = query.filter(User.age >= min_age)
    if max_age is not None:
        query = query.filter(User.age <= max_age)
    if interests:
        interests_text = cast(User.interests, String)
        query = query.filter(or_(*[
            interests_text.like(f"%{_escape_like(json.dumps(tag))}%", escape="!") for tag in interests
        ]))
    return query.order_by(User.id).limit(limit).all()
