# app/services/matchmaking.py

import logging
import random
from typing import Literal

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import match as crud_match, user as crud_user
from app.models.user import User
from app.schemas.match import Match as MatchSchema, MatchFilters, MatchResult
from app.services import ledger
from app.services import match_lifecycle

logger = logging.getLogger(__name__)

Charge = Literal["none", "free_credit", "balance"]

NO_RANDOM_CANDIDATES_MESSAGE = "No matches available at the moment"
NO_FILTERED_CANDIDATES_MESSAGE = "No matches found with these filters"


def build_exclusion_set(db: Session, requester: User) -> set[int]:
    """Сам пользователь и все, с кем у него уже была пара в любом статусе."""
    excluded = crud_match.get_counterpart_ids(db, requester.id)
    excluded.add(requester.id)
    return excluded


def _pick(candidates: list[User], rng: random.Random | None) -> User | None:
    """
    Равномерный выбор из ограниченного пула. Пул обрезан до CANDIDATE_POOL_SIZE,
    так что при большой базе это не равномерная выборка по всем подходящим.
    """
    if not candidates:
        return None
    return (rng or random).choice(candidates)


def select_random(db: Session, requester: User, rng: random.Random | None = None) -> User | None:
    candidates = crud_match.find_candidates(
        db,
        excluded_ids=build_exclusion_set(db, requester),
        limit=settings.CANDIDATE_POOL_SIZE,
    )
    return _pick(candidates, rng)


def select_filtered(
    db: Session,
    requester: User,
    filters: MatchFilters,
    rng: random.Random | None = None
) -> User | None:
    age_range = filters.age_range
    candidates = crud_match.find_candidates(
        db,
        excluded_ids=build_exclusion_set(db, requester),
        limit=settings.CANDIDATE_POOL_SIZE,
        gender=filters.gender,
        location=filters.location,
        min_age=age_range.min if age_range else None,
        max_age=age_range.max if age_range else None,
        interests=filters.interests or None,
    )
    return _pick(candidates, rng)


def charge_filtered_match(db: Session, user: User) -> Charge:
    """
    Проверка права на подбор с фильтрами: сначала бесплатный подбор,
    иначе списание FILTERED_MATCH_PRICE звезд с записью 'payment' в журнал.
    Оба списания - атомарные условные UPDATE. Коммит делает вызывающий код.
    """
    if crud_user.consume_free_match(db, user.id):
        logger.info(f"User {user.id} spent a free match credit on a filtered match.")
        return "free_credit"

    price = settings.FILTERED_MATCH_PRICE
    if crud_user.adjust_balance(db, user.id, -price, require_funds=True):
        ledger.record(
            db, user,
            type="payment",
            amount=-price,
            description="Filtered match",
            meta={"match_type": "filtered"},
        )
        logger.info(f"User {user.id} charged {price} stars for a filtered match.")
        return "balance"

    raise HTTPException(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        detail=f"Insufficient stars. You need {price} stars for filtered matching."
    )


def _build_result(db: Session, match_id: int | None, charge: Charge, message: str | None = None) -> MatchResult:
    if match_id is None:
        return MatchResult(success=False, match=None, message=message, charge=charge)
    match = crud_match.get_match(db, match_id)
    return MatchResult(success=True, match=MatchSchema.model_validate(match), charge=charge)


def request_random_match(db: Session, requester: User, rng: random.Random | None = None) -> MatchResult:
    """Случайный подбор. Бесплатен."""
    try:
        partner = select_random(db, requester, rng)
        if partner is None:
            logger.info(f"No random candidates for user {requester.id}.")
            return _build_result(db, None, "none", NO_RANDOM_CANDIDATES_MESSAGE)
        match = match_lifecycle.create_match(db, requester, partner, "random")
        db.commit()
    except Exception:
        db.rollback()
        raise
    return _build_result(db, match.id, "none")


def request_filtered_match(
    db: Session,
    requester: User,
    filters: MatchFilters,
    rng: random.Random | None = None
) -> MatchResult:
    """
    Подбор с фильтрами. Оплата списывается до поиска и остается списанной,
    даже если никого не нашлось (charge в ответе это показывает).
    Списание и создание пары фиксируются одним коммитом.
    """
    try:
        charge = charge_filtered_match(db, requester)
        partner = select_filtered(db, requester, filters, rng)
        if partner is None:
            db.commit()
            logger.info(f"No filtered candidates for user {requester.id} (charge={charge}).")
            return _build_result(db, None, charge, NO_FILTERED_CANDIDATES_MESSAGE)
        match = match_lifecycle.create_match(
            db, requester, partner, "filtered",
            filters=filters.model_dump(exclude_none=True),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return _build_result(db, match.id, charge)
