# app/routers/match.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.bot.services.notification import Notifier
from app.dependencies import get_current_user, get_db, get_notifier
from app.models.user import User
from app.schemas.match import FilteredMatchRequest, Match, MatchResult, ReactionRequest
from app.services import match_lifecycle, matchmaking

router = APIRouter(prefix="/matches")


@router.post("/random", response_model=MatchResult)
def random_match(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Случайная пара среди активных пользователей, с которыми еще не было пары. Бесплатно."""
    return matchmaking.request_random_match(db, current_user)


@router.post("/filtered", response_model=MatchResult)
def filtered_match(
    request_data: FilteredMatchRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Пара по фильтрам (возраст, пол, город, интересы).
    Списывает бесплатный подбор или звезды; 402, если не хватает.
    """
    return matchmaking.request_filtered_match(db, current_user, request_data.filters)


@router.post("/{match_id}/react", response_model=Match)
async def react_to_match(
    match_id: int,
    reaction_data: ReactionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Реакция на пару: 'interested' или 'passed'. Повторная реакция запрещена."""
    return match_lifecycle.react(db, match_id, current_user, reaction_data.reaction, notifier)


@router.get("", response_model=List[Match])
def list_matches(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Последние пары пользователя, от новых к старым."""
    return match_lifecycle.list_matches(db, current_user)
