# app/routers/user.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.dependencies import get_current_user, get_db
from app.models.user import User
from app.schemas.referral import ReferralInfo
from app.schemas.transaction import Transaction
from app.schemas.user import UserProfile, UserUpdate
from app.services import ledger, profile as profile_service

router = APIRouter()


@router.get("/users/me", response_model=UserProfile)
def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/users/me", response_model=UserProfile)
def update_users_me(
    user_update_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Обновление анкеты: возраст, пол, город, интересы, о себе.
    Перезаписываются только переданные поля.
    """
    return profile_service.update_profile(db, current_user.telegram_id, user_update_data)


@router.get("/users/me/transactions", response_model=List[Transaction])
def get_user_transactions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """История операций со звездами и бонусами, от новых к старым."""
    return ledger.get_user_history(db, current_user)


@router.get("/users/me/referral-info", response_model=ReferralInfo)
def get_referral_info(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Реферальный код, ссылка для приглашения и статистика."""
    return profile_service.get_referral_info(db, current_user)
