# app/services/auth.py

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import HTTPException, status
from jose import jwt
from sqlalchemy.orm import Session

from app.bot.services.notification import Notifier, Recipient, fire_and_forget
from app.core.config import settings
from app.crud import user as crud_user
from app.models.user import User
from app.schemas.user import AuthResponse, UserProfile
from app.services import profile as profile_service
from app.utils.telegram import validate_init_data

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Создает JWT токен."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def bootstrap_session(
    db: Session,
    user_info: Dict[str, Any],
    referral_code: str | None = None,
    notifier: Notifier | None = None,
) -> User:
    """
    Общий вход для /start и Mini App: регистрация (с учетом реферального кода),
    синхронизация имени/фото и учет ежедневного входа.
    """
    db_user, created = profile_service.get_or_create(db, user_info=user_info, referral_code=referral_code)
    profile_service.sync_display_attributes(db, db_user, user_info)
    profile_service.record_login(db, db_user)

    if created and db_user.referred_by_id and notifier is not None:
        referrer = crud_user.get_user_by_id(db, db_user.referred_by_id)
        if referrer:
            fire_and_forget(notifier.send_referral_bonus(Recipient.from_user(referrer), settings.REFERRAL_BONUS))
    return db_user


def authenticate_telegram_user(db: Session, init_data: str, notifier: Notifier | None = None) -> AuthResponse:
    """
    Функция для эндпоинта /auth/telegram.
    Валидирует initData, регистрирует/находит пользователя и возвращает JWT вместе с профилем.
    """
    is_valid, user_data_from_tg = validate_init_data(init_data)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Telegram initData")

    try:
        user_info = json.loads(user_data_from_tg.get("user", "{}"))
    except json.JSONDecodeError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Telegram initData")
    if not isinstance(user_info, dict) or not user_info.get("id"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Telegram initData")

    referral_code = profile_service.parse_referral_code(user_data_from_tg.get("start_param"))
    db_user = bootstrap_session(db, user_info=user_info, referral_code=referral_code, notifier=notifier)

    access_token = create_access_token(
        data={"sub": str(db_user.id), "tg_id": str(db_user.telegram_id)},
    )
    return AuthResponse(access_token=access_token, user=UserProfile.model_validate(db_user))
