# app/dependencies.py

import logging
from typing import Iterator, TYPE_CHECKING
from contextlib import contextmanager

from aiogram import Bot
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.user import User

if TYPE_CHECKING:
    from app.bot.services.notification import Notifier

# --- Инициализация логгера ---
logger = logging.getLogger(__name__)

# --- Схемы аутентификации ---
strict_bearer_scheme = HTTPBearer(auto_error=True)

# --- Управление сессией БД ---
def get_db_session_instance() -> Session:
    """Создает и возвращает экземпляр сессии БД."""
    return SessionLocal()

def get_db() -> Iterator[Session]:
    """
    Основная зависимость FastAPI для получения сессии БД.
    Это генератор, который корректно работает с `Depends`.
    """
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def get_db_context() -> Iterator[Session]:
    """
    Контекстный менеджер для получения сессии БД вне FastAPI (для бота и фоновых задач).
    """
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()

# --- Внешние коллабораторы (бот), создаются в main.py и кладутся в app.state ---

def get_bot(request: Request) -> Bot:
    return request.app.state.bot

def get_notifier(request: Request) -> "Notifier":
    return request.app.state.notifier

# --- Зависимости аутентификации и авторизации ---

def _token_user_id(token: str) -> int | None:
    """ID пользователя из JWT или None, если токен невалиден."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        return None
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        logger.warning("Token payload has no valid 'sub' (user_id).")
        return None
    return int(subject)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(strict_bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Пользователь по Bearer-токену. Нет токена, токен невалиден или
    пользователь удален из БД - 401.
    Пользователь кладется в request.state для ключа rate limit.
    """
    user_id = _token_user_id(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first() if user_id is not None else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.user = user
    return user


def is_admin(telegram_id: int) -> bool:
    return telegram_id in settings.ADMIN_TELEGRAM_IDS


def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    """Пропускает только пользователей, чей Telegram ID есть в ADMIN_TELEGRAM_IDS."""
    if not is_admin(current_user.telegram_id):
        logger.warning(f"Permission denied for user TG ID {current_user.telegram_id}.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized. Admin only."
        )
    return current_user
