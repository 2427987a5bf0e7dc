# app/routers/auth.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.bot.services.notification import Notifier
from app.core.limiter import limiter
from app.dependencies import get_db, get_notifier
from app.schemas.user import AuthResponse, TelegramLoginData
from app.services.auth import authenticate_telegram_user

router = APIRouter()

@router.get("/")
def read_root():
    return {"status": "ok"}


@router.post("/auth/telegram", response_model=AuthResponse)
@limiter.limit("5/minute")
async def login_via_telegram(
    request: Request,
    login_data: TelegramLoginData,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Аутентифицирует пользователя с помощью Telegram InitData.
    Первый вход создает профиль, каждый вход учитывается в серии.
    Защищено лимитом в 5 запросов в минуту с одного клиента.
    """
    return authenticate_telegram_user(db, login_data.init_data, notifier)
