# app/routers/webhooks.py

import logging

from aiogram.types import Update
from fastapi import APIRouter, Header, HTTPException, Request, status

from app.core.config import settings

logger = logging.getLogger(__name__)
# --- Роутер для Telegram ---
# Будет подключен в main.py БЕЗ префикса
telegram_router = APIRouter()


@telegram_router.post(settings.TELEGRAM_WEBHOOK_PATH, include_in_schema=False)
async def telegram_webhook(
    request: Request,
    update: dict,
    x_telegram_bot_api_secret_token: str = Header(None)
):
    """
    Принимает обновления от Telegram и передает их в диспетчер aiogram.
    Через него приходят /start, /profile, /stats и события оплаты.
    """
    if x_telegram_bot_api_secret_token != settings.TELEGRAM_WEBHOOK_SECRET:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret token")

    await request.app.state.dp.feed_webhook_update(bot=request.app.state.bot, update=Update(**update))
    return {"status": "ok"}
