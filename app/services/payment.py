# app/services/payment.py

import logging
import time

from aiogram import Bot
from aiogram.types import LabeledPrice
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import transaction as crud_transaction, user as crud_user
from app.models.user import User
from app.services import ledger

logger = logging.getLogger(__name__)


async def create_invoice(bot: Bot, user: User, amount: int, description: str) -> str:
    """Создает ссылку на оплату звездами Telegram (валюта XTR, без провайдера)."""
    payload = f"payment_{user.telegram_id}_{int(time.time() * 1000)}"
    try:
        invoice_url = await bot.create_invoice_link(
            title=f"StarMatch {description}"[:32],
            description=description,
            payload=payload,
            provider_token="",
            currency=settings.STARS_CURRENCY,
            prices=[LabeledPrice(label=description[:32], amount=amount)],
        )
    except Exception:
        logger.error(f"Failed to create invoice for user {user.id}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to create payment")
    logger.info(f"Invoice {payload} for {amount} stars created for user {user.id}")
    return invoice_url


def process_successful_payment(
    db: Session,
    telegram_id: int,
    amount: int,
    payment_id: str,
    description: str | None = None,
) -> tuple[User | None, bool]:
    """
    Зачисляет оплаченные звезды и пишет 'payment' в журнал.
    Повторное уведомление с тем же charge id игнорируется.
    Возвращает (пользователь, зачислено_ли_сейчас).
    """
    user = crud_user.get_user_by_telegram_id(db, telegram_id=telegram_id)
    if not user:
        logger.warning(f"Successful payment {payment_id} from unknown TG ID {telegram_id}. Ignoring.")
        return None, False

    if crud_transaction.get_transaction_by_payment_id(db, payment_id):
        logger.warning(f"Payment {payment_id} was already processed. Skipping.")
        return user, False

    try:
        crud_user.adjust_balance(db, user.id, amount)
        ledger.record(
            db, user,
            type="payment",
            amount=amount,
            description=description,
            payment_id=payment_id,
        )
        db.commit()
    except IntegrityError:
        # Тот же платеж параллельно обработал другой воркер
        db.rollback()
        logger.warning(f"Payment {payment_id} was processed concurrently. Skipping.")
        db.refresh(user)
        return user, False
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    logger.info(f"User {user.id} topped up {amount} stars (payment {payment_id}). Balance: {user.balance}")
    return user, True
