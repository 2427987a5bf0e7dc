# app/routers/payment.py
from aiogram import Bot
from fastapi import APIRouter, Depends

from app.dependencies import get_bot, get_current_user
from app.models.user import User
from app.schemas.payment import InvoiceCreate, InvoiceLink
from app.services import payment as payment_service

router = APIRouter(prefix="/payments")


@router.post("/invoice", response_model=InvoiceLink)
async def create_invoice(
    invoice_data: InvoiceCreate,
    current_user: User = Depends(get_current_user),
    bot: Bot = Depends(get_bot),
):
    """Ссылка на оплату звездами Telegram. Зачисление приходит через successful_payment в бот."""
    invoice_url = await payment_service.create_invoice(
        bot, current_user, invoice_data.amount, invoice_data.description
    )
    return InvoiceLink(invoice_url=invoice_url)
