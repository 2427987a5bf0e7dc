# app/schemas/payment.py
from pydantic import BaseModel, Field


class InvoiceCreate(BaseModel):
    amount: int = Field(..., gt=0, le=100000, description="Количество звезд")
    description: str = Field(..., min_length=1, max_length=255)

class InvoiceLink(BaseModel):
    success: bool = True
    invoice_url: str
