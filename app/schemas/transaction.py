# app/schemas/transaction.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional


class Transaction(BaseModel):
    id: int
    telegram_id: int
    type: str
    amount: int
    description: Optional[str] = None
    payment_id: Optional[str] = None
    status: str
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="meta")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
