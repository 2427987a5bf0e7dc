# app/schemas/admin.py
from pydantic import BaseModel
from typing import Optional

from app.schemas.transaction import Transaction
from app.schemas.user import UserCard, UserProfile


class AdminUserListItem(UserProfile):
    referred_by_id: Optional[int] = None
    bot_accessible: bool

    class Config:
        from_attributes = True

class AdminTransactionListItem(Transaction):
    user: Optional[UserCard] = None

    class Config:
        from_attributes = True

class AdminStats(BaseModel):
    total_users: int
    active_users: int
    total_matches: int
    accepted_matches: int
    pending_matches: int
    completed_transactions: int
    total_revenue: int
