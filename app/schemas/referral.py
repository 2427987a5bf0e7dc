# app/schemas/referral.py
from pydantic import BaseModel

class ReferralInfo(BaseModel):
    referral_code: str
    referral_link: str
    referral_count: int  # Сколько человек пришло по ссылке
    total_earned: int    # Сколько всего звезд заработано на приглашениях
