# app/schemas/user.py
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional

Gender = Literal["male", "female", "other"]


# Схема для данных, которые мы получаем от фронтенда
class TelegramLoginData(BaseModel):
    init_data: str # Та самая строка initData от Telegram

# Схема для ответа с токеном
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Публичная карточка, которую видит вторая сторона пары
class UserCard(BaseModel):
    telegram_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    photo_url: Optional[str] = None
    age: Optional[int] = None
    gender: str
    location: Optional[str] = None
    interests: List[str] = []
    bio: str = ""

    class Config:
        from_attributes = True

# Схема для полного профиля пользователя, который мы отдаем клиенту
class UserProfile(UserCard):
    id: int
    balance: int
    free_matches: int
    referral_code: Optional[str] = None
    referral_count: int
    login_streak: int
    last_login_date: Optional[date] = None
    is_premium: bool
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AuthResponse(Token):
    user: UserProfile

# Схема для данных, которые пользователь может обновить
class UserUpdate(BaseModel):
    age: Optional[int] = Field(default=None, ge=18, le=100)
    gender: Optional[Gender] = None
    location: Optional[str] = Field(default=None, max_length=100)
    interests: Optional[List[str]] = None
    bio: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("interests")
    def normalize_interests(cls, v):
        # Теги храним в нижнем регистре и без повторов, порядок сохраняем
        if v is None:
            return v
        seen = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen
