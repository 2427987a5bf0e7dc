# app/models/user.py

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Integer, JSON, String, Boolean, BIGINT, DateTime, Text, func

from app.db.session import Base

GENDERS = ("male", "female", "other")

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    telegram_id = Column(BIGINT, unique=True, index=True, nullable=False)
    username = Column(String, nullable=True) # Username может быть опциональным
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)

    # Анкета
    bio = Column(Text, nullable=False, default="", server_default="")
    age = Column(Integer, nullable=True)
    gender = Column(String, nullable=False, default="other", server_default="other")
    location = Column(String, nullable=True)
    interests = Column(JSON, nullable=False, default=list)

    # Баланс в звездах и бесплатные подборы. Никогда не уходят в минус.
    balance = Column(Integer, nullable=False, default=0, server_default="0")
    free_matches = Column(Integer, nullable=False, default=0, server_default="0")

    referral_code = Column(String, unique=True, index=True, nullable=True)
    # Кто пригласил этого пользователя
    referred_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    referral_count = Column(Integer, nullable=False, default=0, server_default="0")

    login_streak = Column(Integer, nullable=False, default=0, server_default="0")
    last_login_date = Column(Date, nullable=True) # Локальная дата последнего входа

    is_premium = Column(Boolean, default=False, nullable=False, server_default='false')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')
    bot_accessible = Column(Boolean, default=True, nullable=False, server_default='true')

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        CheckConstraint("free_matches >= 0", name="ck_users_free_matches_non_negative"),
        CheckConstraint(f"gender IN {GENDERS}", name="ck_users_gender"),
    )
