# app/models/transaction.py
from sqlalchemy import BIGINT, Column, Integer, String, ForeignKey, DateTime, JSON, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.db.session import Base

TRANSACTION_TYPES = ("payment", "referral_bonus", "streak_bonus", "refund")
TRANSACTION_STATUSES = ("pending", "completed", "failed", "refunded")


class Transaction(Base):
    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    telegram_id = Column(BIGINT, nullable=False)

    # 'payment', 'referral_bonus', 'streak_bonus', 'refund'
    type = Column(String, nullable=False)

    # Положительное число - начисление, отрицательное - списание
    amount = Column(Integer, nullable=False)
    description = Column(String, nullable=True)

    # telegram_payment_charge_id для оплат звездами
    payment_id = Column(String, nullable=True, unique=True)
    status = Column(String, nullable=False, default="pending", server_default="pending")

    # match_type / referral_code / streak_days в зависимости от типа.
    # Имя атрибута `metadata` зарезервировано в SQLAlchemy.
    meta = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    user = relationship("User")

    __table_args__ = (
        Index("ix_transactions_status_created_at", "status", "created_at"),
        Index("ix_transactions_telegram_id_created_at", "telegram_id", "created_at"),
    )
