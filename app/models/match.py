# app/models/match.py
from sqlalchemy import CheckConstraint, Column, Integer, String, ForeignKey, DateTime, JSON, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.db.session import Base

MATCH_TYPES = ("random", "filtered")
MATCH_STATUSES = ("pending", "accepted", "rejected", "expired")
REACTIONS = ("pending", "interested", "passed")


class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    # Порядок фиксируется при создании: user1 - инициатор подбора
    user1_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user2_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    match_type = Column(String, nullable=False)
    # Вычисляется только из user1_status/user2_status (и сборщиком просроченных)
    status = Column(String, nullable=False, default="pending", server_default="pending")
    user1_status = Column(String, nullable=False, default="pending", server_default="pending")
    user2_status = Column(String, nullable=False, default="pending", server_default="pending")

    # Только для 'filtered': {"age_range": {"min", "max"}, "gender", "location", "interests"}
    filters = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # Токен версии для оптимистичной блокировки
    version = Column(Integer, nullable=False, default=1)

    user1 = relationship("User", foreign_keys=[user1_id])
    user2 = relationship("User", foreign_keys=[user2_id])

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("user1_id <> user2_id", name="ck_matches_distinct_users"),
        CheckConstraint(f"match_type IN {MATCH_TYPES}", name="ck_matches_match_type"),
        CheckConstraint(f"status IN {MATCH_STATUSES}", name="ck_matches_status"),
        CheckConstraint(f"user1_status IN {REACTIONS}", name="ck_matches_user1_status"),
        CheckConstraint(f"user2_status IN {REACTIONS}", name="ck_matches_user2_status"),
        Index("ix_matches_user1_user2", "user1_id", "user2_id"),
        Index("ix_matches_status_created_at", "status", "created_at"),
    )
