# app/schemas/match.py
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Literal, Optional

from app.schemas.user import Gender, UserCard


class AgeRange(BaseModel):
    min: int = Field(ge=18, le=100)
    max: int = Field(ge=18, le=100)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min > self.max:
            raise ValueError("age_range.min must not exceed age_range.max")
        return self

class MatchFilters(BaseModel):
    age_range: Optional[AgeRange] = None
    gender: Optional[Gender] = None
    location: Optional[str] = Field(default=None, max_length=100)
    interests: List[str] = []

    @field_validator("location")
    def blank_location_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    @field_validator("interests")
    def normalize_interests(cls, v):
        return list(dict.fromkeys(tag.strip().lower() for tag in v if tag.strip()))


class Match(BaseModel):
    id: int
    match_type: str
    status: str
    user1_status: str
    user2_status: str
    user1: UserCard
    user2: UserCard
    filters: Optional[MatchFilters] = None
    created_at: Optional[datetime] = None
    expires_at: datetime

    class Config:
        from_attributes = True


class FilteredMatchRequest(BaseModel):
    filters: MatchFilters = MatchFilters()

class ReactionRequest(BaseModel):
    reaction: Literal["interested", "passed"]

class MatchResult(BaseModel):
    success: bool
    match: Optional[Match] = None
    message: Optional[str] = None
    # Чем оплачен подбор: ничем, бесплатным подбором или звездами
    charge: Literal["none", "free_credit", "balance"] = "none"
