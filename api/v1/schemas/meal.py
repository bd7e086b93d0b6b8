from __future__ import annotations

from pydantic import BaseModel, Field

from core.models.user import UserProfile


class RankedMealsRequest(BaseModel):
    user_id: int = 0
    profile: UserProfile
    limit: int = Field(20, ge=1, le=100)
    min_score_threshold: float = Field(0.0, ge=0, le=1)


class BaseMealRequest(BaseModel):
    user_id: int = 0
    profile: UserProfile
    preferred_cultures: list[str] = []
