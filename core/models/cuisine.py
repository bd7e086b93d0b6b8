from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from core.models.meal import StructuredMeal

DATA_VERSION = "1.2.0"


class CuisineSummary(BaseModel):
    common_healthy_ingredients: list[str] = []
    common_cooking_techniques: list[str] = []


class CulturalCuisineData(BaseModel):
    """
    Cached research for one culture. Meals are frozen; the bookkeeping
    fields (`last_accessed`, `access_count`) are only touched by the cache.
    """

    culture: str
    meals: list[StructuredMeal] = []
    source_quality_score: float = Field(0.8, ge=0, le=1)
    key_ingredients: list[str] = []
    summary: CuisineSummary = CuisineSummary()
    cached_at: datetime = Field(default_factory=datetime.utcnow)
    last_accessed: datetime = Field(default_factory=datetime.utcnow)
    access_count: int = 0
    data_version: str = DATA_VERSION
