from __future__ import annotations

from pydantic import BaseModel, Field

from core.models.meal import BaseMealSelection, WeightBasedMeal, WeightSatisfaction
from core.models.user import UserProfile


class MealPlanRequest(BaseModel):
    user_id: int = 0
    profile: UserProfile
    num_days: int = Field(ge=1, le=28)
    meals_per_day: int = Field(3, ge=1, le=6)
    max_cook_time: int | None = Field(None, gt=0)
    max_difficulty: float | None = Field(None, ge=1, le=5)

    @property
    def total_meals(self) -> int:
        return self.num_days * self.meals_per_day


class PlanMetadata(BaseModel):
    cultural_meals_used: int = 0
    optimal_cultural_count: int = 0
    average_objective_overlap: float = 0
    weight_satisfaction: WeightSatisfaction = WeightSatisfaction()
    compliant_meals: int = 0
    total_meals: int = 0
    generation_strategy: str = "weight-based-with-cultural-integration"


class MealPlan(BaseModel):
    # day_number -> meal_type -> meal, day-major insertion order
    days: dict[int, dict[str, WeightBasedMeal]]
    shopping_list: list[str] = []
    ingredient_frequency: dict[str, int] = {}
    prep_tips: list[str] = []
    hero_ingredients: list[str] = []
    base_meal: BaseMealSelection | None = None
    metadata: PlanMetadata = PlanMetadata()

    def meals(self) -> list[WeightBasedMeal]:
        return [m for day in self.days.values() for m in day.values()]
