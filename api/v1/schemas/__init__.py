"""Re-export request/response schemas for easy imports."""

from core.models.meal import BaseMealSelection, MealScore
from core.models.plan import MealPlan, MealPlanRequest

from .meal import BaseMealRequest, RankedMealsRequest

__all__ = [
    "BaseMealRequest",
    "BaseMealSelection",
    "MealPlan",
    "MealPlanRequest",
    "MealScore",
    "RankedMealsRequest",
]
