# api/v1/plans.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from api.v1.deps import get_planner
from api.v1.schemas import MealPlan, MealPlanRequest
from core.planner import PlanAssembler

router = APIRouter()


@router.post(
    "",
    response_model=MealPlan,
    status_code=status.HTTP_200_OK,
    summary="Generate a weight-based meal plan",
)
async def create_meal_plan(
    body: MealPlanRequest,
    planner: PlanAssembler = Depends(get_planner),
) -> MealPlan:
    """
    Fill `num_days × meals_per_day` slots. Non-compliant slots come back
    flagged (`dietary_compliant: false`) rather than failing the request.
    """
    return await planner.generate_meal_plan(body)
