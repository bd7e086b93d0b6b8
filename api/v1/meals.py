# api/v1/meals.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from api.v1.deps import get_base_selector, get_engine
from api.v1.schemas import BaseMealRequest, BaseMealSelection, MealScore, RankedMealsRequest
from core.base_meal import BaseMealSelector
from core.errors import NoCandidatesError
from core.ranking import CulturalRankingEngine

router = APIRouter()


@router.post(
    "/ranked",
    response_model=list[MealScore],
    status_code=status.HTTP_200_OK,
    summary="Locally ranked cultural meals (no LLM)",
)
async def ranked_meals(
    body: RankedMealsRequest,
    engine: CulturalRankingEngine = Depends(get_engine),
) -> list[MealScore]:
    return await engine.get_ranked_meals(
        body.user_id, body.profile, body.limit, body.min_score_threshold
    )


@router.post(
    "/base",
    response_model=BaseMealSelection,
    status_code=status.HTTP_200_OK,
    summary="Pick the anchor meal for a plan",
)
async def base_meal(
    body: BaseMealRequest,
    selector: BaseMealSelector = Depends(get_base_selector),
) -> BaseMealSelection:
    selection = await selector.find_optimal_base_meal(
        body.user_id, body.profile, body.preferred_cultures
    )
    if selection is None:
        raise NoCandidatesError("No cached cultural meals match this profile")
    return selection
