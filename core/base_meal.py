"""
core/base_meal.py
────────────────────────────────────────────────────────────────────────
Base-meal ("anchor") selection and the similar-vs-variety split.

* `find_optimal_base_meal()` – local ranking (top 15, threshold 0.4),
  then LLM re-ranking of those candidates down to 5; the winner anchors
  the plan. Falls back to the top local meal when the AI returns nothing.
* `calculate_base_influence()` – pure, always in [0.2, 0.7].
* `order_by_similarity()` – arrange cultural candidates so the plan
  alternates between dishes close to the base and dishes far from it.

Similarity is cosine similarity of bag-of-words vectors built from each
meal's ingredients, techniques and cuisine.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Sequence, Tuple

import numpy as np
from sklearn.feature_extraction.text import CountVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from core.llm_ranking import LLMRankingDelegate
from core.models.meal import BaseMealSelection, MealScore, StructuredMeal
from core.models.user import UserProfile
from core.ranking import CulturalRankingEngine

_LOG = logging.getLogger(__name__)

BASE_CANDIDATES = 15
BASE_THRESHOLD = 0.4
AI_SHORTLIST = 5


def calculate_base_influence(profile: UserProfile) -> float:
    w = profile.priority_weights
    influence = w.cultural * 0.4 - w.variety * 0.3 + w.time * 0.1
    return max(0.2, min(0.7, influence))


def split_counts(profile: UserProfile, total: int) -> Tuple[int, int]:
    """(similar, variety) slot counts for `total` meals; one slot is the base."""
    similar = math.ceil(total * calculate_base_influence(profile))
    variety = max(0, total - similar - 1)
    return similar, variety


# ──────────────────────────── similarity ──────────────────────────── #
def _meal_doc(meal: StructuredMeal) -> str:
    return " ".join((*meal.ingredients, *meal.cooking_techniques, meal.cuisine)).lower()


def similarity_to(base: StructuredMeal, meals: Sequence[StructuredMeal]) -> np.ndarray:
    if not meals:
        return np.zeros(0)
    docs = [_meal_doc(base)] + [_meal_doc(m) for m in meals]
    try:
        matrix = CountVectorizer().fit_transform(docs)
    except ValueError:  # empty vocabulary
        return np.zeros(len(meals))
    return cosine_similarity(matrix[0], matrix[1:])[0]


def order_by_similarity(
    base: StructuredMeal,
    candidates: Sequence[StructuredMeal],
    similar_quota: int,
    variety_quota: int,
) -> List[StructuredMeal]:
    """
    Alternate most-similar / least-similar picks, similar first.

    When one quota is spent the other kind is taken; once both are spent
    the remaining candidates follow in descending similarity.
    """
    sims = similarity_to(base, candidates)
    # stable: ties keep the incoming (ranked) order
    pool = [candidates[i] for i in np.argsort(-sims, kind="stable")]
    ordered: List[StructuredMeal] = []
    want_similar = True
    while pool:
        if similar_quota <= 0 and variety_quota <= 0:
            ordered.extend(pool)
            break
        take_similar = (want_similar and similar_quota > 0) or variety_quota <= 0
        if take_similar:
            ordered.append(pool.pop(0))
            similar_quota -= 1
        else:
            ordered.append(pool.pop())
            variety_quota -= 1
        want_similar = not want_similar
    return ordered


# ──────────────────────────── selector ────────────────────────────── #
class BaseMealSelector:
    def __init__(self, engine: CulturalRankingEngine, delegate: LLMRankingDelegate) -> None:
        self._engine = engine
        self._delegate = delegate

    async def find_optimal_base_meal(
        self,
        user_id: int,
        profile: UserProfile,
        preferred_cultures: Sequence[str] = (),
    ) -> BaseMealSelection | None:
        if preferred_cultures:
            profile = profile.model_copy(
                update={"cultural_background": tuple(preferred_cultures)}
            )
        ranked = await self._engine.get_ranked_meals(
            user_id, profile, limit=BASE_CANDIDATES, min_score_threshold=BASE_THRESHOLD
        )
        _LOG.debug("%d ranked meals for base selection", len(ranked))
        if not ranked:
            return None

        ai = await self._delegate.rank_meals_in_parallel(ranked, profile, max_meals=AI_SHORTLIST)
        if not ai.ranked:
            _LOG.warning("AI ranking returned nothing, using top local meal")
            top = ranked[0]
        else:
            top = ai.ranked[0]
        _LOG.info("base meal: %s (%.0f%%)", top.meal.name, top.total_score * 100)
        return create_selection(top, profile)

    calculate_base_influence = staticmethod(calculate_base_influence)
    split_counts = staticmethod(split_counts)


def create_selection(scored: MealScore, profile: UserProfile) -> BaseMealSelection:
    w = profile.priority_weights
    s = scored.component_scores
    alignment: Dict[str, float] = {
        "cultural": s.cultural * w.cultural,
        "health": s.health * w.health,
        "cost": s.cost * w.cost,
        "time": s.time * w.time,
    }
    strongest = max(alignment, key=alignment.get)
    return BaseMealSelection(
        base_meal=scored.meal,
        similarity_score=scored.total_score,
        usage_rationale=_rationale(scored.meal, strongest),
        weight_alignment=alignment,
    )


def _rationale(meal: StructuredMeal, strongest: str) -> str:
    reasons = {
        "cultural": f"strongly matches your {meal.cuisine} cuisine preference",
        "health": (
            "offers excellent nutritional balance with "
            f"{', '.join(meal.cooking_techniques)} preparation"
        ),
        "cost": (
            "uses affordable, accessible ingredients like "
            f"{', '.join(meal.ingredients[:3])}"
        ),
        "time": f"can be prepared quickly with {meal.total_time} minutes total time",
    }
    return (
        f"Selected as base meal because it {reasons[strongest]}. "
        "This will guide similar meal selections in your plan."
    )
