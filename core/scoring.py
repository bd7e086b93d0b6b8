"""
core/scoring.py
────────────────────────────────────────────────────────────────────────
Weight-based meal scorer.

`MealScorer.score(meal, profile)` returns four component scores in
[0, 1] plus their weighted combination:

    cultural = authenticity × profile preference for the cuisine
    health   = cooking technique + macro balance heuristic
    cost     = staple-vs-premium ingredient heuristic
    time     = 1 − (prep + cook) / horizon   (horizon = max cook time or 120)

The scorer holds no state and reads no clock: identical inputs always
produce an identical `MealScore`.
"""
from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from core.models.meal import ComponentScores, MealScore, StructuredMeal
from core.models.user import PriorityWeights, UserProfile

_LOG = logging.getLogger(__name__)

COMPONENTS = ("cultural", "health", "cost", "time")
DEFAULT_TIME_HORIZON = 120  # minutes

_HEALTHY_TECHNIQUES = ("steam", "grill", "bake", "boil", "poach")
_FRIED = ("deep-fr", "fried", "fry")

STAPLE_INGREDIENTS = (
    "rice", "bean", "lentil", "egg", "potato", "onion", "garlic", "flour",
    "pasta", "noodle", "tofu", "cabbage", "carrot", "chicken", "oat",
    "tomato", "bread", "chickpea", "corn", "spinach", "pepper", "salt",
    "oil", "ginger", "milk", "yogurt", "tortilla", "flatbread",
)
PREMIUM_INGREDIENTS = (
    "saffron", "truffle", "lobster", "duck", "beef", "wine", "shrimp",
    "prawn", "salmon", "scallop", "caviar", "lamb", "pine nut", "prosciutto",
    "crab", "veal", "parmigiano", "wagyu", "cashew", "pistachio",
)


def _clip(x: float) -> float:
    return float(np.clip(x, 0.0, 1.0))


def _is_fried(text: str) -> bool:
    stripped = text.replace("stir-fry", "").replace("stir-fried", "")
    return any(k in stripped for k in _FRIED)


# ──────────────────────────── components ─────────────────────────── #
def health_score(meal: StructuredMeal) -> float:
    text = " ".join((*meal.cooking_techniques, meal.description)).lower()
    score = 0.4
    healthy = sum(1 for t in _HEALTHY_TECHNIQUES if t in text)
    score += min(healthy * 0.15, 0.3)
    if _is_fried(text):
        score -= 0.2
    if meal.nutrition.protein_g >= 20:
        score += 0.15
    if 300 <= meal.nutrition.calories <= 600:
        score += 0.15
    return _clip(score)


def cost_score(meal: StructuredMeal) -> float:
    if not meal.ingredients:
        return 0.5
    low = [i.lower() for i in meal.ingredients]
    premium = sum(1 for i in low if any(p in i for p in PREMIUM_INGREDIENTS))
    staple = sum(
        1 for i in low
        if any(s in i for s in STAPLE_INGREDIENTS)
        and not any(p in i for p in PREMIUM_INGREDIENTS)
    )
    score = 0.4 + 0.5 * (staple / len(low)) - 0.15 * premium
    return _clip(score)


def time_score(meal: StructuredMeal, max_cook_time: int | None = None) -> float:
    horizon = max_cook_time or DEFAULT_TIME_HORIZON
    return _clip(1.0 - meal.total_time / horizon)


def cultural_score(meal: StructuredMeal, profile: UserProfile) -> float:
    return _clip(meal.authenticity_score * profile.cultural_preference(meal.cuisine))


def weighted_total(components: Sequence[float], weights: PriorityWeights) -> float:
    vec = np.array(components, dtype=float)
    w = np.array([getattr(weights, k) for k in COMPONENTS], dtype=float)
    denom = w.sum()
    if denom <= 0:
        return _clip(vec.mean())
    return _clip(float(np.dot(w, vec) / denom))


# ──────────────────────────── scorer ─────────────────────────────── #
class MealScorer:
    def component_scores(self, meal: StructuredMeal, profile: UserProfile) -> ComponentScores:
        return ComponentScores(
            cultural=cultural_score(meal, profile),
            health=health_score(meal),
            cost=cost_score(meal),
            time=time_score(meal, profile.max_cook_time),
        )

    def score(self, meal: StructuredMeal, profile: UserProfile) -> MealScore:
        comps = self.component_scores(meal, profile)
        total = weighted_total(
            [getattr(comps, k) for k in COMPONENTS], profile.priority_weights
        )
        return MealScore(
            meal=meal,
            component_scores=comps,
            total_score=round(total, 6),
            ranking_explanation=explain(meal, comps),
        )


def explain(meal: StructuredMeal, scores: ComponentScores) -> str:
    parts = []
    if scores.cultural > 0.8:
        parts.append(f"High cultural match ({scores.cultural * 100:.0f}%)")
    if meal.authenticity_score > 0.8:
        parts.append(f"Authentic {meal.cuisine} recipe")
    if scores.health > 0.7:
        parts.append("Good health score")
    if scores.cost > 0.7:
        parts.append("Cost-efficient ingredients")
    if scores.time > 0.7:
        parts.append("Quick preparation")
    return ", ".join(parts) or "Balanced meal option"
