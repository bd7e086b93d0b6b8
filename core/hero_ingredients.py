"""
core/hero_ingredients.py
────────────────────────────────────────────────────────────────────────
Hero ingredients: a handful of cheap, versatile staples deliberately
reused across the plan so the shopping basket stays small.

How many are picked depends on the cost weight (>0.7 → 6, >0.5 → 4,
else 2). Candidates that would trip the dietary filter are dropped
before scoring.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from core import dietary
from core.models.user import UserProfile

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeroIngredient:
    name: str
    versatility: float
    cost_efficiency: float
    cuisines: tuple[str, ...]


CATALOGUE: tuple[HeroIngredient, ...] = (
    HeroIngredient("onions", 0.98, 0.95, ("American", "French", "Italian", "Asian", "Mexican", "Indian", "Mediterranean", "Chinese")),
    HeroIngredient("garlic", 0.95, 0.90, ("Italian", "Asian", "Mediterranean", "Mexican", "Indian", "Chinese")),
    HeroIngredient("eggs", 0.95, 0.90, ("American", "French", "Asian", "Italian", "Mexican", "Chinese")),
    HeroIngredient("rice", 0.90, 0.95, ("Asian", "Mexican", "Indian", "Mediterranean", "Chinese")),
    HeroIngredient("olive oil", 0.92, 0.80, ("Italian", "Mediterranean", "American", "Mexican")),
    HeroIngredient("chicken thighs", 0.90, 0.85, ("American", "Asian", "Mediterranean", "Mexican", "Indian", "Chinese")),
    HeroIngredient("canned tomatoes", 0.85, 0.90, ("Italian", "Mexican", "American", "Mediterranean", "Indian")),
    HeroIngredient("bell peppers", 0.85, 0.75, ("American", "Italian", "Mexican", "Asian", "Mediterranean", "Chinese")),
    HeroIngredient("carrots", 0.80, 0.85, ("American", "French", "Asian", "Mediterranean", "Chinese")),
    HeroIngredient("lentils", 0.80, 0.90, ("Indian", "Mediterranean", "American")),
    HeroIngredient("black beans", 0.75, 0.95, ("Mexican", "American", "Latin American")),
    HeroIngredient("ginger", 0.80, 0.85, ("Chinese", "Indian", "Japanese", "Thai", "Korean", "Asian")),
    HeroIngredient("tofu", 0.75, 0.90, ("Chinese", "Japanese", "Korean", "Thai", "Asian")),
)


def hero_count(cost_weight: float) -> int:
    if cost_weight > 0.7:
        return 6
    if cost_weight > 0.5:
        return 4
    return 2


def select_hero_ingredients(profile: UserProfile) -> List[str]:
    cultures = {c.lower() for c in profile.cultures()}
    available = " ".join(profile.available_ingredients).lower()
    cost_w = profile.priority_weights.cost

    def _score(h: HeroIngredient) -> float:
        s = h.versatility + h.cost_efficiency * cost_w
        if cultures & {c.lower() for c in h.cuisines}:
            s += 0.3
        if h.name in available or h.name.rstrip("s") in available:
            s += 0.2
        return s

    safe = [
        h for h in CATALOGUE
        if dietary.check([h.name], profile.dietary_restrictions).compliant
    ]
    # sorted() is stable, catalogue order breaks ties
    picked = sorted(safe, key=_score, reverse=True)[: hero_count(cost_w)]
    names = [h.name for h in picked]
    _LOG.debug("hero ingredients: %s", names)
    return names


def heroes_in(ingredients: tuple[str, ...] | List[str], heroes: List[str]) -> tuple[str, ...]:
    text = " ".join(ingredients).lower()
    return tuple(h for h in heroes if h in text or h.rstrip("s") in text)
