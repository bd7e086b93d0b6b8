"""
core/adaptation.py
────────────────────────────────────────────────────────────────────────
Ingredient-substitution engine that tries to make a meal satisfy the
user's dietary restrictions while keeping the dish recognisable.

`adapt_meal()` never mutates its input: it returns a *new* meal built
with `model_copy(update=...)` plus a list of human-readable notes.
Substitutes are chosen so they do not themselves trip the keyword scan
in `core.dietary` (e.g. "oat drink", not "oat milk").
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, TypeVar

from core.dietary import normalize_restriction
from core.models.meal import StructuredMeal
from core.models.user import PriorityWeights

_LOG = logging.getLogger(__name__)

M = TypeVar("M", bound=StructuredMeal)

# ──────────────── substitution tables ──────────────────
# more specific keys first – tables are applied in insertion order
_MEAT_SWAPS: Dict[str, List[str]] = {
    "chicken": ["tofu", "tempeh", "chickpeas", "mushrooms"],
    "beef": ["black beans", "lentils", "mushrooms"],
    "pork": ["jackfruit", "tempeh", "mushrooms"],
    "seafood": ["king oyster mushrooms", "hearts of palm"],
    "fish": ["tofu", "hearts of palm", "banana blossom"],
    "bacon": ["smoked tempeh", "coconut flakes"],
    "meat": ["plant protein", "beans", "lentils", "tofu"],
}
_DAIRY_SWAPS: Dict[str, List[str]] = {
    "milk": ["oat drink", "soy drink", "coconut drink"],
    "cheese": ["nutritional yeast", "cashew spread"],
    "butter": ["olive oil", "coconut oil"],
    "cream": ["coconut whip", "blended silken tofu"],
    "yogurt": ["cultured coconut", "cultured soy"],
}

SUBSTITUTIONS: Dict[str, Dict[str, List[str]]] = {
    "vegetarian": dict(_MEAT_SWAPS),
    "vegan": {
        **_MEAT_SWAPS,
        **_DAIRY_SWAPS,
        "eggs": ["flax seed", "chia seed", "tofu scramble"],
        "honey": ["maple syrup", "agave nectar", "date syrup"],
        "dairy": ["plant-based"],
    },
    "gluten-free": {
        "breadcrumbs": ["crushed rice crackers", "almond meal"],
        "wheat flour": ["rice starch", "almond meal"],
        "soy sauce": ["tamari", "coconut aminos"],
        "flour": ["rice starch", "almond meal", "cornstarch"],
        "pasta": ["rice noodles", "zucchini noodles"],
        "bread": ["rice cakes", "corn tortillas"],
        "wheat": ["rice"],
    },
    "dairy-free": dict(_DAIRY_SWAPS),
    "nut-free": {
        "almond milk": ["oat drink", "soy drink", "rice drink"],
        "peanut butter": ["sunflower seed spread", "tahini"],
        "almonds": ["sunflower seeds", "pumpkin seeds"],
        "cashews": ["sunflower seeds", "hemp seeds"],
        "walnuts": ["pumpkin seeds", "sunflower seeds"],
        "peanuts": ["roasted chickpeas"],
        "almond": ["sunflower seed"],
        "cashew": ["sunflower seed"],
        "walnut": ["pumpkin seed"],
        "peanut": ["roasted chickpea"],
        "nuts": ["seeds"],
    },
    "keto": {
        "potatoes": ["cauliflower", "turnips", "radishes"],
        "potato": ["cauliflower"],
        "pasta": ["zucchini noodles", "shirataki noodles", "spaghetti squash"],
        "rice": ["cauliflower crumbs", "shirataki"],
        "bread": ["lettuce wraps", "cloud loaf"],
        "sugar": ["stevia", "erythritol", "monk fruit sweetener"],
        "flour": ["coconut meal", "almond meal"],
    },
}

_ECONOMICAL = ("beans", "lentils", "tofu", "oat drink", "rice starch")
_NUTRITIOUS = ("tempeh", "chickpeas", "almond", "cashew", "quinoa")
_ALLERGENS = ("peanut", "tree nut", "milk", "egg", "soy", "wheat", "fish", "shellfish")


@dataclass(frozen=True)
class AdaptationResult:
    meal: StructuredMeal
    adaptations: tuple[str, ...]
    is_adapted: bool


def select_substitute(substitutes: Sequence[str], weights: PriorityWeights) -> str:
    """Cost-heavy users get the cheap swap, health-heavy users the nutritious one."""
    if len(substitutes) == 1:
        return substitutes[0]
    if weights.cost > 0.7:
        for sub in substitutes:
            if any(e in sub for e in _ECONOMICAL):
                return sub
    if weights.health > 0.7:
        for sub in substitutes:
            if any(h in sub for h in _NUTRITIOUS):
                return sub
    return substitutes[0]


def extract_allergen(restriction: str) -> str | None:
    low = restriction.lower()
    for allergen in _ALLERGENS:
        if allergen in low:
            return allergen
    match = re.search(r"allergic to (\w+)", low)
    return match.group(1) if match else None


def _replace(text: str, original: str, substitute: str) -> str:
    return re.sub(re.escape(original), substitute, text, flags=re.IGNORECASE)


def _swap(
    text: str,
    table: Dict[str, List[str]],
    weights: PriorityWeights,
    restriction: str,
    notes: list[str] | None,
) -> str:
    for original, subs in table.items():
        if original in text.lower():
            sub = select_substitute(subs, weights)
            text = _replace(text, original, sub)
            if notes is not None:
                notes.append(f"Replaced {original} with {sub} for {restriction}")
    return text


def _ordered(restrictions: Iterable[str]) -> list[str]:
    return sorted(restrictions, key=str.lower)


def adapt_meal(
    meal: M,
    restrictions: Iterable[str],
    weights: PriorityWeights,
) -> AdaptationResult:
    restrictions = _ordered(restrictions)
    if not restrictions:
        return AdaptationResult(meal, (), False)

    ingredients = list(meal.ingredients)
    instructions = list(meal.instructions)
    notes: list[str] = []

    for restriction in restrictions:
        table = SUBSTITUTIONS.get(normalize_restriction(restriction))
        if table:
            ingredients = [_swap(i, table, weights, restriction, notes) for i in ingredients]
            instructions = [_swap(s, table, weights, restriction, None) for s in instructions]
        elif "allerg" in restriction.lower():
            allergen = extract_allergen(restriction)
            if not allergen:
                continue
            kept = [ing for ing in ingredients if allergen not in ing.lower()]
            notes.extend(
                f"Removed {ing} due to {allergen} allergy"
                for ing in ingredients if allergen in ing.lower()
            )
            if len(kept) < len(ingredients) * 0.7:
                notes.append(f"Warning: significant ingredients removed due to {allergen} allergy")
            ingredients = kept

    if not notes:
        return AdaptationResult(meal, (), False)

    update: dict = {"ingredients": tuple(ingredients), "instructions": tuple(instructions)}
    if len(notes) > 2:
        update["name"] = f"{restrictions[0]}-Friendly {meal.name}"
    _LOG.debug("adapted %s: %s", meal.name, notes)
    return AdaptationResult(meal.model_copy(update=update), tuple(notes), True)
