"""
core/shopping.py
────────────────────────────────────────────────────────────────────────
Shopping list consolidation and prep tips for a finished plan.

Ingredient strings are normalised (trim + lower-case) and tallied with
pandas; the list keeps first-appearance order and annotates anything
used more than once with a bulk-buy hint.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

import pandas as pd

from core.models.meal import StructuredMeal

BULK_TIERS = (
    (4, "(bulk size - save 35%)"),
    (3, "(bulk size - save 25%)"),
    (2, "(save 15%)"),
)


def normalise(ingredient: str) -> str:
    return " ".join(ingredient.split()).lower()


def ingredient_frequency(meals: Iterable[StructuredMeal]) -> Dict[str, int]:
    names = [normalise(i) for m in meals for i in m.ingredients if i and i.strip()]
    if not names:
        return {}
    df = pd.DataFrame({"ingredient": names})
    counts = df.groupby("ingredient", sort=False).size()
    return {str(k): int(v) for k, v in counts.items()}


def annotate(ingredient: str, count: int) -> str:
    for threshold, note in BULK_TIERS:
        if count >= threshold:
            return f"{ingredient} {note}"
    return ingredient


def build_shopping_list(meals: Sequence[StructuredMeal]) -> Tuple[List[str], Dict[str, int]]:
    freq = ingredient_frequency(meals)
    return [annotate(name, n) for name, n in freq.items()], freq


def prep_tips(freq: Dict[str, int], heroes: Sequence[str]) -> List[str]:
    tips = [
        "Group similar prep tasks together to save time",
        "Focus on weight-based priorities when making substitutions",
    ]
    if heroes:
        tips.append(f"Prep hero ingredients in batches for multiple meals: {', '.join(heroes)}")
    bulk = [name for name, n in freq.items() if n >= 3]
    if bulk:
        tips.append(f"Buy in bulk for ingredients used 3+ times: {', '.join(bulk)}")
        tips.append("Store bulk ingredients properly to prevent waste")
    return tips
