"""
core/cuisine.py
────────────────────────────────────────────────────────────────────────
Turn a raw cultural-research record (name, description, techniques,
ingredient lists) into a `StructuredMeal`.

All estimators are deterministic keyword rules so that the same cache
contents always produce the same meals (and therefore the same ranking).
"""
from __future__ import annotations

from typing import Any, Dict, List, Sequence

from core.models.cuisine import CuisineSummary
from core.models.meal import Nutrition, StructuredMeal
from services.nutrition import estimate_nutrition

TECHNIQUE_KEYWORDS = (
    "stir-fry", "steam", "boil", "saute", "grill", "roast", "braise",
    "fry", "bake", "simmer", "poach", "blanch",
)

_COOK_MINUTES = (
    ("stir-fry", 10),
    ("steam", 15),
    ("saute", 12),
    ("braise", 45),
    ("roast", 30),
)


def extract_cooking_techniques(description: str) -> List[str]:
    text = description.lower()
    found = [t for t in TECHNIQUE_KEYWORDS if t in text]
    return found or ["saute"]


def authenticity_score(raw: Dict[str, Any], summary: CuisineSummary) -> float:
    score = 0.7
    text = f"{raw.get('name', '')} {raw.get('description', '')}".lower()
    hits = [i for i in summary.common_healthy_ingredients if i.lower() in text]
    score += min(len(hits) * 0.1, 0.3)
    return round(min(score, 1.0), 4)


def string_list(value: Any, split: bool = True) -> List[str]:
    """
    Coerce an LLM-supplied list field. A bare string is split on commas
    (or kept whole with `split=False`) rather than iterated per character.
    """
    if isinstance(value, str):
        parts = value.split(",") if split else [value]
        return [p.strip() for p in parts if p.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


def estimate_prep_time(raw: Dict[str, Any]) -> int:
    count = len(string_list(raw.get("full_ingredients"))) or 5
    return min(count * 2, 20)


def estimate_cook_time(techniques: Sequence[str]) -> int:
    for keyword, minutes in _COOK_MINUTES:
        if keyword in techniques:
            return minutes
    return 20


def estimate_difficulty(raw: Dict[str, Any], techniques: Sequence[str]) -> float:
    difficulty = 2.0
    if "braise" in techniques or "roast" in techniques:
        difficulty += 1
    if len(string_list(raw.get("full_ingredients"))) > 10:
        difficulty += 0.5
    if len(string_list(raw.get("healthy_modifications"))) > 2:
        difficulty += 0.5
    return min(difficulty, 5.0)


def structure_meal(
    raw: Dict[str, Any],
    culture: str,
    index: int,
    summary: CuisineSummary | None = None,
) -> StructuredMeal:
    summary = summary or CuisineSummary()
    description = str(raw.get("description") or "")
    techniques = string_list(raw.get("cooking_techniques")) or extract_cooking_techniques(description)
    ingredients = (
        string_list(raw.get("full_ingredients")) or string_list(raw.get("healthy_ingredients"))
    )

    if isinstance(raw.get("nutrition"), dict):
        nutrition = Nutrition(**raw["nutrition"])
    else:
        nutrition = estimate_nutrition(f"{raw.get('name', '')} {description}")

    return StructuredMeal(
        id=f"{culture.lower().replace(' ', '_')}_{index}",
        name=str(raw.get("name") or f"{culture} dish {index}"),
        description=description,
        cuisine=culture,
        meal_type=raw.get("meal_type"),
        authenticity_score=authenticity_score(raw, summary),
        ingredients=tuple(ingredients),
        instructions=tuple(string_list(raw.get("instructions"), split=False)),
        cooking_techniques=tuple(techniques),
        nutrition=nutrition,
        estimated_prep_time=estimate_prep_time(raw),
        estimated_cook_time=estimate_cook_time(techniques),
        difficulty_level=estimate_difficulty(raw, techniques),
    )
