# services/nutrition.py
"""
Ingredient-level nutrition lookup.

`get_nutrition_data()` queries Edamam's nutrition-data endpoint and
returns `None` whenever credentials are missing or the call fails – the
planner never depends on it. `estimate_nutrition()` is the keyword
fallback used when cached research carries no numbers.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

import httpx

from config import settings
from core.models.meal import Nutrition

_LOG = logging.getLogger(__name__)

EDAMAM_URL = "https://api.edamam.com/api/nutrition-data"


async def get_nutrition_data(
    ingredient: str,
    quantity: float = 1,
    unit: str = "",
    *,
    client: httpx.AsyncClient | None = None,
) -> Nutrition | None:
    if not (settings.edamam_app_id and settings.edamam_app_key):
        _LOG.debug("Edamam creds missing – skipping lookup for %s", ingredient)
        return None

    ingr = " ".join(p for p in (_fmt_qty(quantity), unit, ingredient) if p)
    params = dict(
        app_id=settings.edamam_app_id,
        app_key=settings.edamam_app_key,
        ingr=ingr,
    )
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=15) as http:
                resp = await http.get(EDAMAM_URL, params=params)
        else:
            resp = await client.get(EDAMAM_URL, params=params)
        resp.raise_for_status()
        return _parse_edamam(resp.json())
    except (httpx.HTTPError, ValueError) as exc:
        _LOG.error("Edamam lookup failed for %r: %s", ingr, exc)
        return None


def _fmt_qty(quantity: float) -> str:
    return str(int(quantity)) if float(quantity).is_integer() else f"{quantity:g}"


def _parse_edamam(payload: Dict[str, Any]) -> Nutrition:
    nu = payload.get("totalNutrients", {})
    return Nutrition(
        calories=payload.get("calories", 0) or 0,
        protein_g=nu.get("PROCNT", {}).get("quantity", 0),
        carbs_g=nu.get("CHOCDF", {}).get("quantity", 0),
        fat_g=nu.get("FAT", {}).get("quantity", 0),
    )


def sum_nutrition(parts: Iterable[Nutrition]) -> Nutrition:
    total = {"calories": 0.0, "protein_g": 0.0, "carbs_g": 0.0, "fat_g": 0.0}
    for p in parts:
        for k in total:
            total[k] += getattr(p, k)
    return Nutrition(**{k: round(v, 1) for k, v in total.items()})


def estimate_nutrition(text: str) -> Nutrition:
    """Keyword-based estimate for one serving."""
    n = text.lower()
    base = {"calories": 450.0, "protein_g": 18.0, "carbs_g": 45.0, "fat_g": 16.0}
    if any(w in n for w in ("fried", "pizza", "burger", "cream", "cheese")):
        base["calories"] += 250
        base["fat_g"] += 15
    elif any(w in n for w in ("salad", "vegetable", "veggie", "soup", "steamed")):
        base["calories"] -= 150
        base["fat_g"] -= 6
    if any(w in n for w in ("chicken", "beef", "fish", "tofu", "lentil", "egg", "pork")):
        base["protein_g"] += 12
    if any(w in n for w in ("rice", "noodle", "pasta", "bread")):
        base["carbs_g"] += 20
    return Nutrition(**{k: max(v, 0) for k, v in base.items()})
