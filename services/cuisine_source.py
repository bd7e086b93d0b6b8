# services/cuisine_source.py
"""
LLM-backed research loader for one culture's cuisine.

The model is asked for a JSON catalogue of authentic dishes plus a short
summary of the cuisine's healthy staples and techniques; each dish is
converted with `core.cuisine.structure_meal`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from core.cuisine import string_list, structure_meal
from core.errors import ParseError
from core.models.cuisine import CuisineSummary, CulturalCuisineData
from services.llm import LLMClient

_LOG = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a culinary anthropologist. Respond only with valid JSON "
    "describing real, traditional dishes."
)


def build_research_prompt(culture: str, max_meals: int = 8) -> str:
    return (
        f"List {max_meals} authentic, home-cookable {culture} dishes.\n\n"
        "Return ONLY JSON of the form:\n"
        '{"meals": [{"name": "...", "description": "...", '
        '"meal_type": "breakfast|lunch|dinner|snack", '
        '"cooking_techniques": ["steam"], "full_ingredients": ["..."], '
        '"healthy_ingredients": ["..."], "healthy_modifications": ["..."], '
        '"instructions": ["..."], '
        '"nutrition": {"calories": 0, "protein_g": 0, "carbs_g": 0, "fat_g": 0}}], '
        '"summary": {"common_healthy_ingredients": ["..."], '
        '"common_cooking_techniques": ["..."]}, '
        '"key_ingredients": ["..."], "source_quality_score": 0.8}\n'
        "nutrition is per serving and may be omitted if unknown."
    )


class LLMCuisineSource:
    def __init__(self, llm: LLMClient, max_meals: int = 8) -> None:
        self._llm = llm
        self._max_meals = max_meals

    async def fetch(self, culture: str) -> CulturalCuisineData | None:
        self._llm.ensure_configured()
        reply = await self._llm.complete_json(
            system=SYSTEM_PROMPT,
            prompt=build_research_prompt(culture, self._max_meals),
            temperature=0.4,
            max_output_tokens=4000,
        )
        return parse_research(reply, culture)


def parse_research(reply: Dict[str, Any], culture: str) -> CulturalCuisineData | None:
    raw_meals = reply.get("meals")
    if not isinstance(raw_meals, list):
        raise ParseError(f"no meals array in {culture} research reply")

    raw_summary = reply.get("summary")
    if not isinstance(raw_summary, dict):
        raw_summary = {}
    summary = CuisineSummary(
        common_healthy_ingredients=string_list(raw_summary.get("common_healthy_ingredients")),
        common_cooking_techniques=string_list(raw_summary.get("common_cooking_techniques")),
    )
    meals = []
    for idx, raw in enumerate(raw_meals):
        if not isinstance(raw, dict) or not raw.get("name"):
            _LOG.debug("skipping malformed %s dish #%d", culture, idx)
            continue
        try:
            meals.append(structure_meal(raw, culture, len(meals), summary))
        except (AttributeError, TypeError, ValueError) as exc:
            _LOG.debug("skipping %s dish %r: %s", culture, raw.get("name"), exc)

    if not meals:
        _LOG.warning("research for %s produced no usable dishes", culture)
        return None

    key_ingredients = string_list(reply.get("key_ingredients")) or summary.common_healthy_ingredients
    try:
        quality = min(max(float(reply.get("source_quality_score", 0.8)), 0.0), 1.0)
    except (TypeError, ValueError):
        quality = 0.8
    _LOG.info("loaded %d %s dishes", len(meals), culture)
    return CulturalCuisineData(
        culture=culture,
        meals=meals,
        summary=summary,
        key_ingredients=key_ingredients,
        source_quality_score=quality,
    )
