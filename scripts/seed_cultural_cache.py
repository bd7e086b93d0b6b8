"""
scripts/seed_cultural_cache.py
────────────────────────────────────────────────────────────────────────
Pre-populate the global `cultural_cuisine_cache` table so the first
real request for a culture is a cache hit.

    python -m scripts.seed_cultural_cache Italian Mexican

Replace LLM nutrition guesses with summed Edamam ingredient lookups:

    python -m scripts.seed_cultural_cache Thai --enrich-nutrition
"""
from __future__ import annotations

import asyncio
import logging
from argparse import ArgumentParser
from typing import List

from dotenv import load_dotenv
load_dotenv()

import httpx

from core.models.cuisine import CulturalCuisineData
from core.models.meal import StructuredMeal
from services.cuisine_source import LLMCuisineSource
from services.db import SqlCuisineStore, create_tables
from services.llm import GeminiClient
from services.nutrition import get_nutrition_data, sum_nutrition

_LOG = logging.getLogger("seed_cultural_cache")


async def _enrich_meal(meal: StructuredMeal, client: httpx.AsyncClient) -> StructuredMeal:
    parts = await asyncio.gather(
        *[get_nutrition_data(ing, client=client) for ing in meal.ingredients]
    )
    found = [p for p in parts if p is not None]
    if not found:
        return meal
    return meal.model_copy(update={"nutrition": sum_nutrition(found)})


async def _enrich(data: CulturalCuisineData) -> CulturalCuisineData:
    async with httpx.AsyncClient(timeout=15) as client:
        meals = [await _enrich_meal(m, client) for m in data.meals]
    return data.model_copy(update={"meals": meals})


async def _seed(cultures: List[str], enrich: bool, force: bool) -> None:
    await create_tables()
    store = SqlCuisineStore()
    source = LLMCuisineSource(GeminiClient())
    seeded = 0
    for culture in cultures:
        if not force and await store.load(culture) is not None:
            _LOG.info("%s already cached – skipping (use --force to refresh)", culture)
            continue
        data = await source.fetch(culture)
        if data is None:
            _LOG.warning("no usable data for %s", culture)
            continue
        if enrich:
            data = await _enrich(data)
        await store.save(data)
        seeded += 1
        _LOG.info("cached %d %s meals", len(data.meals), culture)
    print(f"✓ seeded {seeded}/{len(cultures)} cultures")


def main() -> None:
    parser = ArgumentParser()
    parser.add_argument("cultures", nargs="+", help="culture names, e.g. Italian Mexican")
    parser.add_argument(
        "--enrich-nutrition",
        action="store_true",
        help="sum Edamam per-ingredient nutrition into each meal",
    )
    parser.add_argument("--force", action="store_true", help="refresh cultures already cached")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(_seed(args.cultures, args.enrich_nutrition, args.force))


if __name__ == "__main__":
    main()
