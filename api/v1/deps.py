# api/v1/deps.py
"""
FastAPI dependency providers.

One process-wide cache and LLM client; everything else is cheap to build
per request. Tests swap any of these via `app.dependency_overrides`.
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from config import settings
from core.base_meal import BaseMealSelector
from core.llm_ranking import LLMRankingDelegate
from core.planner import PlanAssembler
from core.ranking import CulturalRankingEngine
from services.cuisine_source import LLMCuisineSource
from services.cultural_cache import CulturalCache
from services.db import SqlCuisineStore
from services.llm import GeminiClient, LLMClient


@lru_cache
def get_llm() -> LLMClient:
    return GeminiClient()


@lru_cache
def get_cache() -> CulturalCache:
    store = SqlCuisineStore() if settings.database_url else None
    return CulturalCache(source=LLMCuisineSource(get_llm()), store=store)


def get_engine(cache: CulturalCache = Depends(get_cache)) -> CulturalRankingEngine:
    return CulturalRankingEngine(cache)


def get_base_selector(
    engine: CulturalRankingEngine = Depends(get_engine),
    llm: LLMClient = Depends(get_llm),
) -> BaseMealSelector:
    return BaseMealSelector(engine, LLMRankingDelegate(llm))


def get_planner(
    engine: CulturalRankingEngine = Depends(get_engine),
    base_selector: BaseMealSelector = Depends(get_base_selector),
    llm: LLMClient = Depends(get_llm),
) -> PlanAssembler:
    return PlanAssembler(engine, llm, base_selector)
