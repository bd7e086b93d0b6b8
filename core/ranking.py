"""
core/ranking.py
────────────────────────────────────────────────────────────────────────
Cultural ranking engine – the local, cache-bound half of ranking.

Responsibilities
----------------
1.   pull `CulturalCuisineData` for the profile's cultures (or the
     configured fallback list) through the cache provider.
2.   score every cached meal with `MealScorer`.
3.   drop anything under `min_score_threshold`, sort, truncate.

Sort order is total score descending; ties keep culture-list order, then
the meal's position in its cache entry. No LLM is ever consulted here.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import pandas as pd

from config import settings
from core.models.meal import MealScore
from core.models.user import UserProfile
from core.scoring import MealScorer
from services.cultural_cache import CulturalDataProvider

_LOG = logging.getLogger(__name__)


class CulturalRankingEngine:
    def __init__(
        self,
        cache: CulturalDataProvider,
        scorer: MealScorer | None = None,
        default_cultures: Sequence[str] | None = None,
    ) -> None:
        self._cache = cache
        self._scorer = scorer or MealScorer()
        self._defaults = list(default_cultures or settings.default_cultures)

    def cultures_for(self, profile: UserProfile) -> List[str]:
        return profile.cultures() or list(self._defaults)

    # ──────────────────────────── ranking ─────────────────────────── #
    async def get_ranked_meals(
        self,
        user_id: int,
        profile: UserProfile,
        limit: int = 20,
        min_score_threshold: float = 0.0,
    ) -> List[MealScore]:
        cultures = self.cultures_for(profile)
        data = await self._cache.get_cached_cultural_cuisine(user_id, cultures)
        if not data:
            _LOG.warning("no cached cultural data for %s", cultures)
            return []

        rows = []
        by_key = {k.lower(): v for k, v in data.items()}
        for culture_order, culture in enumerate(cultures):
            cuisine = by_key.get(culture.lower())
            if cuisine is None:
                continue
            for cache_order, meal in enumerate(cuisine.meals):
                scored = self._scorer.score(meal, profile)
                rows.append(
                    dict(
                        score=scored,
                        total=scored.total_score,
                        culture_order=culture_order,
                        cache_order=cache_order,
                    )
                )
        if not rows:
            return []

        df = pd.DataFrame(rows)
        df = df[df["total"] >= min_score_threshold]
        df = df.sort_values(
            ["total", "culture_order", "cache_order"],
            ascending=[False, True, True],
            kind="mergesort",
        )
        ranked = df["score"].head(limit).tolist()
        _LOG.debug(
            "ranked %d/%d meals across %d cultures (threshold %.2f)",
            len(ranked), len(rows), len(data), min_score_threshold,
        )
        return ranked
