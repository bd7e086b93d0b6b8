"""
Base-meal selector: influence bounds, split counts, similarity ordering
and anchor selection.
"""
import asyncio
import itertools

import pytest

from conftest import CHINESE, ITALIAN, FakeLLMClient, InMemorySource, make_meal, profile
from core.base_meal import (
    BaseMealSelector,
    calculate_base_influence,
    order_by_similarity,
    split_counts,
)
from core.errors import ParseError
from core.llm_ranking import LLMRankingDelegate
from core.ranking import CulturalRankingEngine
from services.cultural_cache import CulturalCache

GRID = (0.0, 0.25, 0.5, 0.75, 1.0)


@pytest.mark.parametrize("cultural,variety,time", list(itertools.product(GRID, repeat=3)))
def test_influence_is_bounded(cultural, variety, time):
    p = profile(weights=dict(cultural=cultural, variety=variety, time=time))
    assert 0.2 <= calculate_base_influence(p) <= 0.7


def test_influence_formula():
    p = profile(weights=dict(cultural=1.0, variety=0.0, time=1.0))
    assert calculate_base_influence(p) == pytest.approx(0.5)


def test_split_counts():
    p = profile(weights=dict(cultural=1.0, variety=0.0, time=1.0))
    assert split_counts(p, 9) == (5, 3)
    assert split_counts(p, 1) == (1, 0)


def test_alternates_similar_and_different():
    base = make_meal("base", ingredients=("tomato", "basil", "pasta"))
    close = make_meal("close", ingredients=("tomato", "basil", "pasta", "olive oil"))
    middle = make_meal("middle", ingredients=("tomato", "rice"))
    far = make_meal("far", cuisine="Chinese", ingredients=("tofu", "ginger", "soy"), techniques=("steam",))

    ordered = order_by_similarity(base, [middle, far, close], similar_quota=1, variety_quota=1)
    assert [m.id for m in ordered] == ["close", "far", "middle"]


def test_order_with_no_candidates():
    assert order_by_similarity(make_meal("b"), [], 2, 2) == []


def _selector(llm, data):
    cache = CulturalCache(source=InMemorySource({"Italian": data} if data else {}))
    engine = CulturalRankingEngine(cache)
    return engine, BaseMealSelector(engine, LLMRankingDelegate(llm, batch_size=2))


def test_anchor_is_top_ai_meal():
    llm = FakeLLMClient(handler=lambda s, p: {"meals": [
        {"id": 1, "cs": 90, "hs": 90, "cos": 90, "ts": 90, "tot": 95},
        {"id": 2, "cs": 10, "hs": 10, "cos": 10, "ts": 10, "tot": 10},
    ]})
    local, selector = _selector(llm, ITALIAN)
    p = profile()
    ranked = asyncio.run(local.get_ranked_meals(1, p, limit=15, min_score_threshold=0.4))
    selection = asyncio.run(selector.find_optimal_base_meal(1, p))

    assert selection.base_meal.id == ranked[0].meal.id
    assert selection.similarity_score == pytest.approx(0.95)
    assert set(selection.weight_alignment) == {"cultural", "health", "cost", "time"}
    assert selection.weight_alignment["cultural"] == pytest.approx(0.9 * 0.5)
    assert selection.usage_rationale.startswith("Selected as base meal because it")


def test_falls_back_to_top_local_meal_when_ai_returns_nothing():
    llm = FakeLLMClient(handler=lambda s, p: ParseError("garbled"))
    local, selector = _selector(llm, ITALIAN)
    p = profile()
    ranked = asyncio.run(local.get_ranked_meals(1, p, limit=15, min_score_threshold=0.4))
    selection = asyncio.run(selector.find_optimal_base_meal(1, p))
    assert selection.base_meal.id == ranked[0].meal.id
    assert selection.similarity_score == ranked[0].total_score


def test_no_candidates_returns_none():
    llm = FakeLLMClient()
    _, selector = _selector(llm, None)
    assert asyncio.run(selector.find_optimal_base_meal(1, profile())) is None
    assert llm.calls == []


def test_preferred_cultures_override_background():
    cache = CulturalCache(source=InMemorySource({"Chinese": CHINESE}))
    llm = FakeLLMClient(handler=lambda s, p: {"ranked_meal_ids": [1]})
    selector = BaseMealSelector(CulturalRankingEngine(cache), LLMRankingDelegate(llm))
    selection = asyncio.run(selector.find_optimal_base_meal(1, profile(), ["Chinese"]))
    assert selection.base_meal.cuisine == "Chinese"
