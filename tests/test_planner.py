"""
Plan assembler – slot invariants, compliance handling and fallbacks.
"""
import asyncio

import pytest
from pydantic import ValidationError

from conftest import GENERATED_MEAL, ITALIAN, FakeLLMClient, cache_with, cuisine, make_meal, profile
from core import dietary
from core.base_meal import BaseMealSelector
from core.errors import ConfigurationError, TransportError
from core.llm_ranking import LLMRankingDelegate
from core.models.plan import MealPlanRequest
from core.planner import (
    PlanAssembler,
    cultural_due,
    meal_from_generation,
    meal_type_for,
    optimal_cultural_count,
    variety_share,
)
from core.ranking import CulturalRankingEngine

RICE_BOWL = dict(GENERATED_MEAL, title="Chicken Rice Bowl", ingredients=["brown rice", "chicken", "garlic"])


def _assembler(llm, *data, base=False):
    engine = CulturalRankingEngine(cache_with(*data))
    selector = BaseMealSelector(engine, LLMRankingDelegate(llm)) if base else None
    return PlanAssembler(engine, llm, selector)


def _plan(assembler, **kw):
    kw.setdefault("profile", profile())
    kw.setdefault("num_days", 1)
    return asyncio.run(assembler.generate_meal_plan(MealPlanRequest(**kw)))


# ──────────────────────────── pure helpers ───────────────────────────── #
def test_small_plan_cultural_quota():
    count = optimal_cultural_count(3, 3, 0.9)
    assert 1 <= count <= 3
    assert count == 3


def test_quota_ranges():
    assert optimal_cultural_count(1, 1, 0.0) == 1
    assert optimal_cultural_count(14, 3, 1.0) == 4
    assert optimal_cultural_count(20, 3, 0.0) == 6
    assert optimal_cultural_count(15, 1, 0.0) == 4


def test_long_plans_reach_the_large_range():
    request = MealPlanRequest(profile=profile(), num_days=21, meals_per_day=1)
    assert optimal_cultural_count(request.num_days, request.meals_per_day, 0.0) == 6
    with pytest.raises(ValidationError):
        MealPlanRequest(profile=profile(), num_days=29)


def test_cultural_slots_are_spread_evenly():
    used, slots = 0, []
    for idx in range(9):
        if cultural_due(idx, used, 3, 9):
            slots.append(idx)
            used += 1
    assert slots == [0, 3, 6]


def test_meal_types():
    assert [meal_type_for(i) for i in range(5)] == ["breakfast", "lunch", "dinner", "snack", "meal_5"]


def test_variety_share():
    assert variety_share(["rice"], set()) == 1.0
    assert variety_share(["Rice", "tofu"], {"rice"}) == 0.5


def test_generated_meal_defaults():
    meal = meal_from_generation({}, "generated_0", "Thai")
    assert meal.name == "Generated Meal"
    assert meal.cuisine == "Thai"
    assert (meal.nutrition.calories, meal.nutrition.protein_g) == (400, 20)
    assert meal.estimated_cook_time == 30
    assert meal.difficulty_level == 2.0
    assert meal_from_generation({"difficulty": 9}, "g").difficulty_level == 5.0
    assert meal_from_generation({"difficulty": "hard"}, "g").difficulty_level == 2.0
    huge = meal_from_generation({"cook_time_minutes": float("inf"), "prep_time_minutes": 10**400}, "g")
    assert (huge.estimated_prep_time, huge.estimated_cook_time) == (10, 30)


# ──────────────────────────── assembly ──────────────────────────────── #
def test_every_slot_is_filled(generating_llm):
    plan = _plan(_assembler(generating_llm, ITALIAN), num_days=2, meals_per_day=4)

    assert len(plan.meals()) == 8
    assert list(plan.days) == [1, 2]
    assert list(plan.days[2]) == ["breakfast", "lunch", "dinner", "snack"]
    assert plan.days[1]["lunch"].meal_type == "lunch"
    assert plan.metadata.total_meals == 8
    assert plan.metadata.optimal_cultural_count == 3
    assert plan.metadata.cultural_meals_used == 3
    assert [m.source for m in plan.meals()].count("cultural") == 3
    assert plan.shopping_list and plan.prep_tips and plan.hero_ingredients
    assert all(call["temperature"] == 0.8 for call in generating_llm.calls)


def test_generation_prompt_puts_restrictions_first(generating_llm):
    _plan(
        _assembler(generating_llm),
        profile=profile(dietary_restrictions=frozenset({"vegan"})),
        max_cook_time=25,
    )
    prompt = generating_llm.calls[0]["prompt"]
    assert prompt.index("MANDATORY DIETARY RESTRICTIONS") < prompt.index("WEIGHT-BASED PRIORITIES")
    assert "objective_satisfaction" in prompt
    assert "Total time must not exceed 25 minutes" in prompt


def test_non_compliant_generation_is_retried_then_flagged():
    llm = FakeLLMClient(handler=lambda s, p: dict(RICE_BOWL))
    p = profile(dietary_restrictions=frozenset({"paleo"}))
    plan = _plan(_assembler(llm), profile=p, meals_per_day=2)

    assert len(plan.meals()) == 2
    assert len(llm.calls) == 4
    assert "Previous answer" in llm.calls[1]["prompt"]
    for meal in plan.meals():
        assert meal.dietary_compliant is False
        assert meal.violations == ("paleo: contains rice",)
    assert plan.metadata.compliant_meals == 0


def test_retry_can_fix_the_meal():
    def handler(system, prompt):
        return dict(GENERATED_MEAL) if "Previous answer" in prompt else dict(RICE_BOWL)

    llm = FakeLLMClient(handler=handler)
    p = profile(dietary_restrictions=frozenset({"paleo"}))
    plan = _plan(_assembler(llm), profile=p, meals_per_day=1)
    (meal,) = plan.meals()
    assert meal.dietary_compliant and meal.name == "Lentil Spinach Bowl"


def test_compliance_flag_always_matches_filter():
    llm = FakeLLMClient(handler=lambda s, p: dict(RICE_BOWL))
    p = profile(dietary_restrictions=frozenset({"paleo", "vegetarian"}))
    plan = _plan(_assembler(llm, ITALIAN), profile=p, num_days=3, meals_per_day=3)
    assert len(plan.meals()) == 9
    for meal in plan.meals():
        result = dietary.check(meal.ingredients, p.dietary_restrictions)
        assert result.compliant == meal.dietary_compliant
        assert meal.violations == result.violations


def test_cultural_meal_is_adapted(generating_llm):
    data = cuisine("Italian", [make_meal("italian_0", "Chicken Cacciatore", ingredients=("chicken thighs", "tomato"))])
    p = profile(dietary_restrictions=frozenset({"vegetarian"}))
    (meal,) = _plan(_assembler(generating_llm, data), profile=p, meals_per_day=1).meals()

    assert meal.source == "cultural"
    assert meal.cultural_source == "Italian"
    assert meal.adaptation_notes == ("Replaced chicken with tofu for vegetarian",)
    assert meal.dietary_compliant
    assert generating_llm.calls == []


def test_unadaptable_cultural_meal_falls_through_to_generation(generating_llm):
    data = cuisine("Italian", [make_meal("italian_0", "Risotto", ingredients=("arborio rice", "stock"))])
    p = profile(dietary_restrictions=frozenset({"paleo"}))
    (meal,) = _plan(_assembler(generating_llm, data), profile=p, meals_per_day=1).meals()
    assert meal.source == "generated"
    assert meal.dietary_compliant


def test_generation_failure_uses_remaining_cultural_meals():
    llm = FakeLLMClient(handler=lambda s, p: TransportError("LLM down"))
    plan = _plan(_assembler(llm, ITALIAN), meals_per_day=3)
    assert [m.source for m in plan.meals()] == ["cultural"] * 3
    assert len({m.name for m in plan.meals()}) == 3
    assert plan.metadata.cultural_meals_used == 3


def test_generation_failure_without_fallback_propagates():
    llm = FakeLLMClient(handler=lambda s, p: TransportError("LLM down"))
    with pytest.raises(TransportError):
        _plan(_assembler(llm), meals_per_day=2)


def test_missing_credentials_abort_before_any_call():
    llm = FakeLLMClient(configured=False)
    with pytest.raises(ConfigurationError):
        _plan(_assembler(llm, ITALIAN))
    assert llm.calls == []


def test_time_limit_excludes_slow_cultural_meals(generating_llm):
    plan = _plan(_assembler(generating_llm, ITALIAN), meals_per_day=3, max_cook_time=25)
    assert {m.source for m in plan.meals()} == {"generated"}


def test_base_meal_anchors_the_first_cultural_slot():
    def handler(system, prompt):
        if "ranking" in system:
            return {"ranked_meal_ids": [1]}
        return dict(GENERATED_MEAL)

    llm = FakeLLMClient(handler=handler)
    plan = _plan(_assembler(llm, ITALIAN, base=True), num_days=2, meals_per_day=3)
    assert plan.base_meal is not None
    first = plan.days[1]["breakfast"]
    assert first.source == "cultural"
    assert first.name == plan.base_meal.base_meal.name


def test_weight_satisfaction_and_overlap(generating_llm):
    plan = _plan(_assembler(generating_llm, ITALIAN), meals_per_day=3)
    first = plan.days[1]["breakfast"]
    assert first.weight_satisfaction.variety == 1.0
    assert "variety" in first.objective_overlap
    for meal in plan.meals():
        for key in meal.objective_overlap:
            assert getattr(meal.weight_satisfaction, key) >= 0.6
    assert 0 <= plan.metadata.average_objective_overlap <= 5
