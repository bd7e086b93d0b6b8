"""
core/planner.py
────────────────────────────────────────────────────────────────────────
Plan assembler – fills `num_days × meals_per_day` slots.

Pipeline
--------
1.   hero ingredients + cultural quota (`optimal_cultural_count`)
2.   local ranking of cached cultural meals → base meal → similarity order
3.   slot loop, day-major then breakfast → lunch → dinner → snack:
       cultural meal while under quota, else an LLM-generated meal
4.   every meal passes `core.dietary.check`; failures are adapted,
     generated ones get one corrective retry, whatever is still
     non-compliant is placed *flagged* – a bad slot never aborts a plan
5.   shopping list, prep tips, metadata

The only errors that escape are whole-operation ones: missing LLM
credentials, or a generation failure with no cultural meal left to
stand in for it.
"""
from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Sequence, Set

import numpy as np

from core import dietary
from core.adaptation import adapt_meal
from core.base_meal import BaseMealSelector, order_by_similarity, split_counts
from core.errors import ParseError, TransportError
from core.hero_ingredients import heroes_in, select_hero_ingredients
from core.models.meal import Nutrition, StructuredMeal, WeightBasedMeal, WeightSatisfaction
from core.models.plan import MealPlan, MealPlanRequest, PlanMetadata
from core.models.user import WEIGHT_KEYS, PriorityWeights, UserProfile
from core.ranking import CulturalRankingEngine
from core.scoring import MealScorer
from core.shopping import build_shopping_list, normalise, prep_tips
from services.llm import LLMClient

_LOG = logging.getLogger(__name__)

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")
OVERLAP_THRESHOLD = 0.6
GENERATION_SYSTEM = (
    "You are a weight-based meal planning expert. Generate a single meal "
    "following the specific priority weights. Always return valid JSON in "
    "the exact format requested."
)


# ──────────────────────────── pure helpers ───────────────────────────── #
def meal_type_for(position: int) -> str:
    return MEAL_TYPES[position] if position < len(MEAL_TYPES) else f"meal_{position + 1}"


def optimal_cultural_count(num_days: int, meals_per_day: int, cultural_weight: float) -> int:
    total = num_days * meals_per_day
    count = math.ceil(total * 0.25 * (1 + 0.6 * cultural_weight))
    if num_days <= 7:
        lo, hi = 1, 3
    elif num_days <= 14:
        lo, hi = 2, 4
    else:
        lo, hi = 3, 6
    return min(max(count, lo), hi, total)


def cultural_due(slot_index: int, used: int, optimal: int, total: int) -> bool:
    """Spread `optimal` cultural meals evenly over `total` slots."""
    return used < math.ceil((slot_index + 1) * optimal / total)


def variety_share(ingredients: Sequence[str], seen: Set[str]) -> float:
    if not seen:
        return 1.0
    names = [normalise(i) for i in ingredients]
    if not names:
        return 0.0
    return sum(1 for n in names if n not in seen) / len(names)


def _num(value: Any, default: float) -> float:
    try:
        v = float(value)
    except (OverflowError, TypeError, ValueError):
        return default
    return v if 0 < v < math.inf else default


def _str_list(value: Any, default: List[str]) -> List[str]:
    if isinstance(value, list):
        items = [str(v) for v in value if v]
        if items:
            return items
    return default


def meal_from_generation(reply: Dict[str, Any], slot_id: str, cuisine: str = "") -> StructuredMeal:
    """Validate an LLM-generated meal, filling anything missing with defaults."""
    nu = reply.get("nutrition") if isinstance(reply.get("nutrition"), dict) else {}
    difficulty = min(max(_num(reply.get("difficulty"), 2.0), 1.0), 5.0)
    return StructuredMeal(
        id=slot_id,
        name=str(reply.get("title") or reply.get("name") or "Generated Meal"),
        description=str(
            reply.get("description") or "A delicious meal created with weight-based priorities"
        ),
        cuisine=str(reply.get("cuisine") or cuisine),
        ingredients=tuple(_str_list(reply.get("ingredients"), ["basic ingredients"])),
        instructions=tuple(
            _str_list(reply.get("instructions"), ["prepare ingredients", "cook meal"])
        ),
        cooking_techniques=tuple(_str_list(reply.get("cooking_techniques"), [])),
        nutrition=Nutrition(
            calories=_num(nu.get("calories"), 400),
            protein_g=_num(nu.get("protein_g"), 20),
            carbs_g=_num(nu.get("carbs_g"), 30),
            fat_g=_num(nu.get("fat_g"), 15),
        ),
        estimated_prep_time=int(_num(reply.get("prep_time_minutes"), 10)),
        estimated_cook_time=int(_num(reply.get("cook_time_minutes"), 30)),
        difficulty_level=difficulty,
    )


# ──────────────────────────── prompts ────────────────────────────────── #
def _priority_lines(w: PriorityWeights) -> List[str]:
    lines = []
    if w.cost >= 0.7:
        lines.append(f"- VERY HIGH PRIORITY ({w.cost * 100:.0f}%): Cost savings through smart ingredient choices")
    elif w.cost >= 0.5:
        lines.append(f"- HIGH PRIORITY ({w.cost * 100:.0f}%): Balance cost and quality")
    if w.health >= 0.7:
        lines.append(f"- VERY HIGH PRIORITY ({w.health * 100:.0f}%): Nutritional density and balanced macros")
    elif w.health >= 0.5:
        lines.append(f"- HIGH PRIORITY ({w.health * 100:.0f}%): Healthy ingredients and preparation")
    if w.cultural >= 0.5:
        lines.append(f"- CULTURAL PRIORITY ({w.cultural * 100:.0f}%): Incorporate cultural flavors and techniques")
    if w.time >= 0.7:
        lines.append(f"- VERY HIGH PRIORITY ({w.time * 100:.0f}%): Minimize prep and cooking time")
    elif w.time >= 0.5:
        lines.append(f"- HIGH PRIORITY ({w.time * 100:.0f}%): Keep preparation practical")
    if w.variety >= 0.5:
        lines.append(f"- VARIETY PRIORITY ({w.variety * 100:.0f}%): Use diverse ingredients and techniques")
    return lines or ["- No strong priorities: aim for a balanced, practical meal"]


def build_generation_prompt(
    request: MealPlanRequest,
    meal_type: str,
    heroes: Sequence[str],
    avoid: Sequence[str] = (),
) -> str:
    profile = request.profile
    parts = [
        f"Generate a {meal_type} for {profile.family_size} people.\n",
        "Weights are decision priorities for resolving conflicts, not meal quotas.",
        "Dietary restrictions are NON-NEGOTIABLE and apply to 100% of the meal.\n",
    ]
    restrictions = sorted(profile.dietary_restrictions, key=str.lower)
    if restrictions:
        parts.append("MANDATORY DIETARY RESTRICTIONS (100% compliance required):")
        parts.extend(f"- {r}" for r in restrictions)
        parts.append("ALL ingredients and preparations must be safe for these restrictions.\n")

    parts.append("WEIGHT-BASED PRIORITIES (use only to resolve conflicts):")
    parts.extend(_priority_lines(profile.priority_weights))

    cultures = profile.cultures()
    if cultures:
        parts.append(f"\nCultural background: {', '.join(cultures)}")
    max_cook = request.max_cook_time or profile.max_cook_time
    if max_cook:
        parts.append(f"Total time must not exceed {max_cook} minutes.")
    if request.max_difficulty:
        parts.append(f"Difficulty must not exceed {request.max_difficulty:g} on a 1-5 scale.")
    if heroes:
        parts.append(f"\nIncorporate 2-3 of these versatile ingredients: {', '.join(heroes)}")
    if avoid:
        parts.append(f"Avoid repeating these dishes: {', '.join(avoid)}")

    parts.append(
        "\nThe meal should satisfy at least 2-3 high-priority goals at once; "
        "list the ones it satisfies in objective_satisfaction.\n\n"
        "RETURN FORMAT: valid JSON only:\n"
        '{"title": "Meal Name", "description": "Brief description", "cuisine": "Italian", '
        '"ingredients": ["ingredient1"], "instructions": ["step1"], '
        '"cooking_techniques": ["grill"], '
        '"nutrition": {"calories": 450, "protein_g": 25, "carbs_g": 35, "fat_g": 18}, '
        '"prep_time_minutes": 10, "cook_time_minutes": 25, "difficulty": 2.5, '
        '"objective_satisfaction": ["cost_effective", "healthy", "quick"], '
        '"weight_rationale": "How the weights guided decisions"}'
    )
    return "\n".join(parts)


def build_retry_prompt(prompt: str, previous: Dict[str, Any], violations: Sequence[str]) -> str:
    return (
        f"{prompt}\n\n"
        "Your previous answer broke the mandatory dietary restrictions:\n"
        + "\n".join(f"- {v}" for v in violations)
        + f"\n\nPrevious answer:\n{json.dumps(previous)}\n\n"
        "Return a corrected meal in the same JSON format with every "
        "offending ingredient removed or replaced."
    )


# ──────────────────────────── assembler ──────────────────────────────── #
class PlanAssembler:
    def __init__(
        self,
        engine: CulturalRankingEngine,
        llm: LLMClient,
        base_selector: BaseMealSelector | None = None,
        scorer: MealScorer | None = None,
    ) -> None:
        self._engine = engine
        self._llm = llm
        self._base_selector = base_selector
        self._scorer = scorer or MealScorer()

    async def generate_meal_plan(self, request: MealPlanRequest) -> MealPlan:
        self._llm.ensure_configured()
        profile = request.profile
        total = request.total_meals
        heroes = select_hero_ingredients(profile)
        optimal = optimal_cultural_count(
            request.num_days, request.meals_per_day, profile.priority_weights.cultural
        )
        _LOG.info(
            "planning %d meals (%d days × %d), cultural target %d",
            total, request.num_days, request.meals_per_day, optimal,
        )

        pool, base = await self._cultural_pool(request, optimal)

        days: Dict[int, Dict[str, WeightBasedMeal]] = {}
        seen: Set[str] = set()
        placed: List[WeightBasedMeal] = []
        cultural_used = 0

        for idx in range(total):
            day = idx // request.meals_per_day + 1
            meal_type = meal_type_for(idx % request.meals_per_day)
            meal = None

            if pool and cultural_due(idx, cultural_used, optimal, total):
                meal = self._cultural_slot(pool.pop(0), request, idx, meal_type, heroes, seen)
            if meal is None:
                try:
                    meal = await self._generated_slot(request, idx, meal_type, heroes, seen, placed)
                except (TransportError, ParseError) as exc:
                    meal = self._fallback_slot(pool, request, idx, meal_type, heroes, seen)
                    if meal is None:
                        _LOG.error("slot %d failed and no cultural meal can stand in: %s", idx, exc)
                        raise
                    _LOG.warning("slot %d generation failed (%s); used %s", idx, exc, meal.name)
            if meal.source == "cultural":
                cultural_used += 1

            days.setdefault(day, {})[meal_type] = meal
            placed.append(meal)
            seen.update(normalise(i) for i in meal.ingredients)

        shopping, freq = build_shopping_list(placed)
        plan = MealPlan(
            days=days,
            shopping_list=shopping,
            ingredient_frequency=freq,
            prep_tips=prep_tips(freq, heroes),
            hero_ingredients=heroes,
            base_meal=base,
            metadata=_metadata(placed, cultural_used, optimal),
        )
        _LOG.info(
            "plan ready: %d meals, %d cultural, %d compliant",
            total, cultural_used, plan.metadata.compliant_meals,
        )
        return plan

    # ───────────── cultural candidates ───────────── #
    async def _cultural_pool(self, request: MealPlanRequest, optimal: int):
        profile = request.profile
        ranked = await self._engine.get_ranked_meals(
            request.user_id, profile, limit=max(request.total_meals * 2, 15)
        )
        max_cook = request.max_cook_time or profile.max_cook_time
        pool = [
            s.meal for s in ranked
            if (max_cook is None or s.meal.total_time <= max_cook)
            and (request.max_difficulty is None or s.meal.difficulty_level <= request.max_difficulty)
        ]
        _LOG.debug("%d/%d cultural candidates fit time/difficulty limits", len(pool), len(ranked))
        if not pool or self._base_selector is None:
            return pool, None

        base = await self._base_selector.find_optimal_base_meal(request.user_id, profile)
        if base is None:
            return pool, None
        anchor = next((m for m in pool if m.id == base.base_meal.id), None)
        rest = [m for m in pool if anchor is None or m.id != anchor.id]
        similar, variety = split_counts(profile, optimal)
        ordered = order_by_similarity(base.base_meal, rest, similar, variety)
        return ([anchor] if anchor else []) + ordered, base

    def _cultural_slot(
        self,
        meal: StructuredMeal,
        request: MealPlanRequest,
        idx: int,
        meal_type: str,
        heroes: Sequence[str],
        seen: Set[str],
    ) -> WeightBasedMeal | None:
        restrictions = request.profile.dietary_restrictions
        notes: tuple = ()
        result = dietary.check(meal.ingredients, restrictions)
        if not result.compliant:
            adapted = adapt_meal(meal, restrictions, request.profile.priority_weights)
            result = dietary.check(adapted.meal.ingredients, restrictions)
            if not result.compliant:
                _LOG.warning(
                    "cultural meal %s cannot be adapted (%s); generating instead",
                    meal.name, "; ".join(result.violations),
                )
                return None
            meal, notes = adapted.meal, adapted.adaptations
        return self._finalize(
            meal, request, f"cultural_{idx}", meal_type, heroes, seen,
            source="cultural", cultural_source=meal.cuisine, notes=notes, violations=(),
        )

    def _fallback_slot(self, pool, request, idx, meal_type, heroes, seen):
        while pool:
            meal = self._cultural_slot(pool.pop(0), request, idx, meal_type, heroes, seen)
            if meal is not None:
                return meal
        return None

    # ───────────── generated meals ───────────── #
    async def _generated_slot(
        self,
        request: MealPlanRequest,
        idx: int,
        meal_type: str,
        heroes: Sequence[str],
        seen: Set[str],
        placed: Sequence[WeightBasedMeal],
    ) -> WeightBasedMeal:
        profile = request.profile
        restrictions = profile.dietary_restrictions
        cultures = profile.cultures()
        slot_id = f"generated_{idx}"
        prompt = build_generation_prompt(request, meal_type, heroes, [m.name for m in placed])

        reply = await self._complete(prompt)
        meal, notes, violations = self._validate(reply, slot_id, cultures, profile)

        if violations:
            _LOG.warning("generated %s violates %s; asking once more", meal.name, violations)
            try:
                retry = await self._complete(build_retry_prompt(prompt, reply, violations))
            except (TransportError, ParseError) as exc:
                _LOG.warning("corrective retry failed (%s); keeping flagged meal", exc)
            else:
                meal, notes, violations = self._validate(retry, slot_id, cultures, profile)
                reply = retry
            if violations:
                _LOG.warning("slot %d placed non-compliant: %s", idx, "; ".join(violations))

        _LOG.debug("generated %s self-reports %s", meal.name, reply.get("objective_satisfaction"))
        return self._finalize(
            meal, request, slot_id, meal_type, heroes, seen,
            source="generated", cultural_source=None, notes=notes, violations=violations,
            rationale=str(reply.get("weight_rationale") or "Generated using weight-based priorities"),
        )

    async def _complete(self, prompt: str) -> Dict[str, Any]:
        return await self._llm.complete_json(
            system=GENERATION_SYSTEM, prompt=prompt, temperature=0.8, max_output_tokens=1000
        )

    def _validate(self, reply, slot_id, cultures, profile: UserProfile):
        meal = meal_from_generation(reply, slot_id, cultures[0] if cultures else "")
        result = dietary.check(meal.ingredients, profile.dietary_restrictions)
        if result.compliant:
            return meal, (), ()
        adapted = adapt_meal(meal, profile.dietary_restrictions, profile.priority_weights)
        result = dietary.check(adapted.meal.ingredients, profile.dietary_restrictions)
        return adapted.meal, adapted.adaptations, result.violations

    # ───────────── slot output ───────────── #
    def _finalize(
        self,
        meal: StructuredMeal,
        request: MealPlanRequest,
        slot_id: str,
        meal_type: str,
        heroes: Sequence[str],
        seen: Set[str],
        *,
        source: str,
        cultural_source: str | None,
        notes: tuple,
        violations: tuple,
        rationale: str | None = None,
    ) -> WeightBasedMeal:
        comps = self._scorer.component_scores(meal, request.profile)
        satisfaction = WeightSatisfaction(
            cost=comps.cost,
            health=comps.health,
            cultural=comps.cultural,
            variety=variety_share(meal.ingredients, seen),
            time=comps.time,
        )
        overlap = tuple(k for k in WEIGHT_KEYS if getattr(satisfaction, k) >= OVERLAP_THRESHOLD)
        data = meal.model_dump()
        data.update(
            id=slot_id,
            meal_type=meal_type,
            source=source,
            objective_overlap=overlap,
            weight_satisfaction=satisfaction,
            cultural_source=cultural_source,
            adaptation_notes=tuple(notes) or None,
            dietary_compliant=not violations,
            violations=tuple(violations),
            hero_ingredients_used=heroes_in(meal.ingredients, list(heroes)),
            weight_rationale=rationale,
        )
        return WeightBasedMeal(**data)


def _metadata(placed: Sequence[WeightBasedMeal], cultural_used: int, optimal: int) -> PlanMetadata:
    if not placed:
        return PlanMetadata(optimal_cultural_count=optimal)
    matrix = np.array(
        [[getattr(m.weight_satisfaction, k) for k in WEIGHT_KEYS] for m in placed], dtype=float
    )
    means = matrix.mean(axis=0)
    return PlanMetadata(
        cultural_meals_used=cultural_used,
        optimal_cultural_count=optimal,
        average_objective_overlap=float(np.mean([len(m.objective_overlap) for m in placed])),
        weight_satisfaction=WeightSatisfaction(**{k: float(v) for k, v in zip(WEIGHT_KEYS, means)}),
        compliant_meals=sum(1 for m in placed if m.dietary_compliant),
        total_meals=len(placed),
    )
