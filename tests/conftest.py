"""
Shared test doubles: a scripted LLM client, an in-memory cuisine source
and a small catalogue of cached meals.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List

import pytest

from core.errors import ConfigurationError
from core.models.cuisine import CulturalCuisineData
from core.models.meal import Nutrition, StructuredMeal
from core.models.user import PriorityWeights, UserProfile
from core.ranking import CulturalRankingEngine
from services.cultural_cache import CulturalCache


class FakeLLMClient:
    """
    Replies come from `handler(system, prompt)` when given, else from the
    `replies` queue. An exception in either place is raised.
    """

    def __init__(
        self,
        replies: List[Any] | None = None,
        handler: Callable[[str, str], Any] | None = None,
        configured: bool = True,
    ) -> None:
        self.replies = list(replies or [])
        self.handler = handler
        self.configured = configured
        self.calls: List[Dict[str, Any]] = []

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("GEMINI_API_KEY not set in environment")

    async def complete_json(self, *, system, prompt, temperature=0.3, max_output_tokens=2500):
        self.ensure_configured()
        self.calls.append(dict(system=system, prompt=prompt, temperature=temperature))
        reply = self.handler(system, prompt) if self.handler else self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class InMemorySource:
    def __init__(self, data: Dict[str, CulturalCuisineData] | None = None, error: Exception | None = None):
        self.data = {k.lower(): v for k, v in (data or {}).items()}
        self.error = error
        self.calls: List[str] = []

    async def fetch(self, culture: str) -> CulturalCuisineData | None:
        self.calls.append(culture)
        if self.error is not None:
            raise self.error
        return self.data.get(culture.lower())


class MemoryStore:
    def __init__(self) -> None:
        self.rows: Dict[str, CulturalCuisineData] = {}

    async def load(self, culture: str) -> CulturalCuisineData | None:
        return self.rows.get(culture.lower())

    async def save(self, data: CulturalCuisineData) -> None:
        self.rows[data.culture.lower()] = data


def make_meal(
    id: str,
    name: str | None = None,
    cuisine: str = "Italian",
    ingredients=("tomato", "garlic", "olive oil"),
    techniques=("saute",),
    prep: int = 10,
    cook: int = 20,
    authenticity: float = 0.8,
    calories: float = 450,
    protein: float = 25,
    difficulty: float = 2.0,
) -> StructuredMeal:
    return StructuredMeal(
        id=id,
        name=name or id.replace("_", " ").title(),
        description=f"{cuisine} dish",
        cuisine=cuisine,
        authenticity_score=authenticity,
        ingredients=tuple(ingredients),
        cooking_techniques=tuple(techniques),
        nutrition=Nutrition(calories=calories, protein_g=protein, carbs_g=40, fat_g=15),
        estimated_prep_time=prep,
        estimated_cook_time=cook,
        difficulty_level=difficulty,
    )


def cuisine(culture: str, meals: List[StructuredMeal]) -> CulturalCuisineData:
    return CulturalCuisineData(culture=culture, meals=meals, key_ingredients=["garlic"])


ITALIAN = cuisine(
    "Italian",
    [
        make_meal("italian_0", "Pasta al Pomodoro", ingredients=("pasta", "tomato", "basil", "olive oil")),
        make_meal("italian_1", "Minestrone", ingredients=("beans", "carrot", "celery", "tomato"), techniques=("simmer",)),
        make_meal("italian_2", "Chicken Cacciatore", ingredients=("chicken thighs", "tomato", "onion", "bell peppers"), techniques=("braise",), cook=45),
        make_meal("italian_3", "Risotto", ingredients=("rice", "onion", "parmigiano", "butter"), cook=30),
        make_meal("italian_4", "Grilled Vegetables", ingredients=("zucchini", "eggplant", "olive oil"), techniques=("grill",)),
    ],
)
CHINESE = cuisine(
    "Chinese",
    [
        make_meal("chinese_0", "Steamed Fish", cuisine="Chinese", ingredients=("fish", "ginger", "scallion"), techniques=("steam",)),
        make_meal("chinese_1", "Mapo Tofu", cuisine="Chinese", ingredients=("tofu", "chili", "garlic"), techniques=("simmer",)),
    ],
)

GENERATED_MEAL = {
    "title": "Lentil Spinach Bowl",
    "description": "Quick lentils with greens",
    "cuisine": "Italian",
    "ingredients": ["lentils", "spinach", "garlic", "olive oil"],
    "instructions": ["simmer lentils", "wilt spinach"],
    "nutrition": {"calories": 480, "protein_g": 24, "carbs_g": 50, "fat_g": 14},
    "cook_time_minutes": 25,
    "difficulty": 2,
    "objective_satisfaction": ["healthy", "cost_effective"],
    "weight_rationale": "Cheap legumes cover cost and health",
}


def profile(**kw) -> UserProfile:
    weights = kw.pop("weights", {})
    kw.setdefault("cultural_background", ("Italian",))
    return UserProfile(priority_weights=PriorityWeights(**weights), **kw)


def cache_with(*data: CulturalCuisineData) -> CulturalCache:
    return CulturalCache(source=InMemorySource({d.culture: d for d in data}))


@pytest.fixture
def engine() -> CulturalRankingEngine:
    return CulturalRankingEngine(cache_with(ITALIAN, CHINESE), default_cultures=["Chinese"])


@pytest.fixture
def generating_llm() -> FakeLLMClient:
    return FakeLLMClient(handler=lambda system, prompt: dict(GENERATED_MEAL))
