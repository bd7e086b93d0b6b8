from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Nutrition(BaseModel):
    calories: float = 0
    protein_g: float = 0
    carbs_g: float = 0
    fat_g: float = 0

    model_config = ConfigDict(frozen=True)


class StructuredMeal(BaseModel):
    """A cached / generated meal. Immutable – adaptations build new copies."""

    id: str
    name: str
    description: str = ""
    cuisine: str = ""
    meal_type: str | None = None   # breakfast / lunch / dinner / snack
    authenticity_score: float = Field(0.5, ge=0, le=1)
    ingredients: tuple[str, ...] = ()
    instructions: tuple[str, ...] = ()
    cooking_techniques: tuple[str, ...] = ()
    nutrition: Nutrition = Nutrition()
    estimated_prep_time: int = Field(10, ge=0)
    estimated_cook_time: int = Field(20, ge=0)
    difficulty_level: float = Field(2.0, ge=1, le=5)

    model_config = ConfigDict(frozen=True)

    @property
    def total_time(self) -> int:
        return self.estimated_prep_time + self.estimated_cook_time


class ComponentScores(BaseModel):
    cultural: float = Field(ge=0, le=1)
    health: float = Field(ge=0, le=1)
    cost: float = Field(ge=0, le=1)
    time: float = Field(ge=0, le=1)

    model_config = ConfigDict(frozen=True)


class MealScore(BaseModel):
    meal: StructuredMeal
    component_scores: ComponentScores
    total_score: float = Field(ge=0, le=1)
    ranking_explanation: str = ""

    model_config = ConfigDict(frozen=True)


class WeightSatisfaction(BaseModel):
    cost: float = 0
    health: float = 0
    cultural: float = 0
    variety: float = 0
    time: float = 0

    model_config = ConfigDict(frozen=True)


class WeightBasedMeal(StructuredMeal):
    """The unit placed into a plan slot."""

    source: Literal["cultural", "generated"] = "generated"
    objective_overlap: tuple[str, ...] = ()
    weight_satisfaction: WeightSatisfaction = WeightSatisfaction()
    cultural_source: str | None = None
    adaptation_notes: tuple[str, ...] | None = None
    dietary_compliant: bool = True
    violations: tuple[str, ...] = ()
    hero_ingredients_used: tuple[str, ...] = ()
    weight_rationale: str | None = None


class BaseMealSelection(BaseModel):
    base_meal: StructuredMeal
    similarity_score: float
    usage_rationale: str
    weight_alignment: dict[str, float]

    model_config = ConfigDict(frozen=True)
