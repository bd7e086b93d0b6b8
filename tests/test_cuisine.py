"""
Raw research record → StructuredMeal.
"""
from core.cuisine import (
    authenticity_score,
    estimate_cook_time,
    extract_cooking_techniques,
    string_list,
    structure_meal,
)
from core.models.cuisine import CuisineSummary

SUMMARY = CuisineSummary(common_healthy_ingredients=["ginger", "scallion", "bok choy"])

RAW = {
    "name": "Steamed Fish",
    "description": "Whole fish steamed with ginger and scallion",
    "full_ingredients": ["sea bass", "ginger", "scallion", "soy sauce", "sesame oil", "rice wine"],
}


def test_structure_meal_estimates():
    meal = structure_meal(RAW, "Chinese", 0, SUMMARY)
    assert meal.id == "chinese_0"
    assert meal.cuisine == "Chinese"
    assert meal.cooking_techniques == ("steam",)
    assert meal.authenticity_score == 0.9
    assert meal.estimated_prep_time == 12
    assert meal.estimated_cook_time == 15
    assert meal.difficulty_level == 2.0
    assert meal.nutrition.calories > 0


def test_complex_braise_is_harder_and_slower():
    raw = {
        "name": "Braised Short Ribs",
        "description": "Slowly braise until tender",
        "full_ingredients": [f"item {i}" for i in range(12)],
        "healthy_modifications": ["less oil", "more veg", "lean cut"],
    }
    meal = structure_meal(raw, "Korean", 4)
    assert meal.estimated_cook_time == 45
    assert meal.estimated_prep_time == 20
    assert meal.difficulty_level == 4.0


def test_defaults_for_sparse_records():
    meal = structure_meal({"name": "Mystery"}, "South Indian", 3)
    assert meal.id == "south_indian_3"
    assert meal.cooking_techniques == ("saute",)
    assert meal.estimated_prep_time == 10
    assert meal.authenticity_score == 0.7


def test_explicit_nutrition_is_kept():
    raw = dict(RAW, nutrition={"calories": 320, "protein_g": 30, "carbs_g": 5, "fat_g": 12})
    assert structure_meal(raw, "Chinese", 1).nutrition.calories == 320


def test_authenticity_is_capped():
    raw = {"name": "ginger scallion bok choy", "description": "ginger ginger"}
    summary = CuisineSummary(common_healthy_ingredients=["ginger", "scallion", "bok choy", "garlic"])
    assert authenticity_score(raw, summary) == 1.0


def test_technique_helpers():
    assert extract_cooking_techniques("quick stir-fry") == ["stir-fry", "fry"]
    assert estimate_cook_time(["stir-fry", "fry"]) == 10
    assert estimate_cook_time(["poach"]) == 20


def test_string_list_coercion():
    assert string_list("rice, beans,, ") == ["rice", "beans"]
    assert string_list("Boil, then drain", split=False) == ["Boil, then drain"]
    assert string_list(["tofu", None, " ", 3]) == ["tofu", "3"]
    assert string_list(7) == [] and string_list(None) == []
