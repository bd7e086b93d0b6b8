"""
Hero-ingredient selection.
"""
from conftest import profile
from core import dietary
from core.hero_ingredients import hero_count, heroes_in, select_hero_ingredients


def test_count_follows_cost_weight():
    assert hero_count(0.9) == 6
    assert hero_count(0.6) == 4
    assert hero_count(0.5) == 2
    assert len(select_hero_ingredients(profile(weights=dict(cost=0.9)))) == 6


def test_restricted_ingredients_are_dropped():
    p = profile(dietary_restrictions=frozenset({"vegan"}), weights=dict(cost=0.9))
    heroes = select_hero_ingredients(p)
    assert "eggs" not in heroes and "chicken thighs" not in heroes
    assert dietary.check(heroes, p.dietary_restrictions).compliant


def test_selection_is_deterministic_and_culture_aware():
    p = profile(cultural_background=("Korean",))
    assert select_hero_ingredients(p) == select_hero_ingredients(p)
    assert select_hero_ingredients(p) == ["ginger", "tofu"]


def test_available_ingredients_are_preferred():
    p = profile(cultural_background=(), available_ingredients=("lentils",))
    assert select_hero_ingredients(p) == ["onions", "lentils"]


def test_heroes_in_meal():
    assert heroes_in(("2 onions, diced", "brown rice"), ["onions", "rice", "tofu"]) == ("onions", "rice")
