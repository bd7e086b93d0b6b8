"""
Dietary compliance filter – pure keyword scan.
"""
from core import dietary


def test_vegan_rejects_chicken_breast():
    result = dietary.check(["chicken breast", "rice"], {"vegan"})
    assert result.compliant is False
    assert result.violations == ("vegan: contains chicken",)


def test_clean_meal_is_compliant():
    result = dietary.check(["lentils", "spinach", "garlic"], {"vegan", "gluten-free"})
    assert result.compliant
    assert result.violations == ()


def test_unknown_restriction_never_violates():
    assert dietary.check(["pork belly"], {"halal-ish"}).compliant


def test_no_restrictions():
    assert dietary.check(["anything"], set()).compliant


def test_restriction_names_are_normalised():
    result = dietary.check(["wheat flour"], {"Gluten Free"})
    assert result.violations == (
        "Gluten Free: contains wheat",
        "Gluten Free: contains flour",
    )


def test_substring_match_is_literal():
    # compound words still trip the rule
    assert not dietary.check(["chicken-free broth"], {"vegetarian"}).compliant


def test_violation_order_is_stable():
    result = dietary.check(["beef", "cheese"], {"vegetarian", "dairy-free"})
    assert result.violations == (
        "dairy-free: contains cheese",
        "vegetarian: contains beef",
    )


def test_case_insensitive_ingredients():
    assert not dietary.check(["Greek YOGURT"], {"dairy-free"}).compliant
