"""
core/dietary.py
────────────────────────────────────────────────────────────────────────
Dietary compliance filter – the only hard gate in the pipeline.

`check()` is a pure keyword scan of the ingredient text against a fixed
table. Matching is plain substring matching, so compound words
("chicken-free broth") will still trip the rule. Restrictions that have
no table entry are treated as satisfied.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Tuple

# ──────────────── keyword table ──────────────────
RESTRICTION_KEYWORDS: dict[str, Tuple[str, ...]] = {
    "vegetarian": ("meat", "chicken", "beef", "pork", "fish", "seafood"),
    "vegan": (
        "meat", "chicken", "beef", "pork", "fish", "seafood",
        "dairy", "milk", "cheese", "eggs", "honey",
    ),
    "gluten-free": ("wheat", "flour", "bread", "pasta", "gluten"),
    "dairy-free": ("milk", "cheese", "butter", "cream", "yogurt"),
    "nut-free": ("nuts", "almond", "peanut", "walnut", "cashew"),
    "egg-free": ("egg", "mayonnaise", "mayo"),
    "keto": ("rice", "pasta", "potato", "bread", "sugar", "flour"),
    "paleo": ("grain", "wheat", "rice", "beans", "dairy"),
}


@dataclass(frozen=True)
class ComplianceResult:
    compliant: bool
    violations: Tuple[str, ...] = field(default_factory=tuple)


def normalize_restriction(restriction: str) -> str:
    """'Gluten Free' / 'gluten_free' → 'gluten-free'."""
    key = re.sub(r"[\s_]+", "-", restriction.strip().lower())
    return re.sub(r"[^a-z-]", "", key)


def check(meal_ingredients: Iterable[str], restrictions: Iterable[str]) -> ComplianceResult:
    ingredient_text = " ".join(meal_ingredients).lower()
    violations: list[str] = []
    for restriction in sorted(restrictions, key=str.lower):
        for item in RESTRICTION_KEYWORDS.get(normalize_restriction(restriction), ()):
            if item in ingredient_text:
                violations.append(f"{restriction}: contains {item}")
    return ComplianceResult(compliant=not violations, violations=tuple(violations))
