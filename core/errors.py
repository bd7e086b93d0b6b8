"""
core/errors.py
────────────────────────────────────────────────────────────────────────
Failure taxonomy for the meal-plan pipeline.

Every error carries a short `reason` so the API layer can tell a
missing credential apart from a flaky network or an empty catalogue.
Dietary violations are *not* errors – they travel as data on the meal.
"""
from __future__ import annotations


class MealPlanError(Exception):
    reason = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(MealPlanError):
    """LLM credentials (or other required settings) are missing."""

    reason = "configuration"


class TransportError(MealPlanError):
    """Network / provider failure talking to the LLM or the cache."""

    reason = "transport"


class ParseError(MealPlanError):
    """LLM reply was not JSON or lacked the fields we asked for."""

    reason = "parse"


class NoCandidatesError(MealPlanError):
    reason = "no_candidates"
