from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

WEIGHT_KEYS = ("cost", "health", "cultural", "variety", "time")

# implied preference for a cuisine listed in cultural_background
BACKGROUND_PREFERENCE = 0.9


class PriorityWeights(BaseModel):
    """Relative decision priorities – not quotas, need not sum to 1."""

    cost: float = Field(0.5, ge=0, le=1)
    health: float = Field(0.5, ge=0, le=1)
    cultural: float = Field(0.5, ge=0, le=1)
    variety: float = Field(0.5, ge=0, le=1)
    time: float = Field(0.5, ge=0, le=1)

    model_config = ConfigDict(frozen=True)

    def ranked(self) -> list[tuple[str, float]]:
        """(name, weight) pairs, highest first; ties keep declaration order."""
        return sorted(
            ((k, getattr(self, k)) for k in WEIGHT_KEYS),
            key=lambda kv: kv[1],
            reverse=True,
        )


class UserProfile(BaseModel):
    # mandatory, 100 % compliance
    dietary_restrictions: frozenset[str] = frozenset()
    priority_weights: PriorityWeights = PriorityWeights()
    cultural_background: tuple[str, ...] = ()
    cultural_preferences: dict[str, float] = {}
    family_size: int = Field(1, ge=1)
    max_cook_time: int | None = Field(None, gt=0)
    available_ingredients: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    def cultural_preference(self, cuisine: str) -> float:
        key = cuisine.lower()
        for name, value in self.cultural_preferences.items():
            if name.lower() == key:
                return value
        if any(c.lower() == key for c in self.cultural_background):
            return BACKGROUND_PREFERENCE
        return 0.5

    def cultures(self) -> list[str]:
        """
        Background first, then any extra cuisines only named in preferences.
        Case-insensitive duplicates keep their first spelling.
        """
        out: list[str] = []
        seen: set[str] = set()
        for name in (*self.cultural_background, *self.cultural_preferences):
            name = name.strip()
            if name and name.lower() not in seen:
                out.append(name)
                seen.add(name.lower())
        return out
