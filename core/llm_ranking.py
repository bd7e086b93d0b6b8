"""
core/llm_ranking.py
────────────────────────────────────────────────────────────────────────
LLM re-ranking of locally scored candidates.

`rank_meals()` sends up to MAX_PROMPT_MEALS candidates plus the user's
weights/restrictions in a single prompt and asks for four component
scores (0–100) and a weighted total per meal. There is deliberately no
local numeric fallback: missing credentials, a transport failure or an
unparseable reply raise to the caller.

`rank_meals_in_parallel()` fans the candidates out in small batches
with `asyncio.gather`, drops the candidates of any batch that fails,
then merges and re-sorts globally.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from config import settings
from core.errors import ConfigurationError, MealPlanError, ParseError
from core.models.meal import ComponentScores, MealScore
from core.models.user import UserProfile
from services.llm import LLMClient

_LOG = logging.getLogger(__name__)

MAX_PROMPT_MEALS = 15
SYSTEM_PROMPT = "You are a meal ranking expert. Respond only with valid JSON."
_DEFAULT_REASON = "Ranked by cultural authenticity, health, cost, and time preferences"


@dataclass
class RankingResult:
    ranked: List[MealScore] = field(default_factory=list)
    reasoning: str = ""


class LLMRankingDelegate:
    def __init__(self, llm: LLMClient, batch_size: int | None = None) -> None:
        self._llm = llm
        self._batch_size = batch_size or settings.ranking_batch_size

    # ─────────────────────────── single shot ─────────────────────────── #
    async def rank_meals(
        self,
        candidates: Sequence[MealScore],
        profile: UserProfile,
        max_meals: int = 9,
    ) -> RankingResult:
        self._llm.ensure_configured()
        shown = list(candidates[:MAX_PROMPT_MEALS])
        if not shown:
            return RankingResult([], "No candidates to rank")

        prompt = build_ranking_prompt(shown, profile, max_meals)
        _LOG.debug("ranking %d meals (prompt %d chars)", len(shown), len(prompt))
        reply = await self._llm.complete_json(
            system=SYSTEM_PROMPT, prompt=prompt, temperature=0.3, max_output_tokens=2500
        )
        ranked = parse_ranking_response(reply, shown)
        reasoning = reply.get("reason") or reply.get("reasoning") or _DEFAULT_REASON
        _LOG.debug("LLM scored %d/%d meals", len(ranked), len(shown))
        return RankingResult(ranked[:max_meals], str(reasoning))

    # ─────────────────────────── fan-out ─────────────────────────────── #
    async def rank_meals_in_parallel(
        self,
        candidates: Sequence[MealScore],
        profile: UserProfile,
        max_meals: int = 10,
    ) -> RankingResult:
        # credentials are a whole-operation problem, not a per-batch one
        self._llm.ensure_configured()
        size = self._batch_size
        batches = [list(candidates[i:i + size]) for i in range(0, len(candidates), size)]
        _LOG.debug("parallel ranking: %d meals in %d batches", len(candidates), len(batches))

        results = await asyncio.gather(
            *[self._rank_batch(b, profile, idx) for idx, b in enumerate(batches)]
        )
        merged = [m for batch in results for m in batch]
        merged.sort(key=lambda m: m.total_score, reverse=True)
        return RankingResult(
            merged[:max_meals],
            f"Parallel AI ranking of {len(candidates)} meals in "
            f"{len(batches)} batches with user weight preferences",
        )

    async def _rank_batch(
        self, batch: List[MealScore], profile: UserProfile, idx: int
    ) -> List[MealScore]:
        try:
            result = await self.rank_meals(batch, profile, max_meals=len(batch))
        except ConfigurationError:
            raise
        except MealPlanError as exc:
            _LOG.warning(
                "ranking batch %d failed (%s); dropping %s",
                idx + 1, exc, [m.meal.name for m in batch],
            )
            return []
        return result.ranked


# ──────────────────────────────── Helpers ────────────────────────────────

def build_ranking_prompt(
    meals: Sequence[MealScore], profile: UserProfile, max_meals: int
) -> str:
    prefs = ", ".join(
        f"{c}: {profile.cultural_preference(c) * 100:.0f}%" for c in profile.cultures()
    ) or "None"
    w = profile.priority_weights
    weights = (
        f"Cultural: {w.cultural * 100:.0f}%, Health: {w.health * 100:.0f}%, "
        f"Cost: {w.cost * 100:.0f}%, Time: {w.time * 100:.0f}%"
    )
    restrictions = ", ".join(sorted(profile.dietary_restrictions)) or "None"
    options = "\n\n".join(
        f'{i}. "{s.meal.name}" ({s.meal.cuisine})\n'
        f"   - Description: {s.meal.description}\n"
        f"   - Authenticity Score: {s.meal.authenticity_score * 100:.0f}%"
        for i, s in enumerate(meals, start=1)
    )
    return (
        f"Score and rank the best {max_meals} meals for this user profile.\n\n"
        "USER PREFERENCES:\n"
        f"- Cultural Preferences: {prefs}\n"
        f"- Priority Weights: {weights}\n"
        f"- Dietary Restrictions: {restrictions}\n\n"
        "SCORING INSTRUCTIONS:\n"
        "For each meal calculate scores (0-100) for:\n"
        "1. Cultural Score: authenticity score x cultural preference\n"
        "2. Health Score: steamed/grilled=high, fried=low, vegetables=high, heavy sauces=low\n"
        "3. Cost Score: simple ingredients=high, premium ingredients=low\n"
        "4. Time Score: stir-fry/simple=high, slow-cooked/complex=low\n\n"
        "Total = (Cultural Weight x Cultural Score + Health Weight x Health Score + "
        "Cost Weight x Cost Score + Time Weight x Time Score) / Sum of Weights\n\n"
        f"MEAL OPTIONS:\n{options}\n\n"
        "Return ONLY JSON, numbers only inside meal objects:\n"
        '{"meals": [{"id": 1, "cs": 85, "hs": 70, "cos": 90, "ts": 60, "tot": 78}], '
        '"reason": "Brief explanation"}\n'
        "Keys: cs=cultural, hs=health, cos=cost, ts=time, tot=total. "
        "id is the option number above."
    )


def _pct(value: Any) -> float:
    v = float(value) / 100.0
    if v != v:  # NaN
        raise ValueError("NaN score")
    return min(max(v, 0.0), 1.0)


def _entry_scores(entry: Dict[str, Any]) -> tuple[ComponentScores, float, tuple]:
    if "cs" in entry:
        raw = (entry["cs"], entry["hs"], entry["cos"], entry["ts"], entry["tot"])
    else:
        s = entry["scores"]
        raw = (s["cultural"], s["health"], s["cost"], s["time"], entry["total_score"])
    c, h, co, t, tot = (_pct(x) for x in raw)
    return ComponentScores(cultural=c, health=h, cost=co, time=t), tot, raw


def parse_ranking_response(
    reply: Dict[str, Any], originals: Sequence[MealScore]
) -> List[MealScore]:
    """
    Map the model's 1-based ids back onto `originals`.

    Entries that are malformed or point outside the candidate list are
    skipped; only a reply with no meals array at all is fatal.
    """
    if isinstance(reply.get("ranked_meal_ids"), list):
        out = []
        for mid in reply["ranked_meal_ids"]:
            if isinstance(mid, int) and 1 <= mid <= len(originals):
                out.append(originals[mid - 1])
        return out

    entries = reply.get("meals", reply.get("ranked_meals"))
    if not isinstance(entries, list):
        raise ParseError("No meals array found in AI response")

    ranked: List[MealScore] = []
    seen: set[int] = set()
    for entry in entries:
        try:
            idx = int(entry["id"]) - 1
            if not 0 <= idx < len(originals) or idx in seen:
                continue
            comps, total, raw = _entry_scores(entry)
        except (KeyError, OverflowError, TypeError, ValueError):
            _LOG.debug("skipping malformed ranking entry: %r", entry)
            continue
        seen.add(idx)
        ranked.append(
            MealScore(
                meal=originals[idx].meal,
                component_scores=comps,
                total_score=total,
                ranking_explanation=(
                    f"AI Score: {raw[4]}% (C:{raw[0]}% H:{raw[1]}% $:{raw[2]}% T:{raw[3]}%)"
                ),
            )
        )
    ranked.sort(key=lambda m: m.total_score, reverse=True)
    return ranked
