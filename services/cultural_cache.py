# services/cultural_cache.py
"""
Two-level cache for per-culture research data.

Lookup order for each requested culture:

    1. per-user in-memory entry      (fresh within TTL)
    2. global store (services.db)    (fresh within TTL, optional)
    3. source loader (LLM research)  → written back to 1 and 2

The ranking pipeline only ever reads through
`get_cached_cultural_cuisine()`; population and invalidation live here.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Protocol

from sqlalchemy.exc import SQLAlchemyError

from config import settings
from core.errors import ConfigurationError, MealPlanError
from core.models.cuisine import CulturalCuisineData

_LOG = logging.getLogger(__name__)


class CuisineSource(Protocol):
    async def fetch(self, culture: str) -> CulturalCuisineData | None: ...


class CuisineStore(Protocol):
    async def load(self, culture: str) -> CulturalCuisineData | None: ...

    async def save(self, data: CulturalCuisineData) -> None: ...


class CulturalDataProvider(Protocol):
    async def get_cached_cultural_cuisine(
        self, user_id: int, cultures: Iterable[str], force_refresh: bool = False
    ) -> Dict[str, CulturalCuisineData]: ...


@dataclass
class CacheMetrics:
    hits: int = 0
    misses: int = 0
    errors: int = 0
    last_cleanup: datetime = field(default_factory=datetime.utcnow)


class CulturalCache:
    def __init__(
        self,
        source: CuisineSource | None = None,
        store: CuisineStore | None = None,
        ttl_hours: float | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._source = source
        self._store = store
        self._ttl = timedelta(hours=ttl_hours or settings.cultural_cache_ttl_hours)
        self._clock = clock
        self._entries: Dict[str, Dict[str, CulturalCuisineData]] = {}
        self.metrics = CacheMetrics()

    # ─────────────────────────── read path ─────────────────────────── #
    async def get_cached_cultural_cuisine(
        self, user_id: int, cultures: Iterable[str], force_refresh: bool = False
    ) -> Dict[str, CulturalCuisineData]:
        wanted = list(dict.fromkeys(c for c in cultures if c and c.strip()))
        if not wanted:
            return {}
        found = await asyncio.gather(
            *[self._get_one(str(user_id), c, force_refresh) for c in wanted]
        )
        out = {c: data for c, data in zip(wanted, found) if data is not None}
        _LOG.debug("cultural data for user %s: %s", user_id, list(out))
        return out

    async def _get_one(
        self, user: str, culture: str, force_refresh: bool
    ) -> CulturalCuisineData | None:
        key = culture.lower()
        user_entries = self._entries.setdefault(user, {})

        if not force_refresh:
            data = user_entries.get(key)
            if data is not None and self._fresh(data):
                return self._touch(data)
            data = await self._load_from_store(culture)
            if data is not None and self._fresh(data):
                user_entries[key] = data
                return self._touch(data)

        self.metrics.misses += 1
        data = await self._load_from_source(culture)
        if data is None:
            return None
        user_entries[key] = data
        if self._store is not None:
            try:
                await self._store.save(data)
            except SQLAlchemyError as exc:
                _LOG.warning("could not persist %s to global cache: %s", culture, exc)
        return data

    async def _load_from_store(self, culture: str) -> CulturalCuisineData | None:
        if self._store is None:
            return None
        try:
            return await self._store.load(culture)
        except SQLAlchemyError as exc:
            self.metrics.errors += 1
            _LOG.warning("global cache read failed for %s: %s", culture, exc)
            return None

    async def _load_from_source(self, culture: str) -> CulturalCuisineData | None:
        if self._source is None:
            return None
        try:
            data = await self._source.fetch(culture)
        except ConfigurationError:
            raise
        except MealPlanError as exc:
            self.metrics.errors += 1
            _LOG.warning("failed to load %s cuisine data: %s", culture, exc)
            return None
        if data is None:
            return None
        now = self._clock()
        return data.model_copy(update={"cached_at": now, "last_accessed": now, "access_count": 0})

    def _fresh(self, data: CulturalCuisineData) -> bool:
        return self._clock() - data.cached_at < self._ttl

    def _touch(self, data: CulturalCuisineData) -> CulturalCuisineData:
        self.metrics.hits += 1
        data.access_count += 1
        data.last_accessed = self._clock()
        return data

    # ─────────────────────────── maintenance ───────────────────────── #
    def cached_cuisines(self, user_id: int) -> List[str]:
        return [d.culture for d in self._entries.get(str(user_id), {}).values()]

    def clear_user(self, user_id: int) -> bool:
        return self._entries.pop(str(user_id), None) is not None

    def clear_all(self) -> None:
        self._entries.clear()
        self.metrics = CacheMetrics()

    def cleanup(self) -> int:
        removed = 0
        for user_entries in self._entries.values():
            for key in [k for k, d in user_entries.items() if not self._fresh(d)]:
                del user_entries[key]
                removed += 1
        self.metrics.last_cleanup = self._clock()
        _LOG.info("cache cleanup removed %d expired entries", removed)
        return removed

    def stats(self) -> Dict[str, object]:
        lookups = self.metrics.hits + self.metrics.misses
        access: Dict[str, int] = {}
        for user_entries in self._entries.values():
            for d in user_entries.values():
                access[d.culture] = access.get(d.culture, 0) + d.access_count
        return {
            "total_users": len(self._entries),
            "total_cuisines": sum(len(e) for e in self._entries.values()),
            "hit_rate": self.metrics.hits / lookups if lookups else 0.0,
            "errors": self.metrics.errors,
            "top_cultures": sorted(access.items(), key=lambda kv: kv[1], reverse=True)[:5],
        }
