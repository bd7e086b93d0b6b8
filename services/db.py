"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* `cultural_cuisine_cache` table – the global, cross-user research cache
* `SqlCuisineStore` – load/save adapter used by services.cultural_cache
"""
from __future__ import annotations

from datetime import datetime
from typing import AsyncGenerator

from sqlalchemy import JSON, DateTime, Float, Integer, String, func, select
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from config import settings
from core.errors import ConfigurationError
from core.models.cuisine import CuisineSummary, CulturalCuisineData
from core.models.meal import StructuredMeal

# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None


def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        if not settings.database_url:
            raise ConfigurationError("Set DATABASE_URL to use the global cultural cache")
        _ENGINE = create_async_engine(settings.database_url, pool_pre_ping=True)
    return _ENGINE


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)


class CulturalCuisineCacheRow(Base):
    __tablename__ = "cultural_cuisine_cache"

    culture_key: Mapped[str] = mapped_column(String, primary_key=True)  # lower-cased
    culture: Mapped[str] = mapped_column(String)
    meals: Mapped[list] = mapped_column(JSON)
    summary: Mapped[dict] = mapped_column(JSON)
    key_ingredients: Mapped[list] = mapped_column(JSON)
    source_quality_score: Mapped[float] = mapped_column(Float, default=0.8)
    data_version: Mapped[str] = mapped_column(String)
    access_count: Mapped[int] = mapped_column(Integer, default=0)
    cached_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    last_accessed: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


async def create_tables(eng: AsyncEngine | None = None) -> None:
    async with (eng or engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ───────── store adapter ─────────────────────────────────────────────
class SqlCuisineStore:
    def __init__(self, eng: AsyncEngine | None = None) -> None:
        self._sessions = async_sessionmaker(eng or engine(), expire_on_commit=False)

    async def load(self, culture: str) -> CulturalCuisineData | None:
        async with self._sessions() as db:
            row = (
                await db.execute(
                    select(CulturalCuisineCacheRow)
                    .where(CulturalCuisineCacheRow.culture_key == culture.lower())
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            row.access_count += 1
            row.last_accessed = datetime.utcnow()
            await db.commit()
            return _to_model(row)

    async def save(self, data: CulturalCuisineData) -> None:
        async with self._sessions() as db:
            row = await db.get(CulturalCuisineCacheRow, data.culture.lower())
            payload = dict(
                culture=data.culture,
                meals=[m.model_dump(mode="json") for m in data.meals],
                summary=data.summary.model_dump(mode="json"),
                key_ingredients=list(data.key_ingredients),
                source_quality_score=data.source_quality_score,
                data_version=data.data_version,
                cached_at=data.cached_at,
                last_accessed=data.last_accessed,
            )
            if row is None:
                db.add(CulturalCuisineCacheRow(culture_key=data.culture.lower(), **payload))
            else:
                for k, v in payload.items():
                    setattr(row, k, v)
            await db.commit()


def _to_model(row: CulturalCuisineCacheRow) -> CulturalCuisineData:
    return CulturalCuisineData(
        culture=row.culture,
        meals=[StructuredMeal.model_validate(m) for m in row.meals or []],
        summary=CuisineSummary.model_validate(row.summary or {}),
        key_ingredients=list(row.key_ingredients or []),
        source_quality_score=row.source_quality_score,
        data_version=row.data_version,
        access_count=row.access_count,
        cached_at=row.cached_at,
        last_accessed=row.last_accessed,
    )


# ───────── session helper ────────────────────────────────────────────
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(engine(), expire_on_commit=False)
    async with async_session() as session:
        yield session
