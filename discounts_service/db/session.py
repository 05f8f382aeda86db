from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from discounts_service.core.config import get_settings
from discounts_service.db.models.base import Base

engine = create_async_engine(get_settings().database_url, pool_pre_ping=True)

SessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine,
    expire_on_commit=False,
)


async def create_all() -> None:
    # Registers every table on Base.metadata before create_all runs.
    import discounts_service.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()
