from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from discounts_service.db.models.discounts import Discount


class DiscountsRepo:
    @staticmethod
    async def get_active_by_access_key(
        session: AsyncSession,
        access_key: str,
    ) -> Discount | None:
        stmt = select(Discount).where(
            Discount.access_key == access_key,
            Discount.active.is_(True),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_access_key(session: AsyncSession, access_key: str) -> Discount | None:
        stmt = select(Discount).where(Discount.access_key == access_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, discount: Discount) -> Discount:
        session.add(discount)
        await session.flush()
        return discount
