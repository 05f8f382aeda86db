from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from discounts_service.db.models.redemptions import Redemption


class RedemptionsRepo:
    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession,
        idempotency_key: str,
    ) -> Redemption | None:
        stmt = select(Redemption).where(Redemption.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_discount_and_email(
        session: AsyncSession,
        *,
        discount_id: UUID,
        email: str,
    ) -> Redemption | None:
        stmt = (
            select(Redemption)
            .where(
                Redemption.discount_id == discount_id,
                Redemption.email == email,
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_recent_by_discount_and_device(
        session: AsyncSession,
        *,
        discount_id: UUID,
        device_id: str,
        since_utc: datetime,
    ) -> Redemption | None:
        stmt = (
            select(Redemption)
            .where(
                Redemption.discount_id == discount_id,
                Redemption.device_id == device_id,
                Redemption.created_at >= since_utc,
            )
            .order_by(Redemption.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def create(session: AsyncSession, *, redemption: Redemption) -> Redemption:
        # Savepoint keeps the outer transaction usable after a duplicate-key failure.
        async with session.begin_nested():
            session.add(redemption)
            await session.flush()
        return redemption
