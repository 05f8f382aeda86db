from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from discounts_service.db.models.outbox_entries import (
    OUTBOX_STATUS_PENDING,
    OUTBOX_STATUS_SENT,
    OutboxEntry,
)

OUTBOX_LIST_MAX_LIMIT = 100


class OutboxRepo:
    @staticmethod
    async def enqueue(
        session: AsyncSession,
        *,
        event_type: str,
        payload: dict[str, object],
        now_utc: datetime | None = None,
    ) -> OutboxEntry:
        now_utc = now_utc or datetime.now(timezone.utc)
        entry = OutboxEntry(
            event_type=event_type,
            payload=payload,
            status=OUTBOX_STATUS_PENDING,
            attempts=0,
            last_error=None,
            created_at=now_utc,
            updated_at=now_utc,
        )
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def claim_next_pending(
        session: AsyncSession,
        *,
        now_utc: datetime | None = None,
    ) -> OutboxEntry | None:
        now_utc = now_utc or datetime.now(timezone.utc)
        candidate_id = (
            select(OutboxEntry.id)
            .where(OutboxEntry.status == OUTBOX_STATUS_PENDING)
            .order_by(OutboxEntry.created_at.asc(), OutboxEntry.id.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(OutboxEntry)
            .where(
                OutboxEntry.id == candidate_id,
                OutboxEntry.status == OUTBOX_STATUS_PENDING,
            )
            .values(
                status=OUTBOX_STATUS_SENT,
                attempts=OutboxEntry.attempts + 1,
                updated_at=now_utc,
            )
            .returning(OutboxEntry)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_pending(session: AsyncSession, *, limit: int) -> list[OutboxEntry]:
        resolved_limit = min(max(1, int(limit)), OUTBOX_LIST_MAX_LIMIT)
        stmt = (
            select(OutboxEntry)
            .where(OutboxEntry.status == OUTBOX_STATUS_PENDING)
            .order_by(OutboxEntry.created_at.asc(), OutboxEntry.id.asc())
            .limit(resolved_limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
