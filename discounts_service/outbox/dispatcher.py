from __future__ import annotations

import asyncio
from typing import Any

import structlog

from discounts_service.core.config import get_settings
from discounts_service.db.models.outbox_entries import OutboxEntry
from discounts_service.db.repo.outbox_repo import OutboxRepo
from discounts_service.db.session import SessionLocal
from discounts_service.outbox.publisher import LogOutboxPublisher, OutboxPublisher

logger = structlog.get_logger(__name__)

OUTBOX_DRAIN_DEFAULT_LIMIT = 10
OUTBOX_DRAIN_MAX_LIMIT = 100


def resolve_drain_limit(requested: int | None) -> int:
    return max(0, min(requested or OUTBOX_DRAIN_DEFAULT_LIMIT, OUTBOX_DRAIN_MAX_LIMIT))


class OutboxDispatcher:
    """Claims pending outbox entries one at a time and hands them to a publisher.

    ``tick`` is a single dispatch step and never raises. ``start``/``stop`` run it
    on a fixed interval as one background task in the current event loop.
    ``drain_batch`` is the synchronous catch-up path used by the admin endpoint
    and the worker task.
    """

    def __init__(
        self,
        *,
        interval_seconds: float,
        publisher: OutboxPublisher | None = None,
        session_factory: Any = None,
    ) -> None:
        self._interval_seconds = interval_seconds
        self._publisher = publisher or LogOutboxPublisher()
        self._session_factory = session_factory or SessionLocal
        self._task: asyncio.Task[None] | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _claim_and_publish(self) -> OutboxEntry | None:
        async with self._session_factory.begin() as session:
            entry = await OutboxRepo.claim_next_pending(session)
        if entry is None:
            return None

        await self._publisher.publish(entry)
        return entry

    async def tick(self) -> OutboxEntry | None:
        try:
            return await self._claim_and_publish()
        except Exception:
            logger.exception("outbox_dispatcher_error")
            return None

    async def drain_batch(self, limit: int) -> list[int]:
        processed: list[int] = []
        for _ in range(max(0, limit)):
            entry = await self._claim_and_publish()
            if entry is None:
                break
            processed.append(entry.id)

        logger.info("outbox_drain_finished", limit=limit, processed_count=len(processed))
        return processed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            await self.tick()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="outbox-dispatcher")
        logger.info("outbox_dispatcher_started", interval_seconds=self._interval_seconds)

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._task = None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("outbox_dispatcher_stopped")


def build_outbox_dispatcher() -> OutboxDispatcher:
    settings = get_settings()
    return OutboxDispatcher(interval_seconds=settings.dispatch_interval_ms / 1000)
