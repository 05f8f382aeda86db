from __future__ import annotations

from typing import Protocol

import structlog

from discounts_service.db.models.outbox_entries import OutboxEntry

logger = structlog.get_logger(__name__)


class OutboxPublisher(Protocol):
    async def publish(self, entry: OutboxEntry) -> None: ...


class LogOutboxPublisher:
    """Stands in for a message bus: every claimed entry becomes one log line."""

    async def publish(self, entry: OutboxEntry) -> None:
        logger.info(
            "outbox_event_dispatched_stub",
            outbox_id=entry.id,
            event_type=entry.event_type,
            attempts=entry.attempts,
        )
