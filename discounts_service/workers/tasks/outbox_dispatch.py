from __future__ import annotations

import structlog

from discounts_service.core.config import get_settings
from discounts_service.outbox.dispatcher import (
    OUTBOX_DRAIN_DEFAULT_LIMIT,
    build_outbox_dispatcher,
    resolve_drain_limit,
)
from discounts_service.workers.asyncio_runner import run_async_job
from discounts_service.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_outbox_drain_async(limit: int = OUTBOX_DRAIN_DEFAULT_LIMIT) -> dict[str, int]:
    processed = await build_outbox_dispatcher().drain_batch(resolve_drain_limit(limit))
    result = {"processed_count": len(processed)}
    logger.info("outbox_drain_task_finished", **result)
    return result


@celery_app.task(name="discounts_service.workers.tasks.outbox_dispatch.run_outbox_drain")
def run_outbox_drain(limit: int = OUTBOX_DRAIN_DEFAULT_LIMIT) -> dict[str, int]:
    return run_async_job(run_outbox_drain_async(limit), job_name="outbox_drain")


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "outbox-drain-every-dispatch-interval": {
            "task": "discounts_service.workers.tasks.outbox_dispatch.run_outbox_drain",
            "schedule": get_settings().dispatch_interval_ms / 1000,
            "options": {"queue": "q_outbox"},
        },
    }
)
