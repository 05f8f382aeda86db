from __future__ import annotations

import asyncio
import time
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog

from discounts_service.db.session import dispose_engine

T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def _run_job(job: Coroutine[Any, Any, T], *, job_name: str) -> T:
    # asyncpg connections are bound to the loop that opened them.
    await dispose_engine()
    started = time.perf_counter()
    try:
        result = await job
    except Exception:
        logger.exception("worker_job_failed", job=job_name)
        raise
    finally:
        await dispose_engine()

    logger.info(
        "worker_job_finished",
        job=job_name,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return result


def run_async_job(job: Coroutine[Any, Any, T], *, job_name: str | None = None) -> T:
    """Run a DB-backed coroutine from a sync Celery task on a fresh event loop."""
    return asyncio.run(_run_job(job, job_name=job_name or job.__qualname__))
