from __future__ import annotations

import pytest
from sqlalchemy import text

from discounts_service.core.integration_db_safety import assess_integration_db_safety
from discounts_service.db.session import create_all, engine

TRUNCATE_TABLES = (
    "outbox_entries",
    "redemptions",
    "discounts",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} RESTART IDENTITY CASCADE"


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> None:
    result = assess_integration_db_safety(str(engine.url))
    if not result.is_safe:
        pytest.skip(f"Integration tests need a local test database: {result.reason}")


@pytest.fixture(autouse=True)
async def cleanup_db() -> None:
    # asyncpg connections are bound to the loop that opened them.
    await engine.dispose()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    await create_all()
    async with engine.begin() as conn:
        await conn.execute(text(TRUNCATE_SQL))

    yield

    await engine.dispose()
