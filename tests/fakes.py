from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from discounts_service.db.models.discounts import Discount

UTC = timezone.utc


class FakeTransaction:
    def __init__(self, session: object) -> None:
        self._session = session

    async def __aenter__(self) -> object:
        return self._session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class FakeSessionFactory:
    """Mimics ``SessionLocal``: both ``SessionLocal()`` and ``SessionLocal.begin()``."""

    def __init__(self) -> None:
        self.session = object()
        self.begin_calls = 0

    def __call__(self) -> FakeTransaction:
        return FakeTransaction(self.session)

    def begin(self) -> FakeTransaction:
        self.begin_calls += 1
        return FakeTransaction(self.session)


def build_discount(
    *,
    access_key: str = "SPRING-10",
    per_email_once: bool = True,
    per_device_cooldown_minutes: int | None = 60,
    active: bool = True,
) -> Discount:
    created_at = datetime(2026, 1, 1, tzinfo=UTC)
    return Discount(
        id=uuid4(),
        access_key=access_key,
        business_id=uuid4(),
        title="Spring sale",
        description=None,
        per_device_cooldown_minutes=per_device_cooldown_minutes,
        per_email_once=per_email_once,
        active=active,
        created_at=created_at,
        updated_at=created_at,
    )
