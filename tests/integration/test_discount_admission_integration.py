from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from discounts_service.db.models.outbox_entries import OutboxEntry
from discounts_service.db.models.redemptions import Redemption
from discounts_service.db.session import SessionLocal
from discounts_service.discounts.admission import AdmissionService
from discounts_service.discounts.errors import (
    AlreadyRedeemedError,
    CooldownActiveError,
    DiscountNotFoundError,
)
from tests.integration.discount_fixtures import create_discount

UTC = timezone.utc


async def _admit(**kwargs):
    async with SessionLocal.begin() as session:
        return await AdmissionService.admit(session, **kwargs)


async def _count(model) -> int:
    async with SessionLocal() as session:
        return int(await session.scalar(select(func.count()).select_from(model)))


@pytest.mark.asyncio
async def test_admission_writes_redemption_and_outbox_entry() -> None:
    discount = await create_discount(access_key="INT-ADMIT-1")
    now_utc = datetime.now(UTC)

    result = await _admit(
        access_key="INT-ADMIT-1",
        idempotency_key="int-admit-1",
        email="a@example.com",
        device_id="dev-1",
        client_ip="203.0.113.5",
        now_utc=now_utc,
    )

    assert result.idempotent_replay is False
    async with SessionLocal() as session:
        redemption = await session.get(Redemption, result.redemption_id)
        entries = list((await session.execute(select(OutboxEntry))).scalars())

    assert redemption is not None
    assert redemption.discount_id == discount.id
    assert redemption.business_id == discount.business_id
    assert redemption.ip == "203.0.113.5"
    assert len(entries) == 1
    assert entries[0].event_type == "DiscountClaimed"
    assert entries[0].status == "pending"
    assert entries[0].attempts == 0
    assert entries[0].payload["redemption_id"] == str(result.redemption_id)
    assert entries[0].payload["discount_id"] == str(discount.id)
    assert entries[0].payload["email"] == "a@example.com"
    assert entries[0].payload["device_id"] == "dev-1"


@pytest.mark.asyncio
async def test_repeated_idempotency_key_is_replayed_without_new_rows() -> None:
    await create_discount(access_key="INT-REPLAY")

    first = await _admit(access_key="INT-REPLAY", idempotency_key="int-replay", email="a@example.com")
    second = await _admit(access_key="INT-REPLAY", idempotency_key="int-replay", email="a@example.com")

    assert second.idempotent_replay is True
    assert second.redemption_id == first.redemption_id
    assert await _count(Redemption) == 1
    assert await _count(OutboxEntry) == 1


@pytest.mark.asyncio
async def test_email_once_rejects_second_claim() -> None:
    await create_discount(access_key="INT-EMAIL", per_device_cooldown_minutes=0)

    await _admit(access_key="INT-EMAIL", idempotency_key="int-email-1", email="a@example.com")
    with pytest.raises(AlreadyRedeemedError):
        await _admit(access_key="INT-EMAIL", idempotency_key="int-email-2", email="a@example.com")

    assert await _count(Redemption) == 1
    assert await _count(OutboxEntry) == 1


@pytest.mark.asyncio
async def test_device_cooldown_window() -> None:
    await create_discount(access_key="INT-COOLDOWN", per_email_once=False, per_device_cooldown_minutes=60)
    start = datetime.now(UTC)

    await _admit(access_key="INT-COOLDOWN", idempotency_key="int-cd-1", device_id="dev-1", now_utc=start)
    with pytest.raises(CooldownActiveError):
        await _admit(
            access_key="INT-COOLDOWN",
            idempotency_key="int-cd-2",
            device_id="dev-1",
            now_utc=start + timedelta(minutes=30),
        )
    result = await _admit(
        access_key="INT-COOLDOWN",
        idempotency_key="int-cd-3",
        device_id="dev-1",
        now_utc=start + timedelta(minutes=61),
    )

    assert result.idempotent_replay is False
    assert await _count(Redemption) == 2


@pytest.mark.asyncio
async def test_inactive_discount_is_not_found() -> None:
    await create_discount(access_key="INT-INACTIVE", active=False)

    with pytest.raises(DiscountNotFoundError):
        await _admit(access_key="INT-INACTIVE", idempotency_key="int-inactive")

    assert await _count(Redemption) == 0
    assert await _count(OutboxEntry) == 0


@pytest.mark.asyncio
async def test_parallel_same_idempotency_key_creates_single_redemption() -> None:
    await create_discount(access_key="INT-PARALLEL", per_device_cooldown_minutes=0)
    barrier = asyncio.Event()

    async def _attempt():
        await barrier.wait()
        return await _admit(
            access_key="INT-PARALLEL",
            idempotency_key="int-parallel",
            email="p@example.com",
        )

    task_1 = asyncio.create_task(_attempt())
    task_2 = asyncio.create_task(_attempt())
    barrier.set()
    results = await asyncio.gather(task_1, task_2)

    assert results[0].redemption_id == results[1].redemption_id
    assert sorted(result.idempotent_replay for result in results) == [False, True]
    assert await _count(Redemption) == 1
    assert await _count(OutboxEntry) == 1


@pytest.mark.asyncio
async def test_every_admission_has_exactly_one_outbox_entry() -> None:
    await create_discount(access_key="INT-COMPLETE", per_email_once=False, per_device_cooldown_minutes=0)

    redemption_ids = set()
    for index in range(5):
        result = await _admit(
            access_key="INT-COMPLETE",
            idempotency_key=f"int-complete-{index}",
            email="same@example.com",
            device_id="dev-same",
        )
        redemption_ids.add(str(result.redemption_id))
    await _admit(access_key="INT-COMPLETE", idempotency_key="int-complete-0")

    async with SessionLocal() as session:
        entries = list((await session.execute(select(OutboxEntry))).scalars())

    assert len(entries) == 5
    assert {entry.payload["redemption_id"] for entry in entries} == redemption_ids


@pytest.mark.asyncio
async def test_long_idempotency_key_and_device_id_are_stored_in_full() -> None:
    await create_discount(access_key="INT-LONG-KEYS")
    idempotency_key = "k" * 300
    device_id = "d" * 300

    first = await _admit(access_key="INT-LONG-KEYS", idempotency_key=idempotency_key, device_id=device_id)
    second = await _admit(access_key="INT-LONG-KEYS", idempotency_key=idempotency_key, device_id=device_id)

    async with SessionLocal() as session:
        redemption = await session.get(Redemption, first.redemption_id)

    assert redemption.idempotency_key == idempotency_key
    assert redemption.device_id == device_id
    assert second.idempotent_replay is True
    assert second.redemption_id == first.redemption_id
