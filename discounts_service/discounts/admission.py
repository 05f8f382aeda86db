from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from discounts_service.db.models.discounts import Discount
from discounts_service.db.models.redemptions import Redemption
from discounts_service.db.repo.outbox_repo import OutboxRepo
from discounts_service.db.repo.redemptions_repo import RedemptionsRepo
from discounts_service.discounts.catalog import DiscountCatalog
from discounts_service.discounts.constants import DISCOUNT_CLAIMED_EVENT
from discounts_service.discounts.errors import (
    AlreadyRedeemedError,
    CooldownActiveError,
    InvalidRequestError,
)
from discounts_service.discounts.types import AdmissionResult

logger = structlog.get_logger(__name__)


def _build_claimed_payload(*, redemption: Redemption) -> dict[str, object]:
    return {
        "redemption_id": str(redemption.id),
        "discount_id": str(redemption.discount_id),
        "business_id": str(redemption.business_id),
        "email": redemption.email,
        "device_id": redemption.device_id,
        "at": redemption.created_at.isoformat(),
    }


class AdmissionService:
    @staticmethod
    async def _enforce_email_once(
        session: AsyncSession,
        *,
        discount: Discount,
        email: str | None,
    ) -> None:
        if email is None or not discount.per_email_once:
            return

        prior = await RedemptionsRepo.get_by_discount_and_email(
            session,
            discount_id=discount.id,
            email=email,
        )
        if prior is not None:
            logger.info(
                "discount_redemption_rejected",
                reason="already_redeemed",
                discount_id=str(discount.id),
                prior_redemption_id=str(prior.id),
            )
            raise AlreadyRedeemedError

    @staticmethod
    async def _enforce_device_cooldown(
        session: AsyncSession,
        *,
        discount: Discount,
        device_id: str | None,
        now_utc: datetime,
    ) -> None:
        cooldown_minutes = discount.per_device_cooldown_minutes or 0
        if device_id is None or cooldown_minutes <= 0:
            return

        recent = await RedemptionsRepo.get_recent_by_discount_and_device(
            session,
            discount_id=discount.id,
            device_id=device_id,
            since_utc=now_utc - timedelta(minutes=cooldown_minutes),
        )
        if recent is not None:
            logger.info(
                "discount_redemption_rejected",
                reason="cooldown_active",
                discount_id=str(discount.id),
                device_id=device_id,
                cooldown_minutes=cooldown_minutes,
            )
            raise CooldownActiveError

    @staticmethod
    async def admit(
        session: AsyncSession,
        *,
        access_key: str | None,
        idempotency_key: str | None,
        email: str | None = None,
        device_id: str | None = None,
        client_ip: str | None = None,
        now_utc: datetime | None = None,
    ) -> AdmissionResult:
        if not access_key or not idempotency_key:
            raise InvalidRequestError
        now_utc = now_utc or datetime.now(timezone.utc)
        email = email or None
        device_id = device_id or None

        discount = await DiscountCatalog.resolve(session, access_key=access_key)

        existing = await RedemptionsRepo.get_by_idempotency_key(session, idempotency_key)
        if existing is not None:
            logger.info(
                "discount_redemption_replayed",
                redemption_id=str(existing.id),
                discount_id=str(existing.discount_id),
            )
            return AdmissionResult(redemption_id=existing.id, idempotent_replay=True)

        await AdmissionService._enforce_email_once(session, discount=discount, email=email)
        await AdmissionService._enforce_device_cooldown(
            session,
            discount=discount,
            device_id=device_id,
            now_utc=now_utc,
        )

        try:
            redemption = await RedemptionsRepo.create(
                session,
                redemption=Redemption(
                    id=uuid4(),
                    discount_id=discount.id,
                    access_key=access_key,
                    business_id=discount.business_id,
                    email=email,
                    device_id=device_id,
                    ip=client_ip,
                    idempotency_key=idempotency_key,
                    created_at=now_utc,
                ),
            )
        except IntegrityError:
            # A concurrent request with the same idempotency key committed first.
            concurrent = await RedemptionsRepo.get_by_idempotency_key(session, idempotency_key)
            if concurrent is None:
                raise
            logger.info(
                "discount_redemption_replayed",
                redemption_id=str(concurrent.id),
                discount_id=str(concurrent.discount_id),
                race=True,
            )
            return AdmissionResult(redemption_id=concurrent.id, idempotent_replay=True)

        await OutboxRepo.enqueue(
            session,
            event_type=DISCOUNT_CLAIMED_EVENT,
            payload=_build_claimed_payload(redemption=redemption),
            now_utc=now_utc,
        )

        logger.info(
            "discount_redemption_admitted",
            redemption_id=str(redemption.id),
            discount_id=str(discount.id),
            business_id=str(discount.business_id),
        )
        return AdmissionResult(redemption_id=redemption.id, idempotent_replay=False)
