from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request, Response

from discounts_service.core.config import get_settings
from discounts_service.db.models.discounts import Discount
from discounts_service.db.session import SessionLocal
from discounts_service.discounts.admission import AdmissionService
from discounts_service.discounts.catalog import DiscountCatalog
from discounts_service.discounts.errors import (
    AlreadyRedeemedError,
    CooldownActiveError,
    DiscountNotFoundError,
    InvalidRequestError,
)
from discounts_service.services.client_ip import extract_client_ip

from .schemas import DiscountResponse, DiscountRulesResponse, MarkUsedRequest, MarkUsedResponse

router = APIRouter(tags=["discounts"])
logger = structlog.get_logger(__name__)


def _discount_as_response(discount: Discount) -> DiscountResponse:
    return DiscountResponse(
        id=discount.id,
        access_key=discount.access_key,
        business_id=discount.business_id,
        title=discount.title,
        description=discount.description,
        rules=DiscountRulesResponse(
            per_device_cooldown_minutes=discount.per_device_cooldown_minutes,
            per_email_once=discount.per_email_once,
        ),
        active=discount.active,
        created_at=discount.created_at,
        updated_at=discount.updated_at,
    )


@router.get("/discounts/{access_key}", response_model=DiscountResponse)
async def get_discount(access_key: str) -> DiscountResponse:
    try:
        async with SessionLocal.begin() as session:
            discount = await DiscountCatalog.resolve(session, access_key=access_key)
    except DiscountNotFoundError as exc:
        raise HTTPException(
            status_code=404,
            detail={"code": "E_DISCOUNT_NOT_FOUND", "message": "Not found"},
        ) from exc

    return _discount_as_response(discount)


@router.post("/discounts/mark-used", response_model=MarkUsedResponse, status_code=201)
async def mark_discount_used(
    payload: MarkUsedRequest,
    request: Request,
    response: Response,
) -> MarkUsedResponse:
    client_ip = extract_client_ip(request, trusted_proxies=get_settings().trusted_proxies)
    try:
        async with SessionLocal.begin() as session:
            result = await AdmissionService.admit(
                session,
                access_key=payload.access_key,
                idempotency_key=payload.idempotency_key,
                email=payload.email,
                device_id=payload.device_id,
                client_ip=client_ip,
            )
    except InvalidRequestError as exc:
        raise HTTPException(
            status_code=400,
            detail={
                "code": "E_INVALID_REQUEST",
                "message": "accessKey and idempotencyKey required",
            },
        ) from exc
    except DiscountNotFoundError as exc:
        raise HTTPException(
            status_code=404,
            detail={"code": "E_DISCOUNT_NOT_FOUND", "message": "Discount not found"},
        ) from exc
    except AlreadyRedeemedError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "E_ALREADY_REDEEMED", "message": "Already redeemed with this email"},
        ) from exc
    except CooldownActiveError as exc:
        raise HTTPException(
            status_code=429,
            detail={"code": "E_COOLDOWN_ACTIVE", "message": "Device cooldown active"},
        ) from exc

    if result.idempotent_replay:
        response.status_code = 200
    return MarkUsedResponse(redemption_id=result.redemption_id)
