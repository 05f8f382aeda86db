from __future__ import annotations

from fastapi import APIRouter, Request

from discounts_service.db.models.outbox_entries import OutboxEntry
from discounts_service.db.repo.outbox_repo import OutboxRepo
from discounts_service.db.session import SessionLocal
from discounts_service.outbox.dispatcher import OutboxDispatcher, resolve_drain_limit

from .schemas import (
    ConsumeOutboxRequest,
    ConsumeOutboxResponse,
    OutboxEntryResponse,
    OutboxPendingResponse,
)

router = APIRouter(tags=["outbox"])
OUTBOX_PENDING_PAGE_SIZE = 50


def _entry_as_response(entry: OutboxEntry) -> OutboxEntryResponse:
    return OutboxEntryResponse(
        id=entry.id,
        type=entry.event_type,
        payload=entry.payload,
        status=entry.status,
        attempts=entry.attempts,
        last_error=entry.last_error,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _get_dispatcher(request: Request) -> OutboxDispatcher:
    return request.app.state.outbox_dispatcher


@router.get("/outbox/pending", response_model=OutboxPendingResponse)
async def list_pending_outbox() -> OutboxPendingResponse:
    async with SessionLocal.begin() as session:
        entries = await OutboxRepo.list_pending(session, limit=OUTBOX_PENDING_PAGE_SIZE)
    return OutboxPendingResponse(items=[_entry_as_response(entry) for entry in entries])


@router.post("/internal/consume-outbox", response_model=ConsumeOutboxResponse)
async def consume_outbox(
    request: Request,
    payload: ConsumeOutboxRequest | None = None,
) -> ConsumeOutboxResponse:
    limit = resolve_drain_limit(payload.limit if payload is not None else None)
    processed = await _get_dispatcher(request).drain_batch(limit)
    return ConsumeOutboxResponse(processed_count=len(processed), processed=processed)
