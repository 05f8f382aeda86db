from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DiscountRulesResponse(CamelModel):
    per_device_cooldown_minutes: int | None = None
    per_email_once: bool


class DiscountResponse(CamelModel):
    id: UUID
    access_key: str
    business_id: UUID
    title: str | None = None
    description: str | None = None
    rules: DiscountRulesResponse
    active: bool
    created_at: datetime
    updated_at: datetime


class MarkUsedRequest(CamelModel):
    access_key: str | None = None
    idempotency_key: str | None = None
    email: str | None = None
    device_id: str | None = None


class MarkUsedResponse(CamelModel):
    status: str = "ok"
    redemption_id: UUID


class OutboxEntryResponse(CamelModel):
    id: int
    type: str
    payload: dict[str, Any]
    status: str
    attempts: int
    last_error: str | None = None
    created_at: datetime
    updated_at: datetime


class OutboxPendingResponse(CamelModel):
    items: list[OutboxEntryResponse]


class ConsumeOutboxRequest(CamelModel):
    limit: int | None = None


class ConsumeOutboxResponse(CamelModel):
    processed_count: int = Field(ge=0)
    processed: list[int]
