from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from discounts_service.db.models.base import Base

DEFAULT_DEVICE_COOLDOWN_MINUTES = 1440


class Discount(Base):
    __tablename__ = "discounts"
    __table_args__ = (Index("idx_discounts_business", "business_id"),)

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    access_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    business_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    title: Mapped[str | None] = mapped_column(String(256), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    per_device_cooldown_minutes: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        default=DEFAULT_DEVICE_COOLDOWN_MINUTES,
    )
    per_email_once: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
