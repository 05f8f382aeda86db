from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from discounts_service.db.models.base import Base


class Redemption(Base):
    __tablename__ = "redemptions"
    __table_args__ = (
        Index("idx_redemptions_discount", "discount_id"),
        Index("idx_redemptions_access_key", "access_key"),
        Index("idx_redemptions_business", "business_id"),
        Index("idx_redemptions_discount_email", "discount_id", "email"),
        Index("idx_redemptions_discount_device_created", "discount_id", "device_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    discount_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("discounts.id"),
        nullable=False,
    )
    access_key: Mapped[str] = mapped_column(Text, nullable=False)
    business_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    idempotency_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
