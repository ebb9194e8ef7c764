"""Billing models - free-tier usage ledgers and subscription bundles."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger, Boolean, DateTime, Enum, Identity,
    Index, Integer, Numeric, String, func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from chatbilling.billing.pricing import BillingCycle, BundleTier
from chatbilling.database import Base


class UserUsage(Base):
    """Per-user free-tier ledger for the current calendar month."""
    __tablename__ = "user_usage"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    free_messages_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reset_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class SubscriptionBundle(Base):
    """A purchased quota grant with its own counter and validity window.

    ``is_active`` and ``auto_renew`` are independent: cancelling clears only
    ``auto_renew`` and access continues until ``end_date``. Once
    ``is_active`` is false the bundle is never reactivated.
    """
    __tablename__ = "subscription_bundles"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Creation order, breaks created_at ties
    sequence: Mapped[int] = mapped_column(BigInteger, Identity(), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    tier: Mapped[BundleTier] = mapped_column(Enum(BundleTier, native_enum=False), nullable=False)
    billing_cycle: Mapped[BillingCycle] = mapped_column(Enum(BillingCycle, native_enum=False), nullable=False)
    max_messages: Mapped[int] = mapped_column(Integer, nullable=False)
    messages_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    renewal_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index("ix_bundles_user_active_end", "user_id", "is_active", "end_date"),
        Index("ix_bundles_renewal_scan", "auto_renew", "is_active", "end_date"),
    )

    @property
    def has_room(self) -> bool:
        """Whether one more message fits; unlimited tiers always have room."""
        return BundleTier(self.tier).has_unlimited_quota or self.messages_used < self.max_messages
