"""Subscription, renewal and dashboard schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from chatbilling.billing.dashboard import DashboardStats
from chatbilling.billing.pricing import BillingCycle, BundleTier
from chatbilling.billing.renewal import SweepResult


class SubscriptionCreate(BaseModel):
    tier: BundleTier
    billing_cycle: BillingCycle
    auto_renew: bool = True


class SubscriptionOut(BaseModel):
    id: uuid.UUID
    user_id: str
    tier: BundleTier
    billing_cycle: BillingCycle
    max_messages: int
    messages_used: int
    price: Decimal
    start_date: datetime
    end_date: datetime
    renewal_date: datetime | None
    auto_renew: bool
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RenewalSummary(BaseModel):
    renewed: int
    failed: int
    total: int

    @classmethod
    def from_result(cls, result: SweepResult) -> "RenewalSummary":
        return cls(renewed=result.renewed, failed=result.failed, total=result.total)


class DashboardStatsOut(BaseModel):
    total_messages: int
    total_subscriptions: int
    remaining_quota: int | None = None  # None means unlimited

    @classmethod
    def from_stats(cls, stats: DashboardStats) -> "DashboardStatsOut":
        return cls(
            total_messages=stats.total_messages,
            total_subscriptions=stats.total_subscriptions,
            remaining_quota=None if stats.is_unlimited else stats.remaining_quota,
        )
