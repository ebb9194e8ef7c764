"""Subscription purchase, listing and cancellation."""

import uuid
from collections.abc import Callable
from datetime import datetime

import structlog

from chatbilling.billing.models import SubscriptionBundle
from chatbilling.billing.periods import billing_period_end, utcnow
from chatbilling.billing.pricing import BillingCycle, BundleTier, get_pricing
from chatbilling.billing.stores import SubscriptionStore
from chatbilling.errors import NotFoundError, ValidationError

logger = structlog.get_logger()


class SubscriptionService:
    def __init__(self, store: SubscriptionStore, *, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def create_subscription(
        self,
        user_id: str,
        tier: BundleTier,
        billing_cycle: BillingCycle,
        auto_renew: bool = True,
    ) -> SubscriptionBundle:
        """Charge list price and open a fresh quota window starting now."""
        pricing = get_pricing(tier, billing_cycle)
        start_date = self.clock()
        end_date = billing_period_end(start_date, billing_cycle)

        bundle = await self.store.create(
            user_id=user_id,
            tier=BundleTier(tier),
            billing_cycle=BillingCycle(billing_cycle),
            max_messages=pricing.max_messages,
            price=pricing.price,
            start_date=start_date,
            end_date=end_date,
            renewal_date=end_date if auto_renew else None,
            auto_renew=auto_renew,
        )
        logger.info(
            "subscription_created",
            user_id=user_id,
            bundle_id=str(bundle.id),
            tier=str(bundle.tier),
            billing_cycle=str(bundle.billing_cycle),
            price=str(bundle.price),
            auto_renew=auto_renew,
        )
        return bundle

    async def list_subscriptions(self, user_id: str) -> list[SubscriptionBundle]:
        return await self.store.list_for_user(user_id)

    async def list_active_subscriptions(self, user_id: str) -> list[SubscriptionBundle]:
        return await self.store.list_active_for_user(user_id, self.clock())

    async def get_subscription(self, bundle_id: uuid.UUID) -> SubscriptionBundle | None:
        return await self.store.get(bundle_id)

    async def cancel_subscription(self, user_id: str, bundle_id: uuid.UUID) -> SubscriptionBundle:
        """
        Stop future auto-renewal. The bundle stays active and usable until
        its end date; only ``auto_renew`` (and the renewal date) change.
        """
        bundle = await self.get_subscription(bundle_id)
        if bundle is None:
            raise NotFoundError("Subscription not found")
        if bundle.user_id != user_id:
            raise ValidationError("Subscription does not belong to user")

        cancelled = await self.store.cancel_auto_renew(bundle_id, self.clock())
        logger.info("subscription_cancelled", user_id=user_id, bundle_id=str(bundle_id))
        return cancelled
