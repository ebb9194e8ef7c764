"""Usage recording - commit one consumed message to exactly one account."""

from collections.abc import Callable
from datetime import datetime

import structlog

from chatbilling.billing.ledger import UsageLedgerService
from chatbilling.billing.periods import utcnow
from chatbilling.billing.pricing import BundleTier
from chatbilling.billing.resolver import BundleTarget, FreeLedgerTarget, UsageTarget
from chatbilling.billing.stores import SubscriptionStore
from chatbilling.errors import SubscriptionRequiredError

logger = structlog.get_logger()


class UsageRecorder:
    """
    Re-resolves the paying account and applies +1 with a conditional
    increment, so state that changed since the entitlement check can never
    produce an over-limit message. Free allowance is tried first, then
    bundles newest first.
    """

    def __init__(
        self,
        ledgers: UsageLedgerService,
        subscriptions: SubscriptionStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledgers = ledgers
        self.subscriptions = subscriptions
        self.clock = clock

    async def record(self, user_id: str) -> UsageTarget:
        ledger = await self.ledgers.ensure_current(user_id)
        now = self.clock()

        if self.ledgers.has_free_room(ledger):
            updated = await self.ledgers.store.increment_if_below(user_id, self.ledgers.free_cap, now)
            if updated is not None:
                logger.info("usage_recorded", user_id=user_id, target="free", used=updated.free_messages_used)
                return FreeLedgerTarget(user_id=user_id)

        for bundle in await self.subscriptions.list_active_for_user(user_id, now):
            if not bundle.has_room:
                continue
            tier = BundleTier(bundle.tier)
            # Unlimited tiers are still counted, for reporting
            updated = await self.subscriptions.increment_usage(
                bundle.id, enforce_cap=not tier.has_unlimited_quota, now=now,
            )
            if updated is not None:
                logger.info(
                    "usage_recorded",
                    user_id=user_id,
                    target="bundle",
                    bundle_id=str(bundle.id),
                    tier=str(tier),
                    used=updated.messages_used,
                )
                return BundleTarget(bundle_id=bundle.id, tier=tier)

        logger.warning("usage_record_rejected", user_id=user_id)
        raise SubscriptionRequiredError("Free quota exhausted. A valid subscription is required.")
