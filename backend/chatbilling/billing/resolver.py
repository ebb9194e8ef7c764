"""Entitlement resolution - may this user send one more message, and who pays?

Order of precedence:
    1. Monthly rollover of the free ledger (idempotent)
    2. Free allowance, if any is left
    3. The newest active, unexpired bundle with room (unlimited tiers always
       have room)
    4. Deny: SUBSCRIPTION_REQUIRED if the user never bought a bundle,
       QUOTA_EXCEEDED otherwise
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

import structlog

from chatbilling.billing.ledger import UsageLedgerService
from chatbilling.billing.models import SubscriptionBundle
from chatbilling.billing.periods import utcnow
from chatbilling.billing.pricing import BundleTier
from chatbilling.billing.stores import SubscriptionStore
from chatbilling.errors import QuotaExceededError, SubscriptionRequiredError

logger = structlog.get_logger()


@dataclass(frozen=True)
class FreeLedgerTarget:
    user_id: str
    kind: str = "free"


@dataclass(frozen=True)
class BundleTarget:
    bundle_id: uuid.UUID
    tier: BundleTier
    kind: str = "bundle"


UsageTarget = FreeLedgerTarget | BundleTarget


class DenialReason(StrEnum):
    QUOTA_EXCEEDED = "quota_exceeded"
    SUBSCRIPTION_REQUIRED = "subscription_required"


@dataclass(frozen=True)
class UsageDecision:
    allowed: bool
    target: UsageTarget | None = None
    reason: DenialReason | None = None

    @classmethod
    def allow(cls, target: UsageTarget) -> "UsageDecision":
        return cls(allowed=True, target=target)

    @classmethod
    def deny(cls, reason: DenialReason) -> "UsageDecision":
        return cls(allowed=False, reason=reason)


def select_bundle(bundles: list[SubscriptionBundle]) -> SubscriptionBundle | None:
    """First bundle with room from a newest-first list of usable bundles."""
    for bundle in bundles:
        if bundle.has_room:
            return bundle
    return None


class EntitlementResolver:
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

    async def check(self, user_id: str) -> UsageDecision:
        ledger = await self.ledgers.ensure_current(user_id)
        if self.ledgers.has_free_room(ledger):
            return UsageDecision.allow(FreeLedgerTarget(user_id=user_id))

        bundles = await self.subscriptions.list_active_for_user(user_id, self.clock())
        bundle = select_bundle(bundles)
        if bundle is not None:
            return UsageDecision.allow(BundleTarget(bundle_id=bundle.id, tier=BundleTier(bundle.tier)))

        if await self.subscriptions.count_for_user(user_id) == 0:
            reason = DenialReason.SUBSCRIPTION_REQUIRED
        else:
            reason = DenialReason.QUOTA_EXCEEDED
        logger.info("usage_denied", user_id=user_id, reason=str(reason))
        return UsageDecision.deny(reason)

    async def require(self, user_id: str) -> UsageTarget:
        """Like ``check`` but raises the typed denial instead of returning it."""
        decision = await self.check(user_id)
        if decision.allowed:
            return decision.target
        if decision.reason is DenialReason.SUBSCRIPTION_REQUIRED:
            raise SubscriptionRequiredError(
                "Free quota exhausted. Please subscribe to continue using the service."
            )
        raise QuotaExceededError("Quota exceeded. Please subscribe to continue using the service.")
