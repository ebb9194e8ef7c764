"""Read-only usage dashboard projection."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from chatbilling.billing.ledger import UsageLedgerService
from chatbilling.billing.periods import utcnow
from chatbilling.billing.pricing import BundleTier
from chatbilling.billing.resolver import select_bundle
from chatbilling.billing.stores import MessageStore, SubscriptionStore


class Unlimited(Enum):
    UNLIMITED = "unlimited"


UNLIMITED = Unlimited.UNLIMITED


@dataclass(frozen=True)
class DashboardStats:
    total_messages: int
    total_subscriptions: int
    remaining_quota: int | Unlimited

    @property
    def is_unlimited(self) -> bool:
        return self.remaining_quota is UNLIMITED


class DashboardService:
    """Never mutates: a missing ledger counts as an untouched free allowance."""

    def __init__(
        self,
        ledgers: UsageLedgerService,
        subscriptions: SubscriptionStore,
        messages: MessageStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledgers = ledgers
        self.subscriptions = subscriptions
        self.messages = messages
        self.clock = clock

    async def get_stats(self, user_id: str) -> DashboardStats:
        return DashboardStats(
            total_messages=await self.messages.count_for_user(user_id),
            total_subscriptions=await self.subscriptions.count_for_user(user_id),
            remaining_quota=await self.remaining_quota(user_id),
        )

    async def remaining_quota(self, user_id: str) -> int | Unlimited:
        ledger = await self.ledgers.store.get(user_id)
        free_remaining = self.ledgers.free_remaining(ledger)
        if free_remaining > 0:
            return free_remaining

        bundles = await self.subscriptions.list_active_for_user(user_id, self.clock())
        bundle = select_bundle(bundles)
        if bundle is None:
            return 0
        if BundleTier(bundle.tier).has_unlimited_quota:
            return UNLIMITED
        return bundle.max_messages - bundle.messages_used
