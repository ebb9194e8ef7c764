"""Shared fixtures for the billing tests: a settable clock, in-memory wiring, fake payments."""

import os
import sys
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from chatbilling.billing.ledger import UsageLedgerService  # noqa: E402
from chatbilling.billing.recording import UsageRecorder  # noqa: E402
from chatbilling.billing.resolver import EntitlementResolver  # noqa: E402
from chatbilling.billing.stores import (  # noqa: E402
    InMemoryMessageStore,
    InMemorySubscriptionStore,
    InMemoryUsageLedgerStore,
)
from chatbilling.billing.subscriptions import SubscriptionService  # noqa: E402


def at(year, month, day, hour=12, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime):
        self.now = now


class AlwaysPay:
    def __init__(self):
        self.charged = []

    async def charge(self, bundle) -> bool:
        self.charged.append(bundle.id)
        return True


class NeverPay:
    async def charge(self, bundle) -> bool:
        return False


class BillingWorld:
    """In-memory stores plus every billing service, sharing one clock."""

    def __init__(self, now: datetime | None = None, free_cap: int = 3):
        self.clock = FakeClock(now or at(2025, 3, 10))
        self.ledger_store = InMemoryUsageLedgerStore()
        self.subscription_store = InMemorySubscriptionStore()
        self.message_store = InMemoryMessageStore()

        self.ledgers = UsageLedgerService(self.ledger_store, free_cap=free_cap, clock=self.clock)
        self.subscriptions = SubscriptionService(self.subscription_store, clock=self.clock)
        self.resolver = EntitlementResolver(self.ledgers, self.subscription_store, clock=self.clock)
        self.recorder = UsageRecorder(self.ledgers, self.subscription_store, clock=self.clock)

    async def use_free_quota(self, user_id: str):
        for _ in range(self.ledgers.free_cap):
            await self.recorder.record(user_id)
