"""Persistence contracts for the billing core, plus in-memory implementations.

The services only talk to these protocols. The SQLAlchemy implementations
live in ``billing.repositories``; the in-memory ones back tests and local
tooling. Every counter mutation is a conditional increment so that a
check-then-record sequence cannot push an account past its cap.
"""

import itertools
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from chatbilling.billing.models import SubscriptionBundle, UserUsage
from chatbilling.billing.pricing import BillingCycle, BundleTier
from chatbilling.models.chat import ChatMessage


class UsageLedgerStore(Protocol):
    async def get(self, user_id: str) -> UserUsage | None: ...

    async def create(self, user_id: str, now: datetime) -> UserUsage: ...

    async def reset(self, user_id: str, now: datetime) -> UserUsage: ...

    async def increment_if_below(self, user_id: str, cap: int, now: datetime) -> UserUsage | None:
        """+1 only while ``free_messages_used < cap``; ``None`` when refused."""
        ...


class SubscriptionStore(Protocol):
    async def create(
        self,
        *,
        user_id: str,
        tier: BundleTier,
        billing_cycle: BillingCycle,
        max_messages: int,
        price: Decimal,
        start_date: datetime,
        end_date: datetime,
        renewal_date: datetime | None,
        auto_renew: bool,
    ) -> SubscriptionBundle: ...

    async def get(self, bundle_id: uuid.UUID) -> SubscriptionBundle | None: ...

    async def list_for_user(self, user_id: str) -> list[SubscriptionBundle]:
        """All bundles, newest first."""
        ...

    async def list_active_for_user(self, user_id: str, now: datetime) -> list[SubscriptionBundle]:
        """Active bundles with ``end_date > now``, newest first."""
        ...

    async def list_auto_renewing(self) -> list[SubscriptionBundle]:
        """Active bundles with auto-renew enabled, any end date."""
        ...

    async def count_for_user(self, user_id: str) -> int: ...

    async def increment_usage(
        self, bundle_id: uuid.UUID, *, enforce_cap: bool, now: datetime,
    ) -> SubscriptionBundle | None:
        """+1 on an active, unexpired bundle; with ``enforce_cap`` only below ``max_messages``."""
        ...

    async def deactivate(self, bundle_id: uuid.UUID, now: datetime) -> SubscriptionBundle: ...

    async def cancel_auto_renew(self, bundle_id: uuid.UUID, now: datetime) -> SubscriptionBundle: ...


class MessageStore(Protocol):
    async def add(self, user_id: str, question: str, answer: str, tokens: int, now: datetime) -> ChatMessage: ...

    async def list_for_user(self, user_id: str) -> list[ChatMessage]: ...

    async def count_for_user(self, user_id: str) -> int: ...


def _newest_first(bundles):
    return sorted(bundles, key=lambda b: (b.created_at, b.sequence), reverse=True)


class InMemoryUsageLedgerStore:
    def __init__(self):
        self._ledgers: dict[str, UserUsage] = {}

    async def get(self, user_id: str) -> UserUsage | None:
        return self._ledgers.get(user_id)

    async def create(self, user_id: str, now: datetime) -> UserUsage:
        ledger = UserUsage(
            id=uuid.uuid4(),
            user_id=user_id,
            free_messages_used=0,
            last_reset_date=now,
            created_at=now,
            updated_at=now,
        )
        self._ledgers[user_id] = ledger
        return ledger

    async def reset(self, user_id: str, now: datetime) -> UserUsage:
        ledger = self._ledgers[user_id]
        ledger.free_messages_used = 0
        ledger.last_reset_date = now
        ledger.updated_at = now
        return ledger

    async def increment_if_below(self, user_id: str, cap: int, now: datetime) -> UserUsage | None:
        ledger = self._ledgers.get(user_id)
        if ledger is None or ledger.free_messages_used >= cap:
            return None
        ledger.free_messages_used += 1
        ledger.updated_at = now
        return ledger


class InMemorySubscriptionStore:
    def __init__(self):
        self._bundles: dict[uuid.UUID, SubscriptionBundle] = {}
        self._sequence = itertools.count(1)

    async def create(
        self,
        *,
        user_id: str,
        tier: BundleTier,
        billing_cycle: BillingCycle,
        max_messages: int,
        price: Decimal,
        start_date: datetime,
        end_date: datetime,
        renewal_date: datetime | None,
        auto_renew: bool,
    ) -> SubscriptionBundle:
        bundle = SubscriptionBundle(
            id=uuid.uuid4(),
            sequence=next(self._sequence),
            user_id=user_id,
            tier=BundleTier(tier),
            billing_cycle=BillingCycle(billing_cycle),
            max_messages=max_messages,
            messages_used=0,
            price=price,
            start_date=start_date,
            end_date=end_date,
            renewal_date=renewal_date,
            auto_renew=auto_renew,
            is_active=True,
            created_at=start_date,
            updated_at=start_date,
        )
        self._bundles[bundle.id] = bundle
        return bundle

    async def get(self, bundle_id: uuid.UUID) -> SubscriptionBundle | None:
        return self._bundles.get(bundle_id)

    async def list_for_user(self, user_id: str) -> list[SubscriptionBundle]:
        return _newest_first(b for b in self._bundles.values() if b.user_id == user_id)

    async def list_active_for_user(self, user_id: str, now: datetime) -> list[SubscriptionBundle]:
        return _newest_first(
            b for b in self._bundles.values()
            if b.user_id == user_id and b.is_active and b.end_date > now
        )

    async def list_auto_renewing(self) -> list[SubscriptionBundle]:
        return _newest_first(b for b in self._bundles.values() if b.auto_renew and b.is_active)

    async def count_for_user(self, user_id: str) -> int:
        return sum(1 for b in self._bundles.values() if b.user_id == user_id)

    async def increment_usage(
        self, bundle_id: uuid.UUID, *, enforce_cap: bool, now: datetime,
    ) -> SubscriptionBundle | None:
        bundle = self._bundles.get(bundle_id)
        if bundle is None or not bundle.is_active or bundle.end_date <= now:
            return None
        if enforce_cap and bundle.messages_used >= bundle.max_messages:
            return None
        bundle.messages_used += 1
        bundle.updated_at = now
        return bundle

    async def deactivate(self, bundle_id: uuid.UUID, now: datetime) -> SubscriptionBundle:
        bundle = self._bundles[bundle_id]
        bundle.is_active = False
        bundle.updated_at = now
        return bundle

    async def cancel_auto_renew(self, bundle_id: uuid.UUID, now: datetime) -> SubscriptionBundle:
        bundle = self._bundles[bundle_id]
        bundle.auto_renew = False
        bundle.renewal_date = None
        bundle.updated_at = now
        return bundle


class InMemoryMessageStore:
    def __init__(self):
        self._messages: list[ChatMessage] = []

    async def add(self, user_id: str, question: str, answer: str, tokens: int, now: datetime) -> ChatMessage:
        message = ChatMessage(
            id=uuid.uuid4(),
            user_id=user_id,
            question=question,
            answer=answer,
            tokens=tokens,
            created_at=now,
        )
        self._messages.append(message)
        return message

    async def list_for_user(self, user_id: str) -> list[ChatMessage]:
        # Stable reverse insertion order for equal timestamps
        mine = [m for m in self._messages if m.user_id == user_id]
        return sorted(reversed(mine), key=lambda m: m.created_at, reverse=True)

    async def count_for_user(self, user_id: str) -> int:
        return sum(1 for m in self._messages if m.user_id == user_id)
