"""Auto-renewal sweep.

Selects every bundle with ``auto_renew and is_active`` whose end date
(date-truncated, UTC) is today or earlier, then per bundle:
    - payment succeeds: a brand-new bundle is purchased for the same user,
      tier, cycle and auto-renew flag. The old bundle is left as is.
    - payment fails: the old bundle is deactivated.

Bundles are processed one at a time; an error on one bundle is logged and
counted as failed without stopping the sweep.
"""

import contextlib
import random
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

import structlog

from chatbilling.billing.models import SubscriptionBundle
from chatbilling.billing.periods import as_utc, utcnow
from chatbilling.billing.stores import SubscriptionStore
from chatbilling.billing.subscriptions import SubscriptionService

logger = structlog.get_logger()


class PaymentOutcomeProvider(Protocol):
    async def charge(self, bundle: SubscriptionBundle) -> bool:
        """Attempt to collect the renewal price; True on success."""
        ...


class SimulatedPaymentProvider:
    """Bernoulli stand-in for a payment processor. Not reproducible unless seeded."""

    def __init__(self, success_rate: float = 0.8, rng: random.Random | None = None):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self.success_rate = success_rate
        self.rng = rng or random.Random()

    async def charge(self, bundle: SubscriptionBundle) -> bool:
        return self.rng.random() < self.success_rate


@dataclass
class SweepResult:
    renewed: int = 0
    failed: int = 0
    processed: list[SubscriptionBundle] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.processed)


def is_due_for_renewal(bundle: SubscriptionBundle, now: datetime) -> bool:
    return (
        bundle.auto_renew
        and bundle.is_active
        and as_utc(bundle.end_date).date() <= as_utc(now).date()
    )


class RenewalSweeper:
    def __init__(
        self,
        subscriptions: SubscriptionService,
        payments: PaymentOutcomeProvider,
        *,
        transaction: Callable[[], AbstractAsyncContextManager] = contextlib.nullcontext,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.subscriptions = subscriptions
        self.payments = payments
        # Scope wrapped around each bundle (e.g. a commit or a savepoint)
        self.transaction = transaction
        self.clock = clock

    @property
    def store(self) -> SubscriptionStore:
        return self.subscriptions.store

    async def find_due(self) -> list[SubscriptionBundle]:
        now = self.clock()
        candidates = await self.store.list_auto_renewing()
        return [b for b in candidates if is_due_for_renewal(b, now)]

    async def sweep(self) -> SweepResult:
        result = SweepResult()
        due = await self.find_due()
        logger.info("renewal_sweep_start", due=len(due))

        for bundle in due:
            bundle_id = bundle.id
            try:
                async with self.transaction():
                    renewed, outcome = await self._process(bundle)
            except Exception as e:
                logger.error("renewal_error", bundle_id=str(bundle_id), error=str(e), exc_info=True)
                result.failed += 1
                result.processed.append(bundle)
                continue

            result.processed.append(outcome)
            if renewed:
                result.renewed += 1
            else:
                result.failed += 1

        logger.info("renewal_sweep_done", renewed=result.renewed, failed=result.failed, total=result.total)
        return result

    async def _process(self, bundle: SubscriptionBundle) -> tuple[bool, SubscriptionBundle]:
        if await self.payments.charge(bundle):
            # TODO: deactivate the renewed bundle once product confirms; until then it is re-selected next sweep
            new_bundle = await self.subscriptions.create_subscription(
                bundle.user_id,
                bundle.tier,
                bundle.billing_cycle,
                auto_renew=bundle.auto_renew,
            )
            logger.info(
                "renewal_succeeded",
                bundle_id=str(bundle.id),
                new_bundle_id=str(new_bundle.id),
                user_id=bundle.user_id,
            )
            return True, new_bundle

        deactivated = await self.store.deactivate(bundle.id, self.clock())
        logger.warning(
            "renewal_payment_failed",
            bundle_id=str(bundle.id),
            user_id=bundle.user_id,
        )
        return False, deactivated
