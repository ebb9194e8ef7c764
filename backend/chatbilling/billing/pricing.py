"""Static pricing table: (tier, billing cycle) -> (message quota, price)."""

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

# Sentinel quota for tiers with no practical limit.
UNLIMITED_MESSAGES = 999999


class BundleTier(StrEnum):
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"

    @property
    def has_unlimited_quota(self) -> bool:
        """Unlimited tiers never deny on their own counter."""
        return self in _UNLIMITED_TIERS


_UNLIMITED_TIERS = frozenset({BundleTier.ENTERPRISE})


class BillingCycle(StrEnum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class PricingEntry:
    max_messages: int
    price: Decimal


# Yearly price is ten monthly payments (two months free).
PRICING: dict[BundleTier, dict[BillingCycle, PricingEntry]] = {
    BundleTier.BASIC: {
        BillingCycle.MONTHLY: PricingEntry(max_messages=10, price=Decimal("10.00")),
        BillingCycle.YEARLY: PricingEntry(max_messages=10, price=Decimal("100.00")),
    },
    BundleTier.PRO: {
        BillingCycle.MONTHLY: PricingEntry(max_messages=100, price=Decimal("50.00")),
        BillingCycle.YEARLY: PricingEntry(max_messages=100, price=Decimal("500.00")),
    },
    BundleTier.ENTERPRISE: {
        BillingCycle.MONTHLY: PricingEntry(max_messages=UNLIMITED_MESSAGES, price=Decimal("200.00")),
        BillingCycle.YEARLY: PricingEntry(max_messages=UNLIMITED_MESSAGES, price=Decimal("2000.00")),
    },
}


def get_pricing(tier: BundleTier | str, billing_cycle: BillingCycle | str) -> PricingEntry:
    return PRICING[BundleTier(tier)][BillingCycle(billing_cycle)]
