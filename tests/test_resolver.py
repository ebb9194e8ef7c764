"""
Unit tests for entitlement resolution.

Tests for:
- chatbilling/billing/resolver.py: EntitlementResolver.check / require, select_bundle
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))
import tests.support  # noqa: E402, F401

from chatbilling.billing.pricing import BillingCycle, BundleTier  # noqa: E402
from chatbilling.billing.resolver import (  # noqa: E402
    BundleTarget,
    DenialReason,
    FreeLedgerTarget,
    select_bundle,
)
from chatbilling.errors import QuotaExceededError, SubscriptionRequiredError  # noqa: E402
from tests.support import BillingWorld, at  # noqa: E402


class TestEntitlementResolver(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.world = BillingWorld(now=at(2025, 3, 10))
        self.resolver = self.world.resolver

    async def _buy(self, tier=BundleTier.BASIC, cycle=BillingCycle.MONTHLY, user_id="alice"):
        return await self.world.subscriptions.create_subscription(user_id, tier, cycle)

    async def test_new_user_gets_free_allowance(self):
        decision = await self.resolver.check("alice")

        self.assertTrue(decision.allowed)
        self.assertEqual(decision.target, FreeLedgerTarget(user_id="alice"))

    async def test_free_before_paid(self):
        await self._buy(BundleTier.PRO)

        decision = await self.resolver.check("alice")

        self.assertEqual(decision.target.kind, "free")

    async def test_free_exhausted_without_bundle_requires_subscription(self):
        await self.world.use_free_quota("alice")

        decision = await self.resolver.check("alice")

        self.assertFalse(decision.allowed)
        self.assertIs(decision.reason, DenialReason.SUBSCRIPTION_REQUIRED)
        with self.assertRaises(SubscriptionRequiredError):
            await self.resolver.require("alice")

    async def test_exhausted_bundle_is_quota_exceeded(self):
        bundle = await self._buy(BundleTier.BASIC)
        await self.world.use_free_quota("alice")
        bundle.messages_used = 10

        decision = await self.resolver.check("alice")

        self.assertFalse(decision.allowed)
        self.assertIs(decision.reason, DenialReason.QUOTA_EXCEEDED)
        with self.assertRaises(QuotaExceededError):
            await self.resolver.require("alice")

    async def test_expired_bundle_is_quota_exceeded(self):
        await self._buy(BundleTier.BASIC)
        await self.world.use_free_quota("alice")
        self.world.clock.set(at(2025, 4, 10, hour=13))

        decision = await self.resolver.check("alice")

        self.assertIs(decision.reason, DenialReason.QUOTA_EXCEEDED)

    async def test_paid_bundle_after_free(self):
        bundle = await self._buy(BundleTier.BASIC)
        await self.world.use_free_quota("alice")

        target = await self.resolver.require("alice")

        self.assertEqual(target, BundleTarget(bundle_id=bundle.id, tier=BundleTier.BASIC))

    async def test_newest_bundle_wins(self):
        await self._buy(BundleTier.BASIC)
        self.world.clock.advance(days=1)
        newer = await self._buy(BundleTier.PRO)
        await self.world.use_free_quota("alice")

        target = await self.resolver.require("alice")

        self.assertEqual(target.bundle_id, newer.id)

    async def test_creation_order_breaks_timestamp_ties(self):
        await self._buy(BundleTier.PRO)
        second = await self._buy(BundleTier.BASIC)
        await self.world.use_free_quota("alice")

        target = await self.resolver.require("alice")

        self.assertEqual(target.bundle_id, second.id)

    async def test_full_newest_bundle_falls_back_to_older(self):
        older = await self._buy(BundleTier.PRO)
        self.world.clock.advance(minutes=5)
        newer = await self._buy(BundleTier.BASIC)
        newer.messages_used = newer.max_messages
        await self.world.use_free_quota("alice")

        target = await self.resolver.require("alice")

        self.assertEqual(target.bundle_id, older.id)

    async def test_last_unit_of_pro_bundle_then_quota_exceeded(self):
        bundle = await self._buy(BundleTier.PRO)
        await self.world.use_free_quota("alice")
        bundle.messages_used = 99

        await self.resolver.require("alice")
        await self.world.recorder.record("alice")

        self.assertEqual(bundle.messages_used, 100)
        with self.assertRaises(QuotaExceededError):
            await self.resolver.require("alice")

    async def test_enterprise_never_denies_on_its_counter(self):
        bundle = await self._buy(BundleTier.ENTERPRISE)
        await self.world.use_free_quota("alice")
        bundle.messages_used = bundle.max_messages + 5

        decision = await self.resolver.check("alice")

        self.assertTrue(decision.allowed)
        self.assertEqual(decision.target.tier, BundleTier.ENTERPRISE)

    async def test_other_users_bundles_do_not_count(self):
        await self._buy(BundleTier.PRO, user_id="bob")
        await self.world.use_free_quota("alice")

        decision = await self.resolver.check("alice")

        self.assertIs(decision.reason, DenialReason.SUBSCRIPTION_REQUIRED)

    async def test_check_applies_monthly_reset(self):
        await self.world.use_free_quota("alice")
        self.world.clock.set(at(2025, 4, 1))

        decision = await self.resolver.check("alice")

        self.assertEqual(decision.target.kind, "free")


class TestSelectBundle(unittest.IsolatedAsyncioTestCase):

    async def test_empty(self):
        self.assertIsNone(select_bundle([]))

    async def test_skips_full_bundles(self):
        world = BillingWorld()
        full = await world.subscriptions.create_subscription("alice", "basic", "monthly")
        full.messages_used = 10
        spare = await world.subscriptions.create_subscription("alice", "basic", "monthly")

        self.assertIs(select_bundle([full, spare]), spare)


if __name__ == '__main__':
    unittest.main()
