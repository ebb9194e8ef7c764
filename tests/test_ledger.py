"""
Unit tests for the free-tier usage ledger.

Tests for:
- chatbilling/billing/ledger.py: needs_monthly_reset, UsageLedgerService
"""

import os
import sys
import unittest
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))
import tests.support  # noqa: E402, F401

from chatbilling.billing.ledger import needs_monthly_reset  # noqa: E402
from tests.support import BillingWorld, at  # noqa: E402


class TestNeedsMonthlyReset(unittest.TestCase):

    def test_first_of_later_month(self):
        self.assertTrue(needs_monthly_reset(at(2025, 2, 15), at(2025, 3, 1)))

    def test_not_first_of_month(self):
        self.assertFalse(needs_monthly_reset(at(2025, 2, 15), at(2025, 3, 2)))

    def test_already_reset_this_month(self):
        self.assertFalse(needs_monthly_reset(at(2025, 3, 1, hour=0), at(2025, 3, 1, hour=18)))

    def test_year_rollover(self):
        self.assertTrue(needs_monthly_reset(at(2025, 12, 20), at(2026, 1, 1)))

    def test_skipped_months_still_reset_on_a_later_first(self):
        self.assertTrue(needs_monthly_reset(at(2025, 1, 5), at(2025, 6, 1)))

    def test_naive_last_reset_compares_as_utc(self):
        self.assertTrue(needs_monthly_reset(datetime(2025, 2, 28, 23, 0), at(2025, 3, 1, hour=1)))


class TestUsageLedgerService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.world = BillingWorld(now=at(2025, 3, 10))
        self.ledgers = self.world.ledgers

    async def test_creates_ledger_lazily(self):
        self.assertIsNone(await self.world.ledger_store.get("alice"))

        ledger = await self.ledgers.ensure_current("alice")

        self.assertEqual(ledger.user_id, "alice")
        self.assertEqual(ledger.free_messages_used, 0)
        self.assertEqual(ledger.last_reset_date, at(2025, 3, 10))

    async def test_no_reset_mid_month(self):
        await self.world.use_free_quota("alice")
        self.world.clock.set(at(2025, 4, 2))

        ledger = await self.ledgers.ensure_current("alice")

        self.assertEqual(ledger.free_messages_used, 3)

    async def test_resets_on_first_of_month(self):
        await self.world.use_free_quota("alice")
        self.world.clock.set(at(2025, 4, 1, hour=9))

        ledger = await self.ledgers.ensure_current("alice")

        self.assertEqual(ledger.free_messages_used, 0)
        self.assertEqual(ledger.last_reset_date, at(2025, 4, 1, hour=9))

    async def test_resets_at_most_once_per_month(self):
        await self.world.use_free_quota("alice")
        self.world.clock.set(at(2025, 4, 1, hour=9))
        await self.ledgers.ensure_current("alice")

        await self.world.recorder.record("alice")
        self.world.clock.set(at(2025, 4, 1, hour=17))
        ledger = await self.ledgers.ensure_current("alice")

        self.assertEqual(ledger.free_messages_used, 1)

    def test_free_room_for_missing_ledger(self):
        self.assertTrue(self.ledgers.has_free_room(None))
        self.assertEqual(self.ledgers.free_remaining(None), 3)

    async def test_free_remaining_never_negative(self):
        ledger = await self.ledgers.ensure_current("alice")
        ledger.free_messages_used = 7

        self.assertFalse(self.ledgers.has_free_room(ledger))
        self.assertEqual(self.ledgers.free_remaining(ledger), 0)

    async def test_cap_comes_from_settings_by_default(self):
        from chatbilling.billing.ledger import UsageLedgerService
        from chatbilling.config import get_settings

        service = UsageLedgerService(self.world.ledger_store)
        self.assertEqual(service.free_cap, get_settings().FREE_MESSAGES_PER_MONTH)


if __name__ == '__main__':
    unittest.main()
