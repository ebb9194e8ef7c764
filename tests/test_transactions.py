"""
Unit tests for the per-bundle commit scope of the renewal sweep.

Tests for:
- chatbilling/database.py: committed_savepoint
- chatbilling/dependencies.py: get_renewal_sweeper
- worker/tasks/renewals.py: _run_sweep
"""

import os
import sys
import unittest
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))
import tests.support  # noqa: E402, F401

from chatbilling import dependencies as deps  # noqa: E402
from chatbilling.database import committed_savepoint  # noqa: E402
from tests.support import AlwaysPay, BillingWorld, at  # noqa: E402
from worker.tasks.renewals import _run_sweep  # noqa: E402


class FakeSession:
    """Records savepoint and commit calls in the order they happen."""

    def __init__(self):
        self.events = []

    @asynccontextmanager
    async def _nested(self):
        self.events.append("savepoint")
        try:
            yield
        except Exception:
            self.events.append("rollback")
            raise
        self.events.append("release")

    def begin_nested(self):
        return self._nested()

    async def commit(self):
        self.events.append("commit")


class FailingFor:
    def __init__(self, bundle_id):
        self.bundle_id = bundle_id

    async def charge(self, bundle) -> bool:
        if bundle.id == self.bundle_id:
            raise RuntimeError("processor unavailable")
        return True


async def _due_bundles(world, users):
    # Bundles bought long ago are due against the real clock
    return [await world.subscriptions.create_subscription(u, "basic", "monthly") for u in users]


class TestCommittedSavepoint(unittest.IsolatedAsyncioTestCase):

    async def test_commits_after_each_unit(self):
        session = FakeSession()
        scope = committed_savepoint(session)

        async with scope():
            pass
        async with scope():
            pass

        self.assertEqual(session.events, ["savepoint", "release", "commit"] * 2)

    async def test_failed_unit_is_not_committed(self):
        session = FakeSession()
        scope = committed_savepoint(session)

        with self.assertRaises(RuntimeError):
            async with scope():
                raise RuntimeError("boom")

        self.assertEqual(session.events, ["savepoint", "rollback"])


class TestHttpSweepCommits(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.world = BillingWorld(now=at(2020, 1, 1))

    async def test_every_bundle_is_committed(self):
        await _due_bundles(self.world, ["alice", "bob", "carol"])
        session = FakeSession()

        sweeper = deps.get_renewal_sweeper(self.world.subscriptions, AlwaysPay(), session)
        result = await sweeper.sweep()

        self.assertEqual((result.renewed, result.failed, result.total), (3, 0, 3))
        self.assertEqual(session.events, ["savepoint", "release", "commit"] * 3)

    async def test_failing_bundle_rolls_back_alone(self):
        broken, _ = await _due_bundles(self.world, ["alice", "bob"])
        session = FakeSession()

        sweeper = deps.get_renewal_sweeper(self.world.subscriptions, FailingFor(broken.id), session)
        result = await sweeper.sweep()

        self.assertEqual((result.renewed, result.failed), (1, 1))
        self.assertEqual(session.events.count("commit"), 1)
        self.assertEqual(session.events.count("rollback"), 1)


class TestWorkerSweep(unittest.IsolatedAsyncioTestCase):

    async def test_worker_commits_each_bundle_and_disposes_engine(self):
        world = BillingWorld(now=at(2020, 1, 1))
        await _due_bundles(world, ["alice", "bob"])
        session = FakeSession()

        @asynccontextmanager
        async def fake_session_factory():
            yield session

        engine = MagicMock()
        engine.dispose = AsyncMock()

        with patch("chatbilling.database.async_session", fake_session_factory), \
                patch("chatbilling.database.engine", engine), \
                patch("chatbilling.billing.repositories.SqlSubscriptionStore", lambda db: world.subscription_store), \
                patch("chatbilling.billing.renewal.SimulatedPaymentProvider", lambda rate: AlwaysPay()):
            summary = await _run_sweep()

        self.assertEqual(summary, {"renewed": 2, "failed": 0, "total": 2})
        self.assertEqual(session.events, ["savepoint", "release", "commit"] * 2)
        engine.dispose.assert_awaited_once()

    async def test_engine_disposed_when_sweep_fails(self):
        @asynccontextmanager
        async def broken_session_factory():
            raise ConnectionError("database unreachable")
            yield

        engine = MagicMock()
        engine.dispose = AsyncMock()

        with patch("chatbilling.database.async_session", broken_session_factory), \
                patch("chatbilling.database.engine", engine):
            with self.assertRaises(ConnectionError):
                await _run_sweep()

        engine.dispose.assert_awaited_once()


if __name__ == '__main__':
    unittest.main()
