"""Free-tier ledger lifecycle - lazy creation and the monthly reset rule."""

from collections.abc import Callable
from datetime import datetime

import structlog

from chatbilling.billing.models import UserUsage
from chatbilling.billing.periods import as_utc, utcnow
from chatbilling.billing.stores import UsageLedgerStore
from chatbilling.config import get_settings

logger = structlog.get_logger()


def needs_monthly_reset(last_reset_date: datetime, now: datetime) -> bool:
    """
    The free allowance resets only on the 1st of a month, and only when the
    last reset fell in an earlier (year, month). A user who is inactive on
    the 1st keeps the old counter until a request lands on a later 1st.
    """
    last = as_utc(last_reset_date)
    now = as_utc(now)
    return now.day == 1 and (last.year, last.month) < (now.year, now.month)


class UsageLedgerService:
    def __init__(
        self,
        store: UsageLedgerStore,
        *,
        free_cap: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.free_cap = free_cap if free_cap is not None else get_settings().FREE_MESSAGES_PER_MONTH
        self.clock = clock

    async def ensure_current(self, user_id: str) -> UserUsage:
        """Fetch the user's ledger, creating or rolling it over as needed."""
        now = self.clock()
        ledger = await self.store.get(user_id)
        if ledger is None:
            ledger = await self.store.create(user_id, now)
            logger.info("usage_ledger_created", user_id=user_id)
            return ledger

        if needs_monthly_reset(ledger.last_reset_date, now):
            previous = ledger.free_messages_used
            ledger = await self.store.reset(user_id, now)
            logger.info("free_quota_reset", user_id=user_id, previous_used=previous)
        return ledger

    def has_free_room(self, ledger: UserUsage | None) -> bool:
        # A missing ledger means nothing was used yet
        used = ledger.free_messages_used if ledger is not None else 0
        return used < self.free_cap

    def free_remaining(self, ledger: UserUsage | None) -> int:
        used = ledger.free_messages_used if ledger is not None else 0
        return max(0, self.free_cap - used)
