"""SQLAlchemy-backed billing stores.

Counter mutations are single ``UPDATE ... WHERE <room left> RETURNING``
statements, so the check and the increment are one atomic step per row.
The caller owns the transaction (see ``database.get_db``).
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chatbilling.billing.models import SubscriptionBundle, UserUsage
from chatbilling.billing.pricing import BillingCycle, BundleTier
from chatbilling.errors import NotFoundError
from chatbilling.models.chat import ChatMessage

_NEWEST_FIRST = (SubscriptionBundle.created_at.desc(), SubscriptionBundle.sequence.desc())


class SqlUsageLedgerStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> UserUsage | None:
        result = await self.db.execute(select(UserUsage).where(UserUsage.user_id == user_id))
        return result.scalar_one_or_none()

    async def create(self, user_id: str, now: datetime) -> UserUsage:
        ledger = UserUsage(user_id=user_id, free_messages_used=0, last_reset_date=now)
        self.db.add(ledger)
        await self.db.flush()
        return ledger

    async def reset(self, user_id: str, now: datetime) -> UserUsage:
        result = await self.db.execute(
            update(UserUsage)
            .where(UserUsage.user_id == user_id)
            .values(free_messages_used=0, last_reset_date=now, updated_at=now)
            .returning(UserUsage)
            .execution_options(populate_existing=True)
        )
        ledger = result.scalar_one_or_none()
        if ledger is None:
            raise NotFoundError("Usage ledger not found")
        return ledger

    async def increment_if_below(self, user_id: str, cap: int, now: datetime) -> UserUsage | None:
        result = await self.db.execute(
            update(UserUsage)
            .where(UserUsage.user_id == user_id, UserUsage.free_messages_used < cap)
            .values(free_messages_used=UserUsage.free_messages_used + 1, updated_at=now)
            .returning(UserUsage)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


class SqlSubscriptionStore:
    def __init__(self, db: AsyncSession):
        self.db = db

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
        )
        self.db.add(bundle)
        await self.db.flush()
        return bundle

    async def get(self, bundle_id: uuid.UUID) -> SubscriptionBundle | None:
        result = await self.db.execute(select(SubscriptionBundle).where(SubscriptionBundle.id == bundle_id))
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[SubscriptionBundle]:
        result = await self.db.execute(
            select(SubscriptionBundle)
            .where(SubscriptionBundle.user_id == user_id)
            .order_by(*_NEWEST_FIRST)
        )
        return list(result.scalars().all())

    async def list_active_for_user(self, user_id: str, now: datetime) -> list[SubscriptionBundle]:
        result = await self.db.execute(
            select(SubscriptionBundle)
            .where(
                SubscriptionBundle.user_id == user_id,
                SubscriptionBundle.is_active == True,  # noqa: E712
                SubscriptionBundle.end_date > now,
            )
            .order_by(*_NEWEST_FIRST)
        )
        return list(result.scalars().all())

    async def list_auto_renewing(self) -> list[SubscriptionBundle]:
        result = await self.db.execute(
            select(SubscriptionBundle)
            .where(
                SubscriptionBundle.auto_renew == True,  # noqa: E712
                SubscriptionBundle.is_active == True,  # noqa: E712
            )
            .order_by(*_NEWEST_FIRST)
        )
        return list(result.scalars().all())

    async def count_for_user(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(SubscriptionBundle).where(SubscriptionBundle.user_id == user_id)
        )
        return result.scalar_one()

    async def increment_usage(
        self, bundle_id: uuid.UUID, *, enforce_cap: bool, now: datetime,
    ) -> SubscriptionBundle | None:
        conditions = [
            SubscriptionBundle.id == bundle_id,
            SubscriptionBundle.is_active == True,  # noqa: E712
            SubscriptionBundle.end_date > now,
        ]
        if enforce_cap:
            conditions.append(SubscriptionBundle.messages_used < SubscriptionBundle.max_messages)

        result = await self.db.execute(
            update(SubscriptionBundle)
            .where(*conditions)
            .values(messages_used=SubscriptionBundle.messages_used + 1, updated_at=now)
            .returning(SubscriptionBundle)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def deactivate(self, bundle_id: uuid.UUID, now: datetime) -> SubscriptionBundle:
        return await self._update(bundle_id, is_active=False, updated_at=now)

    async def cancel_auto_renew(self, bundle_id: uuid.UUID, now: datetime) -> SubscriptionBundle:
        return await self._update(bundle_id, auto_renew=False, renewal_date=None, updated_at=now)

    async def _update(self, bundle_id: uuid.UUID, **values) -> SubscriptionBundle:
        result = await self.db.execute(
            update(SubscriptionBundle)
            .where(SubscriptionBundle.id == bundle_id)
            .values(**values)
            .returning(SubscriptionBundle)
            .execution_options(populate_existing=True)
        )
        bundle = result.scalar_one_or_none()
        if bundle is None:
            raise NotFoundError("Subscription not found")
        return bundle


class SqlMessageStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, user_id: str, question: str, answer: str, tokens: int, now: datetime) -> ChatMessage:
        message = ChatMessage(user_id=user_id, question=question, answer=answer, tokens=tokens, created_at=now)
        self.db.add(message)
        await self.db.flush()
        return message

    async def list_for_user(self, user_id: str) -> list[ChatMessage]:
        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_for_user(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(ChatMessage).where(ChatMessage.user_id == user_id)
        )
        return result.scalar_one()
