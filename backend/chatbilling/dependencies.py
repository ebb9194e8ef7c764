"""FastAPI dependency injection.

Stores are built per request from the DB session; services are composed
from stores. Tests swap the store providers for in-memory fakes through
``app.dependency_overrides``.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from chatbilling.billing.dashboard import DashboardService
from chatbilling.billing.ledger import UsageLedgerService
from chatbilling.billing.recording import UsageRecorder
from chatbilling.billing.renewal import PaymentOutcomeProvider, RenewalSweeper, SimulatedPaymentProvider
from chatbilling.billing.repositories import SqlMessageStore, SqlSubscriptionStore, SqlUsageLedgerStore
from chatbilling.billing.resolver import EntitlementResolver
from chatbilling.billing.stores import MessageStore, SubscriptionStore, UsageLedgerStore
from chatbilling.billing.subscriptions import SubscriptionService
from chatbilling.chat.answers import generate_answer
from chatbilling.chat.service import ChatService
from chatbilling.config import get_settings
from chatbilling.database import committed_savepoint, get_db
from chatbilling.errors import UnauthorizedError

security = HTTPBearer(auto_error=False)


def decode_user_id(token: str) -> str | None:
    """The auth collaborator's verified ``sub`` claim, or None."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        return None
    return user_id


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if credentials:
        user_id = decode_user_id(credentials.credentials)
        if user_id:
            return user_id
    raise UnauthorizedError()


# ── Stores ─────────────────────────────────────────────────

async def get_ledger_store(db: AsyncSession = Depends(get_db)) -> UsageLedgerStore:
    return SqlUsageLedgerStore(db)


async def get_subscription_store(db: AsyncSession = Depends(get_db)) -> SubscriptionStore:
    return SqlSubscriptionStore(db)


async def get_message_store(db: AsyncSession = Depends(get_db)) -> MessageStore:
    return SqlMessageStore(db)


def get_payment_provider() -> PaymentOutcomeProvider:
    return SimulatedPaymentProvider(get_settings().PAYMENT_SUCCESS_RATE)


# ── Services ───────────────────────────────────────────────

def get_ledger_service(store: UsageLedgerStore = Depends(get_ledger_store)) -> UsageLedgerService:
    return UsageLedgerService(store)


def get_subscription_service(
    store: SubscriptionStore = Depends(get_subscription_store),
) -> SubscriptionService:
    return SubscriptionService(store)


def get_entitlement_resolver(
    ledgers: UsageLedgerService = Depends(get_ledger_service),
    subscriptions: SubscriptionStore = Depends(get_subscription_store),
) -> EntitlementResolver:
    return EntitlementResolver(ledgers, subscriptions)


def get_usage_recorder(
    ledgers: UsageLedgerService = Depends(get_ledger_service),
    subscriptions: SubscriptionStore = Depends(get_subscription_store),
) -> UsageRecorder:
    return UsageRecorder(ledgers, subscriptions)


def get_chat_service(
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
    recorder: UsageRecorder = Depends(get_usage_recorder),
    messages: MessageStore = Depends(get_message_store),
) -> ChatService:
    settings = get_settings()

    async def answer(question: str) -> tuple[str, int]:
        return await generate_answer(question, (settings.ANSWER_DELAY_MIN_MS, settings.ANSWER_DELAY_MAX_MS))

    return ChatService(resolver, recorder, messages, answer_generator=answer)


def get_dashboard_service(
    ledgers: UsageLedgerService = Depends(get_ledger_service),
    subscriptions: SubscriptionStore = Depends(get_subscription_store),
    messages: MessageStore = Depends(get_message_store),
) -> DashboardService:
    return DashboardService(ledgers, subscriptions, messages)


def get_renewal_sweeper(
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    payments: PaymentOutcomeProvider = Depends(get_payment_provider),
    db: AsyncSession = Depends(get_db),
) -> RenewalSweeper:
    # Each bundle is committed before the next one is charged
    return RenewalSweeper(subscriptions, payments, transaction=committed_savepoint(db))
