"""Chat service - quota-gated question answering."""

from collections.abc import Awaitable, Callable
from datetime import datetime

import structlog

from chatbilling.billing.periods import utcnow
from chatbilling.billing.recording import UsageRecorder
from chatbilling.billing.resolver import EntitlementResolver
from chatbilling.billing.stores import MessageStore
from chatbilling.chat.answers import generate_answer
from chatbilling.models.chat import ChatMessage

logger = structlog.get_logger()

AnswerGenerator = Callable[[str], Awaitable[tuple[str, int]]]


class ChatService:
    def __init__(
        self,
        resolver: EntitlementResolver,
        recorder: UsageRecorder,
        messages: MessageStore,
        *,
        answer_generator: AnswerGenerator = generate_answer,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.resolver = resolver
        self.recorder = recorder
        self.messages = messages
        self.answer_generator = answer_generator
        self.clock = clock

    async def send_message(self, user_id: str, question: str) -> ChatMessage:
        """
        Answer one question, charging one unit of quota.

        Raises QuotaExceededError / SubscriptionRequiredError before any work
        is done when the user has nothing left to spend.
        """
        target = await self.resolver.require(user_id)

        answer, tokens = await self.answer_generator(question)

        # Recording re-resolves; it may pick a different account than the check did
        charged = await self.recorder.record(user_id)
        message = await self.messages.add(user_id, question, answer, tokens, self.clock())

        logger.info(
            "chat_message_answered",
            user_id=user_id,
            message_id=str(message.id),
            tokens=tokens,
            checked=target.kind,
            charged=charged.kind,
        )
        return message

    async def get_history(self, user_id: str) -> list[ChatMessage]:
        return await self.messages.list_for_user(user_id)
