"""SQLAlchemy models - import all for Alembic auto-detection."""

from chatbilling.database import Base
from chatbilling.billing.models import SubscriptionBundle, UserUsage
from chatbilling.models.chat import ChatMessage

__all__ = [
    "Base",
    "UserUsage", "SubscriptionBundle",
    "ChatMessage",
]
