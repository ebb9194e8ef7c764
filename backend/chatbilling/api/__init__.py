"""API route registration."""

from fastapi import APIRouter

from chatbilling.api.chat import router as chat_router
from chatbilling.api.dashboard import router as dashboard_router
from chatbilling.api.subscriptions import router as subscriptions_router
from chatbilling.config import get_settings

api_router = APIRouter(prefix=get_settings().API_V1_PREFIX)
api_router.include_router(chat_router)
api_router.include_router(subscriptions_router)
api_router.include_router(dashboard_router)
