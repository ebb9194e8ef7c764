"""Subscription endpoints - purchase, listing, cancellation, renewals."""

import uuid

from fastapi import APIRouter, Depends

from chatbilling.billing.renewal import RenewalSweeper
from chatbilling.billing.subscriptions import SubscriptionService
from chatbilling.dependencies import get_current_user_id, get_renewal_sweeper, get_subscription_service
from chatbilling.schemas.billing import RenewalSummary, SubscriptionCreate, SubscriptionOut

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.post("/create", response_model=dict, status_code=201)
async def create_subscription(
    body: SubscriptionCreate,
    user_id: str = Depends(get_current_user_id),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    bundle = await subscriptions.create_subscription(
        user_id, body.tier, body.billing_cycle, auto_renew=body.auto_renew,
    )
    return {
        "message": "Subscription created successfully",
        "data": SubscriptionOut.model_validate(bundle),
    }


@router.get("", response_model=dict)
async def list_subscriptions(
    user_id: str = Depends(get_current_user_id),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    """All of the user's bundles, newest first, including expired ones."""
    bundles = await subscriptions.list_subscriptions(user_id)
    return {
        "message": "Subscriptions retrieved successfully",
        "data": [SubscriptionOut.model_validate(b) for b in bundles],
    }


@router.get("/active", response_model=dict)
async def list_active_subscriptions(
    user_id: str = Depends(get_current_user_id),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    bundles = await subscriptions.list_active_subscriptions(user_id)
    return {
        "message": "Active subscriptions retrieved successfully",
        "data": [SubscriptionOut.model_validate(b) for b in bundles],
    }


@router.post("/{subscription_id}/cancel", response_model=dict)
async def cancel_subscription(
    subscription_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    """Turn off auto-renewal; the bundle stays usable until it expires."""
    bundle = await subscriptions.cancel_subscription(user_id, subscription_id)
    return {
        "message": "Subscription cancelled successfully",
        "data": SubscriptionOut.model_validate(bundle),
    }


@router.post("/renewals/process", response_model=dict)
async def process_renewals(
    _user_id: str = Depends(get_current_user_id),
    sweeper: RenewalSweeper = Depends(get_renewal_sweeper),
):
    """Run the auto-renewal sweep now (also scheduled via Celery beat)."""
    # TODO: restrict to operators once the auth collaborator exposes roles
    result = await sweeper.sweep()
    return {
        "message": "Auto-renewals processed successfully",
        "data": RenewalSummary.from_result(result),
    }
