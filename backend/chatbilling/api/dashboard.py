"""Dashboard endpoints."""

from fastapi import APIRouter, Depends

from chatbilling.billing.dashboard import DashboardService
from chatbilling.dependencies import get_current_user_id, get_dashboard_service
from chatbilling.schemas.billing import DashboardStatsOut

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=dict)
async def dashboard_stats(
    user_id: str = Depends(get_current_user_id),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    """Message and subscription totals plus remaining quota (null = unlimited)."""
    stats = await dashboard.get_stats(user_id)
    return {
        "message": "Dashboard stats retrieved successfully",
        "data": DashboardStatsOut.from_stats(stats),
    }
