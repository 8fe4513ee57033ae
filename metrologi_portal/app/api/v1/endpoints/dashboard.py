"""
Dashboard endpoint for API v1.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from metrologi_portal.app.core.security import get_current_admin
from metrologi_portal.app.schemas.dashboard import DashboardOverview
from metrologi_portal.app.services.dashboard_service import DashboardService
from metrologi_portal.app.services.request_store import StoreUnavailableError, get_request_store

router = APIRouter()


@router.get("/overview", response_model=DashboardOverview)
async def overview(
    store=Depends(get_request_store),
    current_admin: dict = Depends(get_current_admin),
) -> DashboardOverview:
    """Headline counts and the newest registered businesses."""
    try:
        return await DashboardService.overview(store)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
