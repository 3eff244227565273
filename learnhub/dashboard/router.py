"""Dashboard API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from learnhub.auth.dependencies import CreatorUser, CurrentUser
from learnhub.dashboard.schemas import CreatorDashboardResponse, StudentDashboardResponse
from learnhub.dashboard.service import DEFAULT_RECENT_DAYS, DashboardService


async def get_dashboard_service(request: Request) -> DashboardService:
    """Get dashboard service from app state."""
    service = getattr(request.app.state, "dashboard_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard service not available",
        )
    return service


DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]


router = APIRouter(prefix="/v1/dashboard", tags=["dashboard"])


@router.get(
    "/student",
    response_model=StudentDashboardResponse,
    summary="Student dashboard",
)
async def get_student_dashboard(
    dashboard_service: DashboardServiceDep,
    user: CurrentUser,
) -> StudentDashboardResponse:
    """Enrolled courses with fresh progress, plus completion counts."""
    return await dashboard_service.get_student_dashboard(user.id)


@router.get(
    "/creator",
    response_model=CreatorDashboardResponse,
    summary="Creator dashboard",
)
async def get_creator_dashboard(
    dashboard_service: DashboardServiceDep,
    user: CreatorUser,
    recent_days: int = Query(DEFAULT_RECENT_DAYS, ge=1, le=365),
) -> CreatorDashboardResponse:
    """Per-course enrollment and progress statistics (CREATOR or ADMIN only)."""
    return await dashboard_service.get_creator_dashboard(user.id, recent_days)
