"""Combined search API endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from learnhub.auth.dependencies import CurrentUser
from learnhub.search.schemas import SearchResponse
from learnhub.search.service import SearchService


async def get_search_service(request: Request) -> SearchService:
    """Get search service from app state."""
    service = getattr(request.app.state, "search_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search service not available",
        )
    return service


SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]


router = APIRouter(prefix="/v1/search", tags=["search"])


@router.get("", response_model=SearchResponse, summary="Search everything")
async def search(
    search_service: SearchServiceDep,
    user: CurrentUser,
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=60),
) -> SearchResponse:
    """Courses, public communities and posts from the caller's communities."""
    return await search_service.search(user.id, q.strip(), limit)
