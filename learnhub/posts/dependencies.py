"""FastAPI dependencies for community posts."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.core.exceptions import DomainError
from learnhub.posts.service import PostService


async def get_post_service(request: Request) -> PostService:
    """Get post service from app state."""
    service = getattr(request.app.state, "post_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Post service not available",
        )
    return service


PostServiceDep = Annotated[PostService, Depends(get_post_service)]


def handle_post_error(error: DomainError) -> HTTPException:
    """Convert post errors to HTTP exceptions."""
    status_map = {
        "aggregate_not_found": status.HTTP_404_NOT_FOUND,
        "comment_not_found": status.HTTP_404_NOT_FOUND,
        "not_a_member": status.HTTP_403_FORBIDDEN,
        "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=error.message)
