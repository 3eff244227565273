"""FastAPI dependencies for communities.

Provides dependency injection for:
- Community service
- Moderation checks
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.auth.permissions import is_admin
from learnhub.auth.schemas import UserResponse
from learnhub.communities.models import Community
from learnhub.communities.service import CommunityService
from learnhub.core.exceptions import DomainError


async def get_community_service(request: Request) -> CommunityService:
    """Get community service from app state."""
    service = getattr(request.app.state, "community_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Community service not available",
        )
    return service


CommunityServiceDep = Annotated[CommunityService, Depends(get_community_service)]


# ==============================================================================
# Privilege Checks
# ==============================================================================


def can_moderate(user: UserResponse | None, community: Community) -> bool:
    """Platform admin, the community creator, or a community admin."""
    if user is None:
        return False
    return (
        is_admin(user.role)
        or community.is_creator(user.id)
        or community.is_admin(user.id)
    )


def can_manage(user: UserResponse, community: Community) -> bool:
    """Settings and deletion: the creator or a platform admin."""
    return is_admin(user.role) or community.is_creator(user.id)


def can_participate(user: UserResponse, community: Community) -> bool:
    """Members, plus platform admins who may act without joining."""
    return community.is_member(user.id) or is_admin(user.role)


def ensure_moderator(user: UserResponse, community: Community) -> None:
    if not can_moderate(user, community):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only community moderators can do this",
        )


def ensure_participant(user: UserResponse, community: Community) -> None:
    if not can_participate(user, community):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this community",
        )


def handle_community_error(error: DomainError) -> HTTPException:
    """Convert community errors to HTTP exceptions."""
    status_map = {
        "aggregate_not_found": status.HTTP_404_NOT_FOUND,
        "not_a_member": status.HTTP_404_NOT_FOUND,
        "creator_cannot_leave": status.HTTP_400_BAD_REQUEST,
        "creator_role_locked": status.HTTP_400_BAD_REQUEST,
        "invalid_role": status.HTTP_400_BAD_REQUEST,
        "community_private": status.HTTP_403_FORBIDDEN,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=error.message)
