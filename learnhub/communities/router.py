"""Community API endpoints.

Provides routes for:
- Community CRUD and the public directory
- Join / leave
- Moderator-driven membership and role edits
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from learnhub.auth.dependencies import CreatorUser, CurrentUser, OptionalUser
from learnhub.auth.permissions import is_admin
from learnhub.auth.schemas import UserResponse
from learnhub.communities.dependencies import (
    CommunityServiceDep,
    can_manage,
    ensure_moderator,
    ensure_participant,
    handle_community_error,
)
from learnhub.communities.models import Community
from learnhub.communities.schemas import (
    AddMemberRequest,
    CommunityListResponse,
    CommunityResponse,
    CreateCommunityRequest,
    MemberListResponse,
    MemberResponse,
    UpdateCommunityRequest,
    UpdateMemberRoleRequest,
)
from learnhub.communities.service import (
    CommunityError,
    CommunityNotFoundError,
    CommunityService,
)
from learnhub.core.exceptions import AggregateNotFoundError


router = APIRouter(prefix="/v1/communities", tags=["communities"])


async def _load_community(
    community_service: CommunityService, community_id: UUID
) -> Community:
    community = await community_service.get_community(community_id)
    if community is None:
        raise handle_community_error(CommunityNotFoundError(community_id))
    return community


def _can_view(user: UserResponse | None, community: Community) -> bool:
    """Private communities are only visible to their members and admins."""
    if not community.is_private:
        return True
    if user is None:
        return False
    return community.is_member(user.id) or is_admin(user.role)


# ==============================================================================
# Community CRUD
# ==============================================================================


@router.post(
    "",
    response_model=CommunityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create community",
)
async def create_community(
    data: CreateCommunityRequest,
    community_service: CommunityServiceDep,
    user: CreatorUser,
) -> CommunityResponse:
    """Create a community (CREATOR or ADMIN only). The caller joins as creator."""
    community = await community_service.create_community(data, user.id)
    return CommunityResponse.from_entity(community, viewer_id=user.id)


@router.get("", response_model=CommunityListResponse, summary="Community directory")
async def list_communities(
    community_service: CommunityServiceDep,
    user: OptionalUser,
    category: str | None = None,
    q: str | None = Query(None, max_length=100, description="Name, description or tag contains"),
    limit: int = Query(20, ge=1, le=100),
) -> CommunityListResponse:
    """List active public communities, newest first."""
    communities, has_more = await community_service.list_communities(
        limit=limit, category=category, q=q
    )
    viewer_id = user.id if user else None
    items = [CommunityResponse.from_entity(c, viewer_id=viewer_id) for c in communities]
    return CommunityListResponse(items=items, total=len(items), has_more=has_more)


@router.get("/mine", response_model=CommunityListResponse, summary="My communities")
async def list_my_communities(
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> CommunityListResponse:
    communities = await community_service.list_user_communities(user.id)
    items = [CommunityResponse.from_entity(c, viewer_id=user.id) for c in communities]
    return CommunityListResponse(items=items, total=len(items))


@router.get("/{community_id}", response_model=CommunityResponse, summary="Get community")
async def get_community(
    community_id: UUID,
    community_service: CommunityServiceDep,
    user: OptionalUser,
) -> CommunityResponse:
    community = await _load_community(community_service, community_id)
    if not _can_view(user, community):
        raise handle_community_error(CommunityNotFoundError(community_id))
    return CommunityResponse.from_entity(community, viewer_id=user.id if user else None)


@router.patch(
    "/{community_id}", response_model=CommunityResponse, summary="Update community"
)
async def update_community(
    community_id: UUID,
    data: UpdateCommunityRequest,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> CommunityResponse:
    """Update community settings (creator or platform admin)."""
    community = await _load_community(community_service, community_id)
    if not can_manage(user, community):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the community creator can do this",
        )

    try:
        community = await community_service.update_community(community_id, data)
    except AggregateNotFoundError as e:
        raise handle_community_error(e) from e
    return CommunityResponse.from_entity(community, viewer_id=user.id)


@router.delete(
    "/{community_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete community",
)
async def delete_community(
    community_id: UUID,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> None:
    """Soft delete a community (creator or platform admin)."""
    community = await _load_community(community_service, community_id)
    if not can_manage(user, community):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the community creator can do this",
        )

    try:
        await community_service.delete_community(community_id)
    except AggregateNotFoundError as e:
        raise handle_community_error(e) from e


# ==============================================================================
# Join / Leave
# ==============================================================================


@router.post("/{community_id}/join", response_model=MemberResponse, summary="Join")
async def join_community(
    community_id: UUID,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> MemberResponse:
    """Join a public community. Joining again returns the existing membership."""
    try:
        membership = await community_service.join(community_id, user.id)
    except (CommunityError, AggregateNotFoundError) as e:
        raise handle_community_error(e) from e
    return MemberResponse.from_entity(membership)


@router.post(
    "/{community_id}/leave",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave",
)
async def leave_community(
    community_id: UUID,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> None:
    """Leave a community. The creator cannot leave."""
    try:
        await community_service.leave(community_id, user.id)
    except (CommunityError, AggregateNotFoundError) as e:
        raise handle_community_error(e) from e


# ==============================================================================
# Members
# ==============================================================================


@router.get(
    "/{community_id}/members",
    response_model=MemberListResponse,
    summary="List members",
)
async def list_members(
    community_id: UUID,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> MemberListResponse:
    """Members are visible to other members and platform admins."""
    community = await _load_community(community_service, community_id)
    ensure_participant(user, community)

    members = sorted(community.members.values(), key=lambda m: m.joined_at)
    items = [MemberResponse.from_entity(m) for m in members]
    return MemberListResponse(items=items, total=len(items))


@router.post(
    "/{community_id}/members",
    response_model=MemberResponse,
    summary="Add member",
)
async def add_member(
    community_id: UUID,
    data: AddMemberRequest,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> MemberResponse:
    """Add a member (moderators). An existing membership is returned unchanged."""
    community = await _load_community(community_service, community_id)
    ensure_moderator(user, community)

    try:
        membership = await community_service.add_member(
            community_id, data.user_id, data.role.value
        )
    except (CommunityError, AggregateNotFoundError) as e:
        raise handle_community_error(e) from e
    return MemberResponse.from_entity(membership)


@router.delete(
    "/{community_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove member",
)
async def remove_member(
    community_id: UUID,
    user_id: UUID,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> None:
    """Remove a member (moderators, or the member themselves)."""
    community = await _load_community(community_service, community_id)
    if user.id != user_id:
        ensure_moderator(user, community)

    try:
        await community_service.remove_member(community_id, user_id)
    except (CommunityError, AggregateNotFoundError) as e:
        raise handle_community_error(e) from e


@router.patch(
    "/{community_id}/members/{user_id}",
    response_model=MemberResponse,
    summary="Change member role",
)
async def update_member_role(
    community_id: UUID,
    user_id: UUID,
    data: UpdateMemberRoleRequest,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> MemberResponse:
    """Promote a member to admin or demote an admin (moderators)."""
    community = await _load_community(community_service, community_id)
    ensure_moderator(user, community)

    try:
        membership = await community_service.set_member_role(
            community_id, user_id, data.role.value
        )
    except (CommunityError, AggregateNotFoundError) as e:
        raise handle_community_error(e) from e
    return MemberResponse.from_entity(membership)
