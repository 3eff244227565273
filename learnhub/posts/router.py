"""Community post API endpoints.

Provides routes for:
- Posting to a community feed and reading it
- Editing, deleting and pinning posts
- Likes
- Comments
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from learnhub.auth.dependencies import CurrentUser
from learnhub.auth.schemas import UserResponse
from learnhub.communities.dependencies import (
    CommunityServiceDep,
    can_moderate,
    ensure_moderator,
    ensure_participant,
)
from learnhub.communities.models import Community
from learnhub.communities.service import CommunityNotFoundError, CommunityService
from learnhub.core.exceptions import DomainError
from learnhub.posts.dependencies import PostServiceDep, handle_post_error
from learnhub.posts.models import Post
from learnhub.posts.schemas import (
    CommentListResponse,
    CommentResponse,
    CreateCommentRequest,
    CreatePostRequest,
    LikeResponse,
    PinPostRequest,
    PostListResponse,
    PostResponse,
    UpdatePostRequest,
)
from learnhub.posts.service import PostNotFoundError, PostService


router = APIRouter(prefix="/v1", tags=["posts"])


async def _load_community(
    community_service: CommunityService, community_id: UUID, user: UserResponse
) -> Community:
    """Load an active community and require the user to take part in it."""
    community = await community_service.get_community(community_id)
    if community is None:
        raise handle_post_error(CommunityNotFoundError(community_id))
    ensure_participant(user, community)
    return community


async def _load_post(
    post_service: PostService,
    community_service: CommunityService,
    post_id: UUID,
    user: UserResponse,
) -> tuple[Post, Community]:
    post = await post_service.get_post(post_id)
    if post is None:
        raise handle_post_error(PostNotFoundError(post_id))
    community = await _load_community(community_service, post.community_id, user)
    return post, community


def _ensure_author_or_moderator(
    user: UserResponse, author_id: UUID, community: Community
) -> None:
    if user.id != author_id and not can_moderate(user, community):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the author or a moderator can do this",
        )


# ==============================================================================
# Feed
# ==============================================================================


@router.post(
    "/communities/{community_id}/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
async def create_post(
    community_id: UUID,
    data: CreatePostRequest,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> PostResponse:
    """Post to a community (members only, rate limited)."""
    await _load_community(community_service, community_id, user)
    try:
        post = await post_service.create_post(community_id, user.id, data)
    except DomainError as e:
        raise handle_post_error(e) from e
    return PostResponse.from_entity(post, viewer_id=user.id)


@router.get(
    "/communities/{community_id}/posts",
    response_model=PostListResponse,
    summary="Community feed",
)
async def list_posts(
    community_id: UUID,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
    q: str | None = Query(None, max_length=100, description="Content contains"),
    limit: int = Query(20, ge=1, le=100),
) -> PostListResponse:
    """Pinned posts first, then newest first."""
    await _load_community(community_service, community_id, user)
    posts, has_more = await post_service.list_community_posts(community_id, limit, q)
    items = [PostResponse.from_entity(p, viewer_id=user.id) for p in posts]
    return PostListResponse(items=items, total=len(items), has_more=has_more)


# ==============================================================================
# Single Post
# ==============================================================================


@router.get("/posts/{post_id}", response_model=PostResponse, summary="Get post")
async def get_post(
    post_id: UUID,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> PostResponse:
    post, _ = await _load_post(post_service, community_service, post_id, user)
    return PostResponse.from_entity(post, viewer_id=user.id)


@router.patch("/posts/{post_id}", response_model=PostResponse, summary="Edit post")
async def update_post(
    post_id: UUID,
    data: UpdatePostRequest,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> PostResponse:
    """Edit a post (author only)."""
    post, _ = await _load_post(post_service, community_service, post_id, user)
    if post.author_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the author can edit this post",
        )

    try:
        post = await post_service.update_post(post_id, data)
    except DomainError as e:
        raise handle_post_error(e) from e
    return PostResponse.from_entity(post, viewer_id=user.id)


@router.delete(
    "/posts/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete post",
)
async def delete_post(
    post_id: UUID,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> None:
    """Soft delete a post (author or moderator)."""
    post, community = await _load_post(post_service, community_service, post_id, user)
    _ensure_author_or_moderator(user, post.author_id, community)

    try:
        await post_service.delete_post(post_id)
    except DomainError as e:
        raise handle_post_error(e) from e


@router.post("/posts/{post_id}/like", response_model=LikeResponse, summary="Toggle like")
async def toggle_like(
    post_id: UUID,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> LikeResponse:
    await _load_post(post_service, community_service, post_id, user)
    try:
        liked, like_count = await post_service.toggle_like(post_id, user.id)
    except DomainError as e:
        raise handle_post_error(e) from e
    return LikeResponse(post_id=post_id, liked=liked, like_count=like_count)


@router.post("/posts/{post_id}/pin", response_model=PostResponse, summary="Pin or unpin")
async def pin_post(
    post_id: UUID,
    data: PinPostRequest,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> PostResponse:
    """Pin or unpin a post (moderators)."""
    _, community = await _load_post(post_service, community_service, post_id, user)
    ensure_moderator(user, community)

    try:
        post = await post_service.set_pinned(post_id, data.is_pinned)
    except DomainError as e:
        raise handle_post_error(e) from e
    return PostResponse.from_entity(post, viewer_id=user.id)


# ==============================================================================
# Comments
# ==============================================================================


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    post_id: UUID,
    data: CreateCommentRequest,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    """Comment on a post (members only, rate limited)."""
    await _load_post(post_service, community_service, post_id, user)
    try:
        comment = await post_service.add_comment(post_id, user.id, data)
    except DomainError as e:
        raise handle_post_error(e) from e
    return CommentResponse.from_entity(comment)


@router.get(
    "/posts/{post_id}/comments",
    response_model=CommentListResponse,
    summary="List comments",
)
async def list_comments(
    post_id: UUID,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> CommentListResponse:
    await _load_post(post_service, community_service, post_id, user)
    comments = await post_service.list_comments(post_id)
    items = [CommentResponse.from_entity(c) for c in comments]
    return CommentListResponse(items=items, total=len(items))


@router.delete(
    "/posts/{post_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete comment",
)
async def delete_comment(
    post_id: UUID,
    comment_id: UUID,
    post_service: PostServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> None:
    """Soft delete a comment (author or moderator)."""
    _, community = await _load_post(post_service, community_service, post_id, user)
    comment = await post_service.get_comment(post_id, comment_id)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    _ensure_author_or_moderator(user, comment.author_id, community)

    try:
        await post_service.delete_comment(post_id, comment_id)
    except DomainError as e:
        raise handle_post_error(e) from e
