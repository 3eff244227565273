"""Pydantic schemas for community posts and comments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from learnhub.posts.models import Post, PostComment


def _strip_content(v: str) -> str:
    v = v.strip()
    if not v:
        msg = "Content cannot be empty"
        raise ValueError(msg)
    return v


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreatePostRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _strip_content(v)


class UpdatePostRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _strip_content(v)


class PinPostRequest(BaseModel):
    is_pinned: bool = True


class CreateCommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _strip_content(v)


# ==============================================================================
# Response Schemas
# ==============================================================================


class PostResponse(BaseModel):
    id: UUID
    community_id: UUID
    author_id: UUID
    content: str
    is_pinned: bool
    like_count: int
    liked_by_me: bool = False
    comment_count: int
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, post: Post, viewer_id: UUID | None = None) -> "PostResponse":
        return cls(
            id=post.id,
            community_id=post.community_id,
            author_id=post.author_id,
            content=post.content,
            is_pinned=post.is_pinned,
            like_count=post.like_count,
            liked_by_me=post.is_liked_by(viewer_id),
            comment_count=post.comment_count,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostListResponse(BaseModel):
    items: list[PostResponse]
    total: int
    has_more: bool = False


class LikeResponse(BaseModel):
    post_id: UUID
    liked: bool
    like_count: int


class CommentResponse(BaseModel):
    comment_id: UUID
    post_id: UUID
    author_id: UUID
    content: str
    created_at: datetime

    @classmethod
    def from_entity(cls, comment: PostComment) -> "CommentResponse":
        return cls(
            comment_id=comment.comment_id,
            post_id=comment.post_id,
            author_id=comment.author_id,
            content=comment.content,
            created_at=comment.created_at,
        )


class CommentListResponse(BaseModel):
    items: list[CommentResponse]
    total: int
