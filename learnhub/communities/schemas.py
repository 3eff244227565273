"""Pydantic schemas for communities and membership."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from learnhub.communities.models import (
    Community,
    CommunityVisibility,
    MemberRole,
    Membership,
)


class AssignableRole(str, Enum):
    """Roles a moderator may hand out; ``creator`` is never assignable."""

    ADMIN = MemberRole.ADMIN.value
    MEMBER = MemberRole.MEMBER.value


# ==============================================================================
# Community Schemas
# ==============================================================================


class CreateCommunityRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: str | None = Field(None, max_length=2000)
    category: str | None = Field(None, max_length=100)
    tags: list[str] = Field(default_factory=list, max_length=10)
    rules: list[str] = Field(default_factory=list, max_length=20)
    visibility: CommunityVisibility = CommunityVisibility.PUBLIC

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Lowercase, strip and de-duplicate tags, keeping order."""
        seen: list[str] = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class UpdateCommunityRequest(BaseModel):
    """Partial community update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=3, max_length=100)
    description: str | None = Field(None, max_length=2000)
    category: str | None = Field(None, max_length=100)
    tags: list[str] | None = Field(None, max_length=10)
    rules: list[str] | None = Field(None, max_length=20)
    visibility: CommunityVisibility | None = None


class CommunityResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    category: str | None = None
    tags: list[str] = []
    rules: list[str] = []
    visibility: CommunityVisibility
    creator_id: UUID
    member_count: int
    created_at: datetime
    updated_at: datetime | None = None
    my_role: MemberRole | None = Field(
        None, description="Viewer's membership role, if a member"
    )

    @classmethod
    def from_entity(
        cls, community: Community, viewer_id: UUID | None = None
    ) -> "CommunityResponse":
        membership = community.get_membership(viewer_id) if viewer_id else None
        return cls(
            id=community.id,
            name=community.name,
            slug=community.slug,
            description=community.description,
            category=community.category,
            tags=community.tags,
            rules=community.rules,
            visibility=CommunityVisibility(community.visibility),
            creator_id=community.creator_id,
            member_count=community.member_count,
            created_at=community.created_at,
            updated_at=community.updated_at,
            my_role=MemberRole(membership.role) if membership else None,
        )


class CommunityListResponse(BaseModel):
    items: list[CommunityResponse]
    total: int
    has_more: bool = False


# ==============================================================================
# Membership Schemas
# ==============================================================================


class MemberResponse(BaseModel):
    community_id: UUID
    user_id: UUID
    role: MemberRole
    joined_at: datetime

    @classmethod
    def from_entity(cls, membership: Membership) -> "MemberResponse":
        return cls(
            community_id=membership.community_id,
            user_id=membership.user_id,
            role=MemberRole(membership.role),
            joined_at=membership.joined_at,
        )


class MemberListResponse(BaseModel):
    items: list[MemberResponse]
    total: int


class AddMemberRequest(BaseModel):
    """Moderator-driven membership grant (the only way into private communities)."""

    user_id: UUID
    role: AssignableRole = AssignableRole.MEMBER


class UpdateMemberRoleRequest(BaseModel):
    role: AssignableRole
