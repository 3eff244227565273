"""Database models for communities and membership.

Cassandra table definitions for:
- Communities: main table (soft-deleted via is_active)
- Community members: membership rows partitioned by community
- Communities by member: lookup for "which communities am I in?"

The Community entity is the aggregate root for its membership map. The
creator is a field on the community; the ``creator`` membership role only
labels their membership row and grants nothing by itself.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.utils import ensure_utc_aware, generate_slug, utcnow


class CommunityVisibility(str, Enum):
    """Who may join without an invitation."""

    PUBLIC = "public"
    PRIVATE = "private"


class MemberRole(str, Enum):
    """Role tag of a membership."""

    ADMIN = "admin"
    MEMBER = "member"
    CREATOR = "creator"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMUNITY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.communities (
    id UUID PRIMARY KEY,
    name TEXT,
    slug TEXT,
    description TEXT,
    category TEXT,
    tags LIST<TEXT>,
    rules LIST<TEXT>,
    visibility TEXT,
    creator_id UUID,
    is_active BOOLEAN,
    member_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COMMUNITY_MEMBERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.community_members (
    community_id UUID,
    user_id UUID,
    role TEXT,
    joined_at TIMESTAMP,
    PRIMARY KEY (community_id, user_id)
)
"""

COMMUNITIES_BY_MEMBER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.communities_by_member (
    user_id UUID,
    community_id UUID,
    role TEXT,
    joined_at TIMESTAMP,
    PRIMARY KEY (user_id, community_id)
)
"""

COMMUNITIES_TABLES_CQL = [
    COMMUNITY_TABLE_CQL,
    COMMUNITY_MEMBERS_TABLE_CQL,
    COMMUNITIES_BY_MEMBER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Membership:
    """One user's membership in one community."""

    def __init__(
        self,
        community_id: UUID,
        user_id: UUID,
        role: str = MemberRole.MEMBER.value,
        joined_at: datetime | None = None,
    ):
        self.community_id = community_id
        self.user_id = user_id
        self.role = role
        self.joined_at = ensure_utc_aware(joined_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Membership":
        return cls(
            community_id=row.community_id,
            user_id=row.user_id,
            role=row.role or MemberRole.MEMBER.value,
            joined_at=row.joined_at,
        )

    def __repr__(self) -> str:
        return f"<Membership user={self.user_id} {self.role}>"


class Community:
    """Community aggregate with its membership map.

    Attributes:
        id: Unique identifier (UUID)
        name: Display name
        slug: URL-friendly identifier
        visibility: public (open join) or private (moderator adds members)
        creator_id: Founding user; can never leave
        is_active: False once soft-deleted
        members: Memberships keyed by user id
    """

    def __init__(
        self,
        name: str,
        creator_id: UUID,
        id: UUID | None = None,
        slug: str | None = None,
        description: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        rules: list[str] | None = None,
        visibility: str = CommunityVisibility.PUBLIC.value,
        is_active: bool = True,
        member_count: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        members: list[Membership] | None = None,
    ):
        self.id = id or uuid4()
        self.name = name.strip()
        self.slug = slug or generate_slug(name)
        self.description = description
        self.category = category
        self.tags = tags or []
        self.rules = rules or []
        self.visibility = visibility
        self.creator_id = creator_id
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at)
        self.members: dict[UUID, Membership] = {m.user_id: m for m in members or []}
        # Stored count is only trusted until the membership map is loaded
        self.member_count = len(self.members) if members is not None else member_count

    @property
    def is_private(self) -> bool:
        return self.visibility == CommunityVisibility.PRIVATE.value

    # --------------------------------------------------------------------------
    # Predicates
    # --------------------------------------------------------------------------

    def is_member(self, user_id: UUID) -> bool:
        return user_id in self.members

    def is_admin(self, user_id: UUID) -> bool:
        """True only for an explicit ``admin`` role entry, never implied by
        being the creator."""
        membership = self.members.get(user_id)
        return membership is not None and membership.role == MemberRole.ADMIN.value

    def is_creator(self, user_id: UUID) -> bool:
        return self.creator_id == user_id

    def get_membership(self, user_id: UUID) -> Membership | None:
        return self.members.get(user_id)

    # --------------------------------------------------------------------------
    # Mutations
    # --------------------------------------------------------------------------

    def add_member(
        self, user_id: UUID, role: str = MemberRole.MEMBER.value
    ) -> tuple[Membership, bool]:
        """Add a membership unless one exists.

        Returns:
            Tuple of (membership, created). An existing membership is returned
            unchanged with ``created=False``.
        """
        existing = self.members.get(user_id)
        if existing is not None:
            return existing, False

        membership = Membership(community_id=self.id, user_id=user_id, role=role)
        self.members[user_id] = membership
        self.member_count = len(self.members)
        return membership, True

    def remove_member(self, user_id: UUID) -> Membership | None:
        """Drop a membership; returns it, or None if the user was not a member."""
        membership = self.members.pop(user_id, None)
        self.member_count = len(self.members)
        return membership

    @classmethod
    def from_row(cls, row: Any, members: list[Membership] | None = None) -> "Community":
        """Create Community instance from Cassandra row plus membership rows."""
        return cls(
            id=row.id,
            name=row.name or "",
            slug=row.slug,
            description=row.description,
            category=row.category,
            tags=list(row.tags or []),
            rules=list(row.rules or []),
            visibility=row.visibility or CommunityVisibility.PUBLIC.value,
            creator_id=row.creator_id,
            is_active=row.is_active if row.is_active is not None else True,
            member_count=row.member_count or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
            members=members,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "category": self.category,
            "tags": self.tags,
            "rules": self.rules,
            "visibility": self.visibility,
            "creator_id": self.creator_id,
            "is_active": self.is_active,
            "member_count": self.member_count,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Community {self.name!r} members={self.member_count}>"
