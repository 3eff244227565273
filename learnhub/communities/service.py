"""Community membership service layer.

Business logic for:
- Community CRUD, listing and soft delete
- Membership: add (idempotent), remove, join/leave
- Member role edits

The Community entity owns the membership rules; this service loads the
aggregate, holds its lock, applies the entity method and persists the result.
"""

from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from learnhub.communities.models import (
    Community,
    CommunityVisibility,
    MemberRole,
    Membership,
)
from learnhub.communities.schemas import CreateCommunityRequest, UpdateCommunityRequest
from learnhub.core.exceptions import AggregateNotFoundError, DomainError
from learnhub.utils import contains_text, generate_slug, utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.core.locks import AggregateLocks

logger = structlog.get_logger(__name__)

COMMUNITY_LOCK = "community"

# Upper bound of community rows scanned before in-memory filtering
DIRECTORY_SCAN_LIMIT = 1000


def community_matches(row: Any, q: str | None) -> bool:
    """Free-text match on name, description or any tag."""
    fields = [row.name, row.description, *(row.tags or [])]
    return any(contains_text(field, q) for field in fields)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommunityError(DomainError):
    """Base community error."""

    def __init__(self, message: str, code: str = "community_error"):
        super().__init__(message, code)


class CreatorCannotLeaveError(CommunityError):
    """The community creator can never be removed."""

    def __init__(self, message: str = "The community creator cannot leave"):
        super().__init__(message, "creator_cannot_leave")


class NotAMemberError(CommunityError):
    """User has no membership in the community."""

    def __init__(self, message: str = "Not a member of this community"):
        super().__init__(message, "not_a_member")


class CreatorRoleLockedError(CommunityError):
    """The creator's membership role cannot be edited."""

    def __init__(self, message: str = "The creator's role cannot be changed"):
        super().__init__(message, "creator_role_locked")


class InvalidRoleError(CommunityError):
    def __init__(self, message: str = "Role cannot be assigned"):
        super().__init__(message, "invalid_role")


class PrivateCommunityError(CommunityError):
    """Private communities are joined only through a moderator."""

    def __init__(self, message: str = "This community is private"):
        super().__init__(message, "community_private")


class CommunityNotFoundError(AggregateNotFoundError):
    """Community missing or soft-deleted."""

    def __init__(self, community_id: UUID):
        super().__init__("community", community_id)


# ==============================================================================
# Community Service
# ==============================================================================


class CommunityService:
    """Service for communities and their membership."""

    def __init__(self, session: "Session", keyspace: str, locks: "AggregateLocks"):
        """Initialize with Cassandra session and the shared aggregate locks."""
        self.session = session
        self.keyspace = keyspace
        self.locks = locks
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Communities
        self._get_community = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.communities WHERE id = ?"
        )
        self._scan_communities = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.communities LIMIT ?"
        )
        self._upsert_community = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.communities
            (id, name, slug, description, category, tags, rules, visibility,
             creator_id, is_active, member_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_member_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.communities SET member_count = ?, updated_at = ?
            WHERE id = ?
        """)

        # Members
        self._get_members = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.community_members WHERE community_id = ?"
        )
        self._upsert_member = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.community_members
            (community_id, user_id, role, joined_at) VALUES (?, ?, ?, ?)
        """)
        self._delete_member = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.community_members
            WHERE community_id = ? AND user_id = ?
        """)

        # Communities by member (lookup)
        self._get_by_member = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.communities_by_member WHERE user_id = ?"
        )
        self._upsert_by_member = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.communities_by_member
            (user_id, community_id, role, joined_at) VALUES (?, ?, ?, ?)
        """)
        self._delete_by_member = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.communities_by_member
            WHERE user_id = ? AND community_id = ?
        """)

    # ==========================================================================
    # Loading and persistence
    # ==========================================================================

    async def get_community(self, community_id: UUID) -> Community | None:
        """Load a community with its members; None if missing or inactive."""
        result = await self.session.aexecute(self._get_community, [community_id])
        row = result.one()
        if row is None or row.is_active is False:
            return None

        member_rows = await self.session.aexecute(self._get_members, [community_id])
        return Community.from_row(row, [Membership.from_row(r) for r in member_rows])

    async def require_community(self, community_id: UUID) -> Community:
        community = await self.get_community(community_id)
        if community is None:
            raise CommunityNotFoundError(community_id)
        return community

    async def _save_community(self, community: Community) -> None:
        await self.session.aexecute(
            self._upsert_community,
            [
                community.id,
                community.name,
                community.slug,
                community.description,
                community.category,
                community.tags,
                community.rules,
                community.visibility,
                community.creator_id,
                community.is_active,
                community.member_count,
                community.created_at,
                community.updated_at,
            ],
        )

    async def _save_membership(self, membership: Membership) -> None:
        await self.session.aexecute(
            self._upsert_member,
            [
                membership.community_id,
                membership.user_id,
                membership.role,
                membership.joined_at,
            ],
        )
        await self.session.aexecute(
            self._upsert_by_member,
            [
                membership.user_id,
                membership.community_id,
                membership.role,
                membership.joined_at,
            ],
        )

    async def _persist_member_count(self, community: Community) -> None:
        community.updated_at = utcnow()
        await self.session.aexecute(
            self._update_member_count,
            [community.member_count, community.updated_at, community.id],
        )

    # ==========================================================================
    # Community CRUD
    # ==========================================================================

    async def create_community(
        self, data: CreateCommunityRequest, creator_id: UUID
    ) -> Community:
        """Create a community; the creator becomes its first member."""
        community = Community(
            name=data.name,
            creator_id=creator_id,
            description=data.description,
            category=data.category,
            tags=data.tags,
            rules=data.rules,
            visibility=data.visibility.value,
        )
        membership, _ = community.add_member(creator_id, MemberRole.CREATOR.value)

        await self._save_community(community)
        await self._save_membership(membership)

        logger.info(
            "community_created",
            community_id=str(community.id),
            creator_id=str(creator_id),
            visibility=community.visibility,
        )
        return community

    async def list_communities(
        self,
        limit: int = 20,
        category: str | None = None,
        q: str | None = None,
    ) -> tuple[list[Community], bool]:
        """List active public communities, newest first.

        ``q`` matches the name, description or any tag.

        Returns:
            Tuple of (communities, has_more)
        """
        rows = await self.session.aexecute(self._scan_communities, [DIRECTORY_SCAN_LIMIT])

        matches: list[Community] = []
        for row in rows:
            if row.is_active is False:
                continue
            if row.visibility == CommunityVisibility.PRIVATE.value:
                continue
            if category and (row.category or "").lower() != category.lower():
                continue
            if not community_matches(row, q):
                continue
            matches.append(Community.from_row(row))

        matches.sort(key=lambda c: c.created_at, reverse=True)
        return matches[:limit], len(matches) > limit

    async def list_user_communities(self, user_id: UUID) -> list[Community]:
        """Active communities the user belongs to."""
        rows = await self.session.aexecute(self._get_by_member, [user_id])
        communities = []
        for row in rows:
            community = await self.get_community(row.community_id)
            if community is not None:
                communities.append(community)
        return communities

    async def update_community(
        self, community_id: UUID, data: UpdateCommunityRequest
    ) -> Community:
        async with self.locks.hold(COMMUNITY_LOCK, community_id):
            community = await self.require_community(community_id)

            if data.name is not None:
                community.name = data.name.strip()
                community.slug = generate_slug(data.name)
            if data.description is not None:
                community.description = data.description
            if data.category is not None:
                community.category = data.category
            if data.tags is not None:
                community.tags = data.tags
            if data.rules is not None:
                community.rules = data.rules
            if data.visibility is not None:
                community.visibility = data.visibility.value

            community.updated_at = utcnow()
            await self._save_community(community)

        return community

    async def delete_community(self, community_id: UUID) -> None:
        """Soft delete: the community stops resolving and cannot be joined."""
        async with self.locks.hold(COMMUNITY_LOCK, community_id):
            community = await self.require_community(community_id)
            community.is_active = False
            community.updated_at = utcnow()
            await self._save_community(community)

        logger.info("community_deleted", community_id=str(community_id))

    # ==========================================================================
    # Membership
    # ==========================================================================

    async def _add_member_locked(
        self, community: Community, user_id: UUID, role: str
    ) -> Membership:
        membership, created = community.add_member(user_id, role)
        if not created:
            return membership

        await self._save_membership(membership)
        await self._persist_member_count(community)
        logger.info(
            "member_added",
            community_id=str(community.id),
            user_id=str(user_id),
            role=role,
            member_count=community.member_count,
        )
        return membership

    async def add_member(
        self, community_id: UUID, user_id: UUID, role: str = MemberRole.MEMBER.value
    ) -> Membership:
        """Add a member; an existing membership is returned unchanged.

        Raises:
            InvalidRoleError: If ``role`` is ``creator``
            AggregateNotFoundError: If the community is missing or inactive
        """
        if role == MemberRole.CREATOR.value:
            raise InvalidRoleError
        async with self.locks.hold(COMMUNITY_LOCK, community_id):
            community = await self.require_community(community_id)
            return await self._add_member_locked(community, user_id, role)

    async def join(self, community_id: UUID, user_id: UUID) -> Membership:
        """Self-service join of a public community. Joining twice is a no-op.

        Raises:
            AggregateNotFoundError: If the community is missing or inactive
            PrivateCommunityError: If the community is private
        """
        async with self.locks.hold(COMMUNITY_LOCK, community_id):
            community = await self.require_community(community_id)
            if community.is_private and not community.is_member(user_id):
                raise PrivateCommunityError
            return await self._add_member_locked(
                community, user_id, MemberRole.MEMBER.value
            )

    async def remove_member(self, community_id: UUID, user_id: UUID) -> None:
        """Remove a membership; removing a non-member does nothing.

        Raises:
            CreatorCannotLeaveError: If ``user_id`` is the community creator
            AggregateNotFoundError: If the community is missing or inactive
        """
        async with self.locks.hold(COMMUNITY_LOCK, community_id):
            community = await self.require_community(community_id)
            if community.is_creator(user_id):
                raise CreatorCannotLeaveError

            if community.remove_member(user_id) is None:
                return

            await self.session.aexecute(self._delete_member, [community_id, user_id])
            await self.session.aexecute(self._delete_by_member, [user_id, community_id])
            await self._persist_member_count(community)

        logger.info(
            "member_removed",
            community_id=str(community_id),
            user_id=str(user_id),
            member_count=community.member_count,
        )

    async def leave(self, community_id: UUID, user_id: UUID) -> None:
        await self.remove_member(community_id, user_id)

    async def set_member_role(
        self, community_id: UUID, user_id: UUID, role: str
    ) -> Membership:
        """Switch a member between ``member`` and ``admin``.

        Raises:
            NotAMemberError: If the user is not a member
            CreatorRoleLockedError: If the user is the creator
            InvalidRoleError: If ``role`` is ``creator``
        """
        if role == MemberRole.CREATOR.value:
            raise InvalidRoleError
        async with self.locks.hold(COMMUNITY_LOCK, community_id):
            community = await self.require_community(community_id)
            membership = community.get_membership(user_id)
            if membership is None:
                raise NotAMemberError
            if community.is_creator(user_id):
                raise CreatorRoleLockedError

            if membership.role != role:
                previous = membership.role
                membership.role = role
                await self._save_membership(membership)
                logger.info(
                    "member_role_changed",
                    community_id=str(community_id),
                    user_id=str(user_id),
                    previous=previous,
                    role=role,
                )

        return membership

    async def list_members(self, community_id: UUID) -> list[Membership]:
        """Members ordered by join time."""
        community = await self.require_community(community_id)
        return sorted(community.members.values(), key=lambda m: m.joined_at)

    # ==========================================================================
    # Predicates
    # ==========================================================================

    async def is_member(self, community_id: UUID, user_id: UUID) -> bool:
        community = await self.get_community(community_id)
        return community is not None and community.is_member(user_id)

    async def is_admin(self, community_id: UUID, user_id: UUID) -> bool:
        community = await self.get_community(community_id)
        return community is not None and community.is_admin(user_id)
