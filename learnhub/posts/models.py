"""Database models for community posts.

Cassandra table definitions for:
- Posts: main table with the like set and counters
- Posts by community: feed lookup, newest first
- Post comments: flat comments partitioned by post
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from learnhub.utils import ensure_utc_aware, utcnow


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    id UUID PRIMARY KEY,
    community_id UUID,
    author_id UUID,
    content TEXT,
    is_pinned BOOLEAN,
    is_active BOOLEAN,
    liked_by SET<UUID>,
    comment_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Feed lookup partitioned by community, newest first
POSTS_BY_COMMUNITY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_community (
    community_id UUID,
    created_at TIMESTAMP,
    post_id UUID,
    PRIMARY KEY ((community_id), created_at, post_id)
) WITH CLUSTERING ORDER BY (created_at DESC, post_id ASC)
"""

POST_COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_comments (
    post_id UUID,
    comment_id UUID,
    author_id UUID,
    content TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY (post_id, comment_id)
)
"""

POSTS_TABLES_CQL = [
    POST_TABLE_CQL,
    POSTS_BY_COMMUNITY_TABLE_CQL,
    POST_COMMENTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Post:
    """Community post entity."""

    community_id: UUID
    author_id: UUID
    content: str
    id: UUID = field(default_factory=uuid4)
    is_pinned: bool = False
    is_active: bool = True
    liked_by: set[UUID] = field(default_factory=set)
    comment_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    @property
    def like_count(self) -> int:
        return len(self.liked_by)

    def is_liked_by(self, user_id: UUID | None) -> bool:
        return user_id is not None and user_id in self.liked_by

    def toggle_like(self, user_id: UUID) -> bool:
        """Flip the user's like; returns True if the post is now liked."""
        if user_id in self.liked_by:
            self.liked_by.discard(user_id)
            return False
        self.liked_by.add(user_id)
        return True

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row."""
        return cls(
            id=row.id,
            community_id=row.community_id,
            author_id=row.author_id,
            content=row.content or "",
            is_pinned=row.is_pinned or False,
            is_active=row.is_active if row.is_active is not None else True,
            liked_by=set(row.liked_by or ()),
            comment_count=row.comment_count or 0,
            created_at=ensure_utc_aware(row.created_at) or utcnow(),
            updated_at=ensure_utc_aware(row.updated_at),
        )


@dataclass
class PostComment:
    """Flat comment on a post."""

    post_id: UUID
    author_id: UUID
    content: str
    comment_id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Any) -> "PostComment":
        return cls(
            post_id=row.post_id,
            comment_id=row.comment_id,
            author_id=row.author_id,
            content=row.content or "",
            is_active=row.is_active if row.is_active is not None else True,
            created_at=ensure_utc_aware(row.created_at) or utcnow(),
        )


def feed_order(posts: list[Post]) -> list[Post]:
    """Pinned posts first, then newest first."""
    return sorted(posts, key=lambda p: (not p.is_pinned, -p.created_at.timestamp()))
