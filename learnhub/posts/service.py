"""Community post service layer.

Business logic for:
- Post CRUD with soft delete
- Feed listing (pinned first, then newest)
- Likes, pinning
- Flat comments with an active-comment counter
- Per-user rate limiting of posts and comments
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.core.exceptions import AggregateNotFoundError, DomainError
from learnhub.core.rate_limit import RateLimiter, RateWindow
from learnhub.posts.models import Post, PostComment, feed_order
from learnhub.posts.schemas import (
    CreateCommentRequest,
    CreatePostRequest,
    UpdatePostRequest,
)
from learnhub.utils import contains_text, utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.core.locks import AggregateLocks

logger = structlog.get_logger(__name__)

POST_LOCK = "post"

# Upper bound of feed rows read before ordering pinned posts first
FEED_SCAN_LIMIT = 500


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PostError(DomainError):
    """Base post error."""

    def __init__(self, message: str, code: str = "post_error"):
        super().__init__(message, code)


class CommentNotFoundError(PostError):
    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class PostNotFoundError(AggregateNotFoundError):
    """Post missing or soft-deleted."""

    def __init__(self, post_id: UUID):
        super().__init__("post", post_id)


# ==============================================================================
# Post Service
# ==============================================================================


class PostService:
    """Service for community posts, likes and comments."""

    # Defaults; the app passes the configured windows
    POSTS_PER_MINUTE = 5
    POSTS_PER_HOUR = 60
    COMMENTS_PER_MINUTE = 10

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        locks: "AggregateLocks",
        rate_limiter: RateLimiter | None = None,
        post_windows: list[RateWindow] | None = None,
        comment_windows: list[RateWindow] | None = None,
    ):
        """Initialize with Cassandra session, aggregate locks and rate limiter."""
        self.session = session
        self.keyspace = keyspace
        self.locks = locks
        self.rate_limiter = rate_limiter or RateLimiter()
        self.post_windows = post_windows or [
            RateWindow(self.POSTS_PER_MINUTE, 60),
            RateWindow(self.POSTS_PER_HOUR, 3600),
        ]
        self.comment_windows = comment_windows or [
            RateWindow(self.COMMENTS_PER_MINUTE, 60),
        ]
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Posts
        self._get_post = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.posts WHERE id = ?"
        )
        self._upsert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts
            (id, community_id, author_id, content, is_pinned, is_active, liked_by,
             comment_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._add_like = self.session.prepare(
            f"UPDATE {self.keyspace}.posts SET liked_by = liked_by + ? WHERE id = ?"
        )
        self._remove_like = self.session.prepare(
            f"UPDATE {self.keyspace}.posts SET liked_by = liked_by - ? WHERE id = ?"
        )
        self._update_comment_count = self.session.prepare(
            f"UPDATE {self.keyspace}.posts SET comment_count = ? WHERE id = ?"
        )

        # Feed
        self._insert_by_community = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts_by_community
            (community_id, created_at, post_id) VALUES (?, ?, ?)
        """)
        self._delete_by_community = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.posts_by_community
            WHERE community_id = ? AND created_at = ? AND post_id = ?
        """)
        self._get_by_community = self.session.prepare(f"""
            SELECT post_id FROM {self.keyspace}.posts_by_community
            WHERE community_id = ? LIMIT ?
        """)

        # Comments
        self._upsert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.post_comments
            (post_id, comment_id, author_id, content, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.post_comments
            WHERE post_id = ? AND comment_id = ?
        """)
        self._get_comments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.post_comments WHERE post_id = ?"
        )

    async def _save_post(self, post: Post) -> None:
        await self.session.aexecute(
            self._upsert_post,
            [
                post.id,
                post.community_id,
                post.author_id,
                post.content,
                post.is_pinned,
                post.is_active,
                post.liked_by,
                post.comment_count,
                post.created_at,
                post.updated_at,
            ],
        )

    async def _save_comment(self, comment: PostComment) -> None:
        await self.session.aexecute(
            self._upsert_comment,
            [
                comment.post_id,
                comment.comment_id,
                comment.author_id,
                comment.content,
                comment.is_active,
                comment.created_at,
            ],
        )

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def get_post(self, post_id: UUID) -> Post | None:
        """Get an active post by ID."""
        result = await self.session.aexecute(self._get_post, [post_id])
        row = result.one()
        if row is None or row.is_active is False:
            return None
        return Post.from_row(row)

    async def require_post(self, post_id: UUID) -> Post:
        post = await self.get_post(post_id)
        if post is None:
            raise PostNotFoundError(post_id)
        return post

    async def create_post(
        self, community_id: UUID, author_id: UUID, data: CreatePostRequest
    ) -> Post:
        """Create a post. Membership is checked by the caller.

        Raises:
            RateLimitExceededError: If the author posted too often
        """
        await self.rate_limiter.hit("posts", author_id, self.post_windows)

        post = Post(community_id=community_id, author_id=author_id, content=data.content)
        await self._save_post(post)
        await self.session.aexecute(
            self._insert_by_community, [community_id, post.created_at, post.id]
        )

        logger.info(
            "post_created",
            post_id=str(post.id),
            community_id=str(community_id),
            author_id=str(author_id),
        )
        return post

    async def list_community_posts(
        self, community_id: UUID, limit: int = 20, q: str | None = None
    ) -> tuple[list[Post], bool]:
        """Active posts of a community, pinned first, then newest first.

        ``q`` keeps only posts whose content contains it.

        Returns:
            Tuple of (posts, has_more)
        """
        rows = await self.session.aexecute(
            self._get_by_community, [community_id, FEED_SCAN_LIMIT]
        )
        posts = []
        for row in rows:
            post = await self.get_post(row.post_id)
            if post is not None and contains_text(post.content, q):
                posts.append(post)

        ordered = feed_order(posts)
        return ordered[:limit], len(ordered) > limit

    async def update_post(self, post_id: UUID, data: UpdatePostRequest) -> Post:
        async with self.locks.hold(POST_LOCK, post_id):
            post = await self.require_post(post_id)
            post.content = data.content
            post.updated_at = utcnow()
            await self._save_post(post)
        return post

    async def delete_post(self, post_id: UUID) -> None:
        """Soft delete; the post leaves the community feed."""
        async with self.locks.hold(POST_LOCK, post_id):
            post = await self.require_post(post_id)
            post.is_active = False
            post.updated_at = utcnow()
            await self._save_post(post)
            await self.session.aexecute(
                self._delete_by_community, [post.community_id, post.created_at, post.id]
            )

        logger.info("post_deleted", post_id=str(post_id))

    async def set_pinned(self, post_id: UUID, is_pinned: bool) -> Post:
        async with self.locks.hold(POST_LOCK, post_id):
            post = await self.require_post(post_id)
            if post.is_pinned != is_pinned:
                post.is_pinned = is_pinned
                post.updated_at = utcnow()
                await self._save_post(post)
                logger.info("post_pin_changed", post_id=str(post_id), is_pinned=is_pinned)
        return post

    async def toggle_like(self, post_id: UUID, user_id: UUID) -> tuple[bool, int]:
        """Like or unlike a post.

        Returns:
            Tuple of (liked, like_count)
        """
        async with self.locks.hold(POST_LOCK, post_id):
            post = await self.require_post(post_id)
            liked = post.toggle_like(user_id)
            statement = self._add_like if liked else self._remove_like
            await self.session.aexecute(statement, [{user_id}, post_id])
        return liked, post.like_count

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def add_comment(
        self, post_id: UUID, author_id: UUID, data: CreateCommentRequest
    ) -> PostComment:
        """Add a comment and bump the post's comment count.

        Raises:
            RateLimitExceededError: If the author commented too often
            AggregateNotFoundError: If the post is missing or deleted
        """
        await self.rate_limiter.hit("comments", author_id, self.comment_windows)

        async with self.locks.hold(POST_LOCK, post_id):
            post = await self.require_post(post_id)
            comment = PostComment(post_id=post_id, author_id=author_id, content=data.content)
            await self._save_comment(comment)
            post.comment_count += 1
            await self.session.aexecute(
                self._update_comment_count, [post.comment_count, post_id]
            )

        logger.info(
            "comment_added",
            post_id=str(post_id),
            comment_id=str(comment.comment_id),
            author_id=str(author_id),
        )
        return comment

    async def get_comment(self, post_id: UUID, comment_id: UUID) -> PostComment | None:
        result = await self.session.aexecute(self._get_comment, [post_id, comment_id])
        row = result.one()
        if row is None or row.is_active is False:
            return None
        return PostComment.from_row(row)

    async def list_comments(self, post_id: UUID) -> list[PostComment]:
        """Active comments, oldest first."""
        rows = await self.session.aexecute(self._get_comments, [post_id])
        comments = [PostComment.from_row(row) for row in rows]
        return sorted(
            (c for c in comments if c.is_active), key=lambda c: c.created_at
        )

    async def delete_comment(self, post_id: UUID, comment_id: UUID) -> None:
        """Soft delete a comment and decrement the post's comment count.

        Raises:
            CommentNotFoundError: If the comment is missing or already deleted
        """
        async with self.locks.hold(POST_LOCK, post_id):
            post = await self.require_post(post_id)
            comment = await self.get_comment(post_id, comment_id)
            if comment is None:
                raise CommentNotFoundError

            comment.is_active = False
            await self._save_comment(comment)
            post.comment_count = max(0, post.comment_count - 1)
            await self.session.aexecute(
                self._update_comment_count, [post.comment_count, post_id]
            )

        logger.info("comment_deleted", post_id=str(post_id), comment_id=str(comment_id))
