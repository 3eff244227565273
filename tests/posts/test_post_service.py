"""Tests for the post service against a mocked session."""

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learnhub.core.exceptions import RateLimitExceededError
from learnhub.core.locks import AggregateLocks
from learnhub.core.rate_limit import RateLimiter, RateWindow
from learnhub.posts.schemas import CreateCommentRequest, CreatePostRequest
from learnhub.posts.service import CommentNotFoundError, PostNotFoundError, PostService


POST_COLUMNS = (
    "id community_id author_id content is_pinned is_active liked_by "
    "comment_count created_at updated_at"
).split()
COMMENT_COLUMNS = "post_id comment_id author_id content is_active created_at".split()


@pytest.fixture
def tables() -> dict[str, dict]:
    return {"posts": {}, "feed": {}, "comments": {}}


@pytest.fixture
def post_service(
    mock_session: Mock, locks: AggregateLocks, tables: dict, make_result: type
) -> PostService:
    service = PostService(session=mock_session, keyspace="test_keyspace", locks=locks)
    posts, feed, comments = tables["posts"], tables["feed"], tables["comments"]

    async def aexecute(statement: Any, params: list) -> Any:
        if statement is service._get_post:
            row = posts.get(params[0])
            return make_result([row] if row else [])
        if statement is service._upsert_post:
            row = SimpleNamespace(**dict(zip(POST_COLUMNS, params, strict=True)))
            row.liked_by = set(row.liked_by)
            posts[params[0]] = row
            return make_result([])
        if statement is service._add_like:
            posts[params[1]].liked_by |= params[0]
            return make_result([])
        if statement is service._remove_like:
            posts[params[1]].liked_by -= params[0]
            return make_result([])
        if statement is service._update_comment_count:
            posts[params[1]].comment_count = params[0]
            return make_result([])
        if statement is service._insert_by_community:
            feed[(params[0], params[2])] = SimpleNamespace(post_id=params[2])
            return make_result([])
        if statement is service._delete_by_community:
            feed.pop((params[0], params[2]), None)
            return make_result([])
        if statement is service._get_by_community:
            return make_result([r for (cid, _), r in feed.items() if cid == params[0]])
        if statement is service._upsert_comment:
            comments[(params[0], params[1])] = SimpleNamespace(
                **dict(zip(COMMENT_COLUMNS, params, strict=True))
            )
            return make_result([])
        if statement is service._get_comment:
            row = comments.get((params[0], params[1]))
            return make_result([row] if row else [])
        if statement is service._get_comments:
            return make_result([r for (pid, _), r in comments.items() if pid == params[0]])
        raise AssertionError(f"unexpected statement {statement}")

    mock_session.aexecute = AsyncMock(side_effect=aexecute)
    return service


class TestPosts:
    """Test post lifecycle and the feed."""

    @pytest.mark.asyncio
    async def test_feed_pinned_first(self, post_service: PostService) -> None:
        community_id = uuid4()
        first = await post_service.create_post(
            community_id, uuid4(), CreatePostRequest(content="first")
        )
        second = await post_service.create_post(
            community_id, uuid4(), CreatePostRequest(content="second")
        )
        await post_service.set_pinned(first.id, True)

        posts, has_more = await post_service.list_community_posts(community_id)

        assert [p.id for p in posts] == [first.id, second.id]
        assert posts[0].is_pinned
        assert has_more is False

    @pytest.mark.asyncio
    async def test_deleted_post_leaves_feed(self, post_service: PostService) -> None:
        community_id = uuid4()
        post = await post_service.create_post(
            community_id, uuid4(), CreatePostRequest(content="short lived")
        )

        await post_service.delete_post(post.id)

        assert await post_service.get_post(post.id) is None
        posts, _ = await post_service.list_community_posts(community_id)
        assert posts == []
        with pytest.raises(PostNotFoundError):
            await post_service.delete_post(post.id)

    @pytest.mark.asyncio
    async def test_feed_search(self, post_service: PostService) -> None:
        community_id = uuid4()
        await post_service.create_post(
            community_id, uuid4(), CreatePostRequest(content="Who is going to PyCon?")
        )
        wanted = await post_service.create_post(
            community_id, uuid4(), CreatePostRequest(content="Sharing my asyncio notes")
        )

        posts, has_more = await post_service.list_community_posts(community_id, q="ASYNCIO")

        assert [p.id for p in posts] == [wanted.id]
        assert has_more is False

    @pytest.mark.asyncio
    async def test_content_is_stripped(self, post_service: PostService) -> None:
        post = await post_service.create_post(
            uuid4(), uuid4(), CreatePostRequest(content="  hello  ")
        )
        assert post.content == "hello"

    @pytest.mark.asyncio
    async def test_like_toggle_persists(
        self, post_service: PostService, tables: dict
    ) -> None:
        post = await post_service.create_post(
            uuid4(), uuid4(), CreatePostRequest(content="like me")
        )
        user_id = uuid4()

        assert await post_service.toggle_like(post.id, user_id) == (True, 1)
        assert tables["posts"][post.id].liked_by == {user_id}
        assert await post_service.toggle_like(post.id, user_id) == (False, 0)
        assert tables["posts"][post.id].liked_by == set()


class TestComments:
    """Test comments and the active-comment counter."""

    @pytest.mark.asyncio
    async def test_comment_count_follows_active_comments(
        self, post_service: PostService, tables: dict
    ) -> None:
        post = await post_service.create_post(
            uuid4(), uuid4(), CreatePostRequest(content="discuss")
        )
        first = await post_service.add_comment(
            post.id, uuid4(), CreateCommentRequest(content="one")
        )
        await post_service.add_comment(post.id, uuid4(), CreateCommentRequest(content="two"))
        assert tables["posts"][post.id].comment_count == 2

        await post_service.delete_comment(post.id, first.comment_id)

        assert tables["posts"][post.id].comment_count == 1
        remaining = await post_service.list_comments(post.id)
        assert [c.content for c in remaining] == ["two"]
        with pytest.raises(CommentNotFoundError):
            await post_service.delete_comment(post.id, first.comment_id)

    @pytest.mark.asyncio
    async def test_comment_on_missing_post(self, post_service: PostService) -> None:
        with pytest.raises(PostNotFoundError):
            await post_service.add_comment(
                uuid4(), uuid4(), CreateCommentRequest(content="hello?")
            )


class TestRateLimits:
    """Posts and comments count against per-user windows."""

    @pytest.mark.asyncio
    async def test_post_over_limit_not_written(
        self, post_service: PostService, tables: dict
    ) -> None:
        redis = Mock()
        pipeline = Mock()
        pipeline.execute = AsyncMock(return_value=[6, True, 6, True])
        redis.pipeline = Mock(return_value=pipeline)
        post_service.rate_limiter = RateLimiter(redis)

        with pytest.raises(RateLimitExceededError):
            await post_service.create_post(
                uuid4(), uuid4(), CreatePostRequest(content="spam")
            )
        assert tables["posts"] == {}

    @pytest.mark.asyncio
    async def test_configured_windows_used(self, mock_session: Mock) -> None:
        limiter = Mock(spec=RateLimiter)
        limiter.hit = AsyncMock(return_value=None)
        windows = [RateWindow(1, 60)]
        service = PostService(
            session=mock_session,
            keyspace="test_keyspace",
            locks=AggregateLocks(),
            rate_limiter=limiter,
            post_windows=windows,
        )
        author_id = uuid4()

        await service.create_post(uuid4(), author_id, CreatePostRequest(content="hi"))

        limiter.hit.assert_awaited_once_with("posts", author_id, windows)
        assert service.comment_windows == [RateWindow(PostService.COMMENTS_PER_MINUTE, 60)]
