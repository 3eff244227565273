"""Combined search built on the per-resource listings.

Matching is a plain accent- and case-insensitive substring test; there is
no relevance ranking. Each content type gets an equal share of ``limit``.
"""

import math
from uuid import UUID

import structlog

from learnhub.communities.schemas import CommunityResponse
from learnhub.communities.service import CommunityService
from learnhub.courses.models import CourseStatus
from learnhub.courses.schemas import CourseResponse
from learnhub.courses.service import CourseService
from learnhub.posts.schemas import PostResponse
from learnhub.posts.service import PostService
from learnhub.search.schemas import SearchResponse


logger = structlog.get_logger(__name__)

CONTENT_TYPES = 3


class SearchService:
    """Query courses, public communities and the caller's community posts."""

    def __init__(
        self,
        course_service: CourseService,
        community_service: CommunityService,
        post_service: PostService,
    ):
        self.course_service = course_service
        self.community_service = community_service
        self.post_service = post_service

    async def search(self, user_id: UUID, q: str, limit: int = 20) -> SearchResponse:
        per_type = math.ceil(limit / CONTENT_TYPES)

        courses, _ = await self.course_service.list_courses(
            status=CourseStatus.PUBLISHED, limit=per_type, q=q
        )
        communities, _ = await self.community_service.list_communities(limit=per_type, q=q)

        posts = []
        for community in await self.community_service.list_user_communities(user_id):
            found, _ = await self.post_service.list_community_posts(
                community.id, limit=per_type, q=q
            )
            posts.extend(found)
        posts.sort(key=lambda p: p.created_at, reverse=True)
        posts = posts[:per_type]

        total = len(courses) + len(communities) + len(posts)
        logger.debug("search_completed", query=q, results=total)
        return SearchResponse(
            query=q,
            courses=[CourseResponse.from_entity(c) for c in courses],
            communities=[
                CommunityResponse.from_entity(c, viewer_id=user_id) for c in communities
            ],
            posts=[PostResponse.from_entity(p, viewer_id=user_id) for p in posts],
            total_results=total,
        )
