"""Pydantic schemas for combined search."""

from pydantic import BaseModel, Field

from learnhub.communities.schemas import CommunityResponse
from learnhub.courses.schemas import CourseResponse
from learnhub.posts.schemas import PostResponse


class SearchResponse(BaseModel):
    """Matches of one query, grouped by content type."""

    query: str
    courses: list[CourseResponse]
    communities: list[CommunityResponse]
    posts: list[PostResponse] = Field(
        description="Only from communities the caller belongs to"
    )
    total_results: int
