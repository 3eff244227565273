"""Pydantic schemas for course authoring.

Request and response models for:
- Course CRUD and catalog listing
- Section and content item management
- Reviews
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnhub.courses.models import (
    ContentItem,
    Course,
    CourseLevel,
    CourseReview,
    CourseStatus,
    Section,
)


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Create a new course (starts as draft)."""

    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    category: str | None = Field(None, max_length=100)
    level: CourseLevel = CourseLevel.BEGINNER
    price: Decimal = Field(default=Decimal(0), ge=0, description="0 means free")


class UpdateCourseRequest(BaseModel):
    """Partial course update; omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    category: str | None = Field(None, max_length=100)
    level: CourseLevel | None = None
    price: Decimal | None = Field(None, ge=0)
    status: CourseStatus | None = None


class CourseResponse(BaseModel):
    """Course metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    description: str | None = None
    category: str | None = None
    level: CourseLevel
    price: Decimal
    is_free: bool
    status: CourseStatus
    creator_id: UUID
    total_items: int = Field(description="Active items in active sections")
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, course: Course) -> "CourseResponse":
        return cls(
            id=course.id,
            title=course.title,
            slug=course.slug,
            description=course.description,
            category=course.category,
            level=CourseLevel(course.level),
            price=course.price,
            is_free=course.is_free,
            status=CourseStatus(course.status),
            creator_id=course.creator_id,
            total_items=course.total_items,
            created_at=course.created_at,
            updated_at=course.updated_at,
        )


class CourseListResponse(BaseModel):
    """Page of courses."""

    items: list[CourseResponse]
    total: int
    has_more: bool = False


# ==============================================================================
# Outline Schemas
# ==============================================================================


class CreateSectionRequest(BaseModel):
    """Append a section to the course outline."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    position: int | None = Field(None, ge=0, description="Defaults to the end")


class UpdateSectionRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    position: int | None = Field(None, ge=0)


class CreateItemRequest(BaseModel):
    """Add a content item (lecture) to a section."""

    title: str = Field(..., min_length=1, max_length=200)
    video_url: str | None = Field(
        None, max_length=2000, description="Bunny.net video ID or URL"
    )
    duration_seconds: int | None = Field(None, ge=0)
    position: int | None = Field(None, ge=0, description="Defaults to the end")


class UpdateItemRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    video_url: str | None = Field(None, max_length=2000)
    duration_seconds: int | None = Field(None, ge=0)
    position: int | None = Field(None, ge=0)


class ItemResponse(BaseModel):
    item_id: UUID
    section_id: UUID
    title: str
    video_url: str | None = None
    duration_seconds: int | None = None
    position: int

    @classmethod
    def from_entity(cls, item: ContentItem) -> "ItemResponse":
        return cls(
            item_id=item.item_id,
            section_id=item.section_id,
            title=item.title,
            video_url=item.video_url,
            duration_seconds=item.duration_seconds,
            position=item.position,
        )


class SectionResponse(BaseModel):
    section_id: UUID
    title: str
    description: str | None = None
    position: int
    items: list[ItemResponse] = []

    @classmethod
    def from_entity(
        cls, section: Section, items: list[ContentItem] | None = None
    ) -> "SectionResponse":
        return cls(
            section_id=section.section_id,
            title=section.title,
            description=section.description,
            position=section.position,
            items=[ItemResponse.from_entity(i) for i in items or []],
        )


class CourseDetailResponse(CourseResponse):
    """Course with its active outline and rating summary."""

    sections: list[SectionResponse] = []
    average_rating: float = 0.0
    review_count: int = 0

    @classmethod
    def from_course(
        cls,
        course: Course,
        average_rating: float = 0.0,
        review_count: int = 0,
    ) -> "CourseDetailResponse":
        base = CourseResponse.from_entity(course).model_dump()
        return cls(
            **base,
            sections=[
                SectionResponse.from_entity(s, course.items_in_section(s.section_id))
                for s in course.active_sections()
            ],
            average_rating=average_rating,
            review_count=review_count,
        )


class RecountResponse(BaseModel):
    course_id: UUID
    total_items: int


# ==============================================================================
# Review Schemas
# ==============================================================================


class ReviewRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class ReviewResponse(BaseModel):
    course_id: UUID
    student_id: UUID
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, review: CourseReview) -> "ReviewResponse":
        return cls(
            course_id=review.course_id,
            student_id=review.student_id,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
            updated_at=review.updated_at,
        )


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    average_rating: float
    total: int
