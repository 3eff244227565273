"""Database models for course authoring.

Cassandra table definitions for:
- Courses: Main course table (soft-deleted by flag)
- Sections and content items: partitioned by course_id so a single
  partition read loads the whole course outline
- Reviews: one per (course, student)
- Lookup tables: courses by creator and by publication status

The Course entity is the aggregate root for its outline. ``total_items`` is a
cached count recomputed by ``recount_total_items`` whenever the outline
changes.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.utils import ensure_utc_aware, generate_slug, utcnow


class CourseStatus(str, Enum):
    """Course publication status."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CourseLevel(str, Enum):
    """Course difficulty level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    slug TEXT,
    description TEXT,
    category TEXT,
    level TEXT,
    price DECIMAL,
    status TEXT,
    creator_id UUID,
    total_items INT,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_SECTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_sections (
    course_id UUID,
    section_id UUID,
    title TEXT,
    description TEXT,
    position INT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY (course_id, section_id)
)
"""

COURSE_ITEMS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_items (
    course_id UUID,
    item_id UUID,
    section_id UUID,
    title TEXT,
    video_url TEXT,
    duration_seconds INT,
    position INT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY (course_id, item_id)
)
"""

COURSE_REVIEWS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_reviews (
    course_id UUID,
    student_id UUID,
    rating INT,
    comment TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, student_id)
)
"""

# Lookup: "which courses did this creator author?"
COURSES_BY_CREATOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_creator (
    creator_id UUID,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY (creator_id, created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

# Lookup: catalog listing by status, newest first
COURSES_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_status (
    status TEXT,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY (status, created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSE_SECTIONS_TABLE_CQL,
    COURSE_ITEMS_TABLE_CQL,
    COURSE_REVIEWS_TABLE_CQL,
    COURSES_BY_CREATOR_TABLE_CQL,
    COURSES_BY_STATUS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Section:
    """An ordered group of content items inside a course."""

    def __init__(
        self,
        course_id: UUID,
        title: str,
        section_id: UUID | None = None,
        description: str | None = None,
        position: int = 0,
        is_active: bool = True,
        created_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.section_id = section_id or uuid4()
        self.title = title.strip()
        self.description = description
        self.position = position
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Section":
        return cls(
            course_id=row.course_id,
            section_id=row.section_id,
            title=row.title or "",
            description=row.description,
            position=row.position or 0,
            is_active=row.is_active if row.is_active is not None else True,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Section {self.title!r} pos={self.position} active={self.is_active}>"


class ContentItem:
    """A single lecture (usually a video) inside a section."""

    def __init__(
        self,
        course_id: UUID,
        section_id: UUID,
        title: str,
        item_id: UUID | None = None,
        video_url: str | None = None,
        duration_seconds: int | None = None,
        position: int = 0,
        is_active: bool = True,
        created_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.section_id = section_id
        self.item_id = item_id or uuid4()
        self.title = title.strip()
        self.video_url = video_url
        self.duration_seconds = duration_seconds
        self.position = position
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "ContentItem":
        return cls(
            course_id=row.course_id,
            section_id=row.section_id,
            item_id=row.item_id,
            title=row.title or "",
            video_url=row.video_url,
            duration_seconds=row.duration_seconds,
            position=row.position or 0,
            is_active=row.is_active if row.is_active is not None else True,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<ContentItem {self.title!r} pos={self.position} active={self.is_active}>"


class Course:
    """Course aggregate: metadata plus its outline of sections and items.

    Attributes:
        id: Unique identifier (UUID)
        title: Course title
        slug: URL-friendly identifier
        description: Course description
        category: Free-form catalog category
        level: Difficulty (beginner, intermediate, advanced)
        price: Price; zero or less means the course is free
        status: Publication status (draft, published, archived)
        creator_id: User who authored the course
        total_items: Cached number of active items in active sections
        is_deleted: Soft delete flag
        sections: Loaded outline sections (active and inactive)
        items: Loaded content items (active and inactive)
    """

    def __init__(
        self,
        title: str,
        creator_id: UUID,
        id: UUID | None = None,
        slug: str | None = None,
        description: str | None = None,
        category: str | None = None,
        level: str = CourseLevel.BEGINNER.value,
        price: Decimal = Decimal(0),
        status: str = CourseStatus.DRAFT.value,
        total_items: int = 0,
        is_deleted: bool = False,
        deleted_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        sections: list[Section] | None = None,
        items: list[ContentItem] | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.slug = slug or generate_slug(title)
        self.description = description
        self.category = category
        self.level = level
        self.price = price
        self.status = status
        self.creator_id = creator_id
        self.total_items = total_items
        self.is_deleted = is_deleted
        self.deleted_at = ensure_utc_aware(deleted_at)
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at)
        self.sections: list[Section] = sections or []
        self.items: list[ContentItem] = items or []

    @property
    def is_free(self) -> bool:
        return self.price <= 0

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatus.PUBLISHED.value

    # --------------------------------------------------------------------------
    # Outline queries
    # --------------------------------------------------------------------------

    def active_sections(self) -> list[Section]:
        """Active sections in display order."""
        return sorted(
            (s for s in self.sections if s.is_active),
            key=lambda s: (s.position, s.created_at),
        )

    def get_section(self, section_id: UUID) -> Section | None:
        return next((s for s in self.sections if s.section_id == section_id), None)

    def get_item(self, item_id: UUID) -> ContentItem | None:
        return next((i for i in self.items if i.item_id == item_id), None)

    def items_in_section(self, section_id: UUID, active_only: bool = True) -> list[ContentItem]:
        """Items of one section in display order."""
        return sorted(
            (
                i
                for i in self.items
                if i.section_id == section_id and (i.is_active or not active_only)
            ),
            key=lambda i: (i.position, i.created_at),
        )

    def active_items(self) -> list[ContentItem]:
        """Items that count toward progress: active, inside an active section."""
        active = []
        for section in self.active_sections():
            active.extend(self.items_in_section(section.section_id))
        return active

    def active_item_ids(self) -> set[UUID]:
        return {item.item_id for item in self.active_items()}

    def find_active_item(self, item_id: UUID) -> ContentItem | None:
        """Return the item only if it is active and in an active section."""
        item = self.get_item(item_id)
        if item is None or not item.is_active:
            return None
        section = self.get_section(item.section_id)
        if section is None or not section.is_active:
            return None
        return item

    def next_section_position(self) -> int:
        return max((s.position for s in self.sections), default=-1) + 1

    def next_item_position(self, section_id: UUID) -> int:
        positions = [i.position for i in self.items if i.section_id == section_id]
        return max(positions, default=-1) + 1

    # --------------------------------------------------------------------------
    # Derived counters
    # --------------------------------------------------------------------------

    def recount_total_items(self) -> int:
        """Recompute ``total_items`` from the active outline and return it."""
        self.total_items = len(self.active_items())
        return self.total_items

    @classmethod
    def from_row(
        cls,
        row: Any,
        sections: list[Section] | None = None,
        items: list[ContentItem] | None = None,
    ) -> "Course":
        """Create Course instance from a Cassandra row plus its outline rows."""
        return cls(
            id=row.id,
            title=row.title or "",
            slug=row.slug,
            description=row.description,
            category=row.category,
            level=row.level or CourseLevel.BEGINNER.value,
            price=row.price if row.price is not None else Decimal(0),
            status=row.status or CourseStatus.DRAFT.value,
            creator_id=row.creator_id,
            total_items=row.total_items or 0,
            is_deleted=bool(row.is_deleted),
            deleted_at=row.deleted_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
            sections=sections,
            items=items,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the course row (without outline) to a dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "category": self.category,
            "level": self.level,
            "price": self.price,
            "status": self.status,
            "creator_id": self.creator_id,
            "total_items": self.total_items,
            "is_deleted": self.is_deleted,
            "deleted_at": self.deleted_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.title!r} {self.status} items={self.total_items}>"


class CourseReview:
    """A student's rating of a course (1-5)."""

    def __init__(
        self,
        course_id: UUID,
        student_id: UUID,
        rating: int,
        comment: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.student_id = student_id
        self.rating = rating
        self.comment = comment
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "CourseReview":
        return cls(
            course_id=row.course_id,
            student_id=row.student_id,
            rating=row.rating,
            comment=row.comment,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


def average_rating(reviews: list[CourseReview]) -> float:
    """Mean rating rounded to one decimal, 0 when there are no reviews."""
    if not reviews:
        return 0.0
    return round(sum(r.rating for r in reviews) / len(reviews), 1)
