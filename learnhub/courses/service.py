"""Course authoring service layer.

Business logic for:
- Course CRUD, catalog listing and soft delete
- Section and content item management
- ``total_items`` recount whenever the outline changes
- Reviews

Every outline mutation holds the course's aggregate lock, so the recount
always sees the outline it just wrote.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.core.exceptions import AggregateNotFoundError, DomainError
from learnhub.courses.models import (
    ContentItem,
    Course,
    CourseReview,
    CourseStatus,
    Section,
    average_rating,
)
from learnhub.courses.schemas import (
    CreateCourseRequest,
    CreateItemRequest,
    CreateSectionRequest,
    ReviewRequest,
    UpdateCourseRequest,
    UpdateItemRequest,
    UpdateSectionRequest,
)
from learnhub.utils import contains_text, generate_slug, utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.core.locks import AggregateLocks

logger = structlog.get_logger(__name__)

COURSE_LOCK = "course"

# Upper bound of catalog rows scanned before in-memory filtering
CATALOG_SCAN_LIMIT = 1000


def course_matches(course: Course, q: str | None) -> bool:
    """Free-text match on title, description or category."""
    return any(
        contains_text(field, q) for field in (course.title, course.description, course.category)
    )


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(DomainError):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        super().__init__(message, code)


class SectionNotFoundError(CourseError):
    """Section missing or removed from the outline."""

    def __init__(self, message: str = "Section not found"):
        super().__init__(message, "section_not_found")


class ItemNotFoundError(CourseError):
    """Content item is not an active item of an active section."""

    def __init__(self, message: str = "Content item not found"):
        super().__init__(message, "item_not_found")


class CourseNotFoundError(AggregateNotFoundError):
    """Course missing or soft-deleted."""

    def __init__(self, course_id: UUID):
        super().__init__("course", course_id)


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for courses and their outline."""

    def __init__(self, session: "Session", keyspace: str, locks: "AggregateLocks"):
        """Initialize with Cassandra session and the shared aggregate locks."""
        self.session = session
        self.keyspace = keyspace
        self.locks = locks
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Course rows
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._upsert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, slug, description, category, level, price, status,
             creator_id, total_items, is_deleted, deleted_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_total_items = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses SET total_items = ?, updated_at = ?
            WHERE id = ?
        """)

        # Outline
        self._get_sections = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_sections WHERE course_id = ?"
        )
        self._upsert_section = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_sections
            (course_id, section_id, title, description, position, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_items = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_items WHERE course_id = ?"
        )
        self._upsert_item = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_items
            (course_id, item_id, section_id, title, video_url, duration_seconds,
             position, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Lookups
        self._insert_by_creator = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_creator
            (creator_id, created_at, course_id) VALUES (?, ?, ?)
        """)
        self._get_by_creator = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.courses_by_creator
            WHERE creator_id = ? LIMIT ?
        """)
        self._insert_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_status
            (status, created_at, course_id) VALUES (?, ?, ?)
        """)
        self._delete_by_status = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_status
            WHERE status = ? AND created_at = ? AND course_id = ?
        """)
        self._get_by_status = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.courses_by_status
            WHERE status = ? LIMIT ?
        """)

        # Reviews
        self._upsert_review = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_reviews
            (course_id, student_id, rating, comment, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._get_review = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_reviews
            WHERE course_id = ? AND student_id = ?
        """)
        self._get_reviews = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_reviews WHERE course_id = ?"
        )

    # ==========================================================================
    # Loading and persistence
    # ==========================================================================

    async def _load_course_row(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        if row is None or row.is_deleted:
            return None
        return Course.from_row(row)

    async def get_course(self, course_id: UUID) -> Course | None:
        """Load a course with its full outline; None if missing or deleted."""
        course = await self._load_course_row(course_id)
        if course is None:
            return None

        section_rows = await self.session.aexecute(self._get_sections, [course_id])
        item_rows = await self.session.aexecute(self._get_items, [course_id])
        course.sections = [Section.from_row(r) for r in section_rows]
        course.items = [ContentItem.from_row(r) for r in item_rows]
        return course

    async def require_course(self, course_id: UUID) -> Course:
        """Load a course or raise ``CourseNotFoundError``."""
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)
        return course

    async def _save_course(self, course: Course) -> None:
        await self.session.aexecute(
            self._upsert_course,
            [
                course.id,
                course.title,
                course.slug,
                course.description,
                course.category,
                course.level,
                course.price,
                course.status,
                course.creator_id,
                course.total_items,
                course.is_deleted,
                course.deleted_at,
                course.created_at,
                course.updated_at,
            ],
        )

    async def _save_section(self, section: Section) -> None:
        await self.session.aexecute(
            self._upsert_section,
            [
                section.course_id,
                section.section_id,
                section.title,
                section.description,
                section.position,
                section.is_active,
                section.created_at,
            ],
        )

    async def _save_item(self, item: ContentItem) -> None:
        await self.session.aexecute(
            self._upsert_item,
            [
                item.course_id,
                item.item_id,
                item.section_id,
                item.title,
                item.video_url,
                item.duration_seconds,
                item.position,
                item.is_active,
                item.created_at,
            ],
        )

    async def _persist_total_items(self, course: Course) -> int:
        previous = course.total_items
        total = course.recount_total_items()
        await self.session.aexecute(
            self._update_total_items, [total, utcnow(), course.id]
        )
        if total != previous:
            logger.info(
                "course_total_items_changed",
                course_id=str(course.id),
                previous=previous,
                total_items=total,
            )
        return total

    # ==========================================================================
    # Course CRUD
    # ==========================================================================

    async def create_course(self, data: CreateCourseRequest, creator_id: UUID) -> Course:
        """Create a draft course owned by ``creator_id``."""
        course = Course(
            title=data.title,
            creator_id=creator_id,
            description=data.description,
            category=data.category,
            level=data.level.value,
            price=data.price,
        )
        await self._save_course(course)
        await self.session.aexecute(
            self._insert_by_creator, [creator_id, course.created_at, course.id]
        )
        await self.session.aexecute(
            self._insert_by_status, [course.status, course.created_at, course.id]
        )

        logger.info("course_created", course_id=str(course.id), creator_id=str(creator_id))
        return course

    async def list_courses(
        self,
        status: CourseStatus = CourseStatus.PUBLISHED,
        limit: int = 20,
        category: str | None = None,
        level: str | None = None,
        q: str | None = None,
    ) -> tuple[list[Course], bool]:
        """List courses of one status, newest first.

        Category and level match exactly; ``q`` is a case-insensitive
        substring match on the title, description or category.

        Returns:
            Tuple of (courses, has_more)
        """
        rows = await self.session.aexecute(
            self._get_by_status, [status.value, CATALOG_SCAN_LIMIT]
        )

        matches: list[Course] = []
        for row in rows:
            course = await self._load_course_row(row.course_id)
            if course is None or course.status != status.value:
                continue
            if category and (course.category or "").lower() != category.lower():
                continue
            if level and course.level != level:
                continue
            if not course_matches(course, q):
                continue
            matches.append(course)
            if len(matches) > limit:
                break

        return matches[:limit], len(matches) > limit

    async def list_courses_by_creator(self, creator_id: UUID, limit: int = 50) -> list[Course]:
        """List a creator's courses (all statuses), newest first."""
        rows = await self.session.aexecute(self._get_by_creator, [creator_id, limit])
        courses = []
        for row in rows:
            course = await self._load_course_row(row.course_id)
            if course is not None:
                courses.append(course)
        return courses

    async def update_course(self, course_id: UUID, data: UpdateCourseRequest) -> Course:
        """Apply a partial update; a status change moves the catalog entry."""
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            previous_status = course.status

            if data.title is not None:
                course.title = data.title.strip()
                course.slug = generate_slug(data.title)
            if data.description is not None:
                course.description = data.description
            if data.category is not None:
                course.category = data.category
            if data.level is not None:
                course.level = data.level.value
            if data.price is not None:
                course.price = data.price
            if data.status is not None:
                course.status = data.status.value

            course.updated_at = utcnow()
            await self._save_course(course)

            if course.status != previous_status:
                await self.session.aexecute(
                    self._delete_by_status,
                    [previous_status, course.created_at, course.id],
                )
                await self.session.aexecute(
                    self._insert_by_status, [course.status, course.created_at, course.id]
                )
                logger.info(
                    "course_status_changed",
                    course_id=str(course_id),
                    previous=previous_status,
                    status=course.status,
                )

        return course

    async def delete_course(self, course_id: UUID) -> None:
        """Soft delete: the row stays, flagged, and leaves the catalog."""
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            now = utcnow()
            course.is_deleted = True
            course.deleted_at = now
            course.updated_at = now
            await self._save_course(course)
            await self.session.aexecute(
                self._delete_by_status, [course.status, course.created_at, course.id]
            )

        logger.info("course_deleted", course_id=str(course_id))

    # ==========================================================================
    # Outline: sections
    # ==========================================================================

    async def add_section(self, course_id: UUID, data: CreateSectionRequest) -> Section:
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            section = Section(
                course_id=course_id,
                title=data.title,
                description=data.description,
                position=(
                    data.position
                    if data.position is not None
                    else course.next_section_position()
                ),
            )
            await self._save_section(section)
            course.sections.append(section)
            await self._persist_total_items(course)

        logger.info(
            "section_added", course_id=str(course_id), section_id=str(section.section_id)
        )
        return section

    async def update_section(
        self, course_id: UUID, section_id: UUID, data: UpdateSectionRequest
    ) -> Section:
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            section = course.get_section(section_id)
            if section is None or not section.is_active:
                raise SectionNotFoundError

            if data.title is not None:
                section.title = data.title.strip()
            if data.description is not None:
                section.description = data.description
            if data.position is not None:
                section.position = data.position
            await self._save_section(section)

        return section

    async def remove_section(self, course_id: UUID, section_id: UUID) -> int:
        """Deactivate a section; its items stop counting. Returns new total."""
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            section = course.get_section(section_id)
            if section is None or not section.is_active:
                raise SectionNotFoundError

            section.is_active = False
            await self._save_section(section)
            total = await self._persist_total_items(course)

        logger.info(
            "section_removed", course_id=str(course_id), section_id=str(section_id)
        )
        return total

    # ==========================================================================
    # Outline: content items
    # ==========================================================================

    async def add_item(
        self, course_id: UUID, section_id: UUID, data: CreateItemRequest
    ) -> ContentItem:
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            section = course.get_section(section_id)
            if section is None or not section.is_active:
                raise SectionNotFoundError

            item = ContentItem(
                course_id=course_id,
                section_id=section_id,
                title=data.title,
                video_url=data.video_url,
                duration_seconds=data.duration_seconds,
                position=(
                    data.position
                    if data.position is not None
                    else course.next_item_position(section_id)
                ),
            )
            await self._save_item(item)
            course.items.append(item)
            await self._persist_total_items(course)

        logger.info("item_added", course_id=str(course_id), item_id=str(item.item_id))
        return item

    async def update_item(
        self, course_id: UUID, item_id: UUID, data: UpdateItemRequest
    ) -> ContentItem:
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            item = course.find_active_item(item_id)
            if item is None:
                raise ItemNotFoundError

            if data.title is not None:
                item.title = data.title.strip()
            if data.video_url is not None:
                item.video_url = data.video_url
            if data.duration_seconds is not None:
                item.duration_seconds = data.duration_seconds
            if data.position is not None:
                item.position = data.position
            await self._save_item(item)

        return item

    async def remove_item(self, course_id: UUID, item_id: UUID) -> int:
        """Deactivate an item. Returns the recounted total."""
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            item = course.find_active_item(item_id)
            if item is None:
                raise ItemNotFoundError

            item.is_active = False
            await self._save_item(item)
            total = await self._persist_total_items(course)

        logger.info("item_removed", course_id=str(course_id), item_id=str(item_id))
        return total

    async def recount_total_items(self, course_id: UUID) -> int:
        """Walk the active outline, persist ``total_items`` and return it.

        Cached enrollment progress is not touched here; readers recompute, or
        an explicit bulk recompute refreshes the stored values.
        """
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.require_course(course_id)
            return await self._persist_total_items(course)

    # ==========================================================================
    # Reviews
    # ==========================================================================

    async def add_review(
        self, course_id: UUID, student_id: UUID, data: ReviewRequest
    ) -> CourseReview:
        """Create or replace the student's review. Caller checks enrollment."""
        await self.require_course(course_id)

        result = await self.session.aexecute(self._get_review, [course_id, student_id])
        existing = result.one()
        now = utcnow()
        review = CourseReview(
            course_id=course_id,
            student_id=student_id,
            rating=data.rating,
            comment=data.comment,
            created_at=existing.created_at if existing else now,
            updated_at=now if existing else None,
        )
        await self.session.aexecute(
            self._upsert_review,
            [
                review.course_id,
                review.student_id,
                review.rating,
                review.comment,
                review.created_at,
                review.updated_at,
            ],
        )

        logger.info(
            "course_reviewed",
            course_id=str(course_id),
            student_id=str(student_id),
            rating=data.rating,
            replaced=existing is not None,
        )
        return review

    async def list_reviews(self, course_id: UUID) -> tuple[list[CourseReview], float]:
        """Return (reviews, average rating)."""
        rows = await self.session.aexecute(self._get_reviews, [course_id])
        reviews = [CourseReview.from_row(r) for r in rows]
        return reviews, average_rating(reviews)
