"""Tests for the course service outline operations."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learnhub.core.exceptions import AggregateNotFoundError
from learnhub.core.locks import AggregateLocks
from learnhub.courses.models import ContentItem, Course, CourseStatus, Section
from learnhub.courses.schemas import (
    CreateCourseRequest,
    CreateItemRequest,
    CreateSectionRequest,
    UpdateCourseRequest,
)
from learnhub.courses.service import (
    CourseNotFoundError,
    CourseService,
    ItemNotFoundError,
    SectionNotFoundError,
    course_matches,
)


@pytest.fixture
def course() -> Course:
    course = Course(title="Async Python", creator_id=uuid4())
    section = Section(course_id=course.id, title="Basics")
    course.sections = [section]
    course.items = [
        ContentItem(course_id=course.id, section_id=section.section_id, title="Loop"),
        ContentItem(
            course_id=course.id, section_id=section.section_id, title="Tasks", position=1
        ),
    ]
    course.recount_total_items()
    return course


@pytest.fixture
def course_service(
    mock_session: Mock, locks: AggregateLocks, course: Course
) -> CourseService:
    service = CourseService(session=mock_session, keyspace="test_keyspace", locks=locks)
    service.require_course = AsyncMock(return_value=course)
    return service


def executed(mock_session: Mock, statement: Mock) -> list[list]:
    """Parameters of every execution of one prepared statement."""
    return [c.args[1] for c in mock_session.aexecute.call_args_list if c.args[0] is statement]


class TestCourseLoading:
    """Test reads of the course aggregate."""

    @pytest.mark.asyncio
    async def test_deleted_course_is_missing(
        self, mock_session: Mock, locks: AggregateLocks, make_result: type
    ) -> None:
        # Arrange
        service = CourseService(session=mock_session, keyspace="test_keyspace", locks=locks)
        mock_session.aexecute = AsyncMock(
            return_value=make_result([SimpleNamespace(is_deleted=True)])
        )

        # Act / Assert
        assert await service.get_course(uuid4()) is None
        with pytest.raises(CourseNotFoundError) as exc_info:
            await service.require_course(uuid4())
        assert isinstance(exc_info.value, AggregateNotFoundError)
        assert exc_info.value.code == "aggregate_not_found"
        assert exc_info.value.kind == "course"


class TestCourseCrud:
    """Test course creation and status changes."""

    @pytest.mark.asyncio
    async def test_create_course_writes_lookups(
        self, course_service: CourseService, mock_session: Mock
    ) -> None:
        creator_id = uuid4()
        course = await course_service.create_course(
            CreateCourseRequest(title="New Course"), creator_id
        )

        assert course.creator_id == creator_id
        assert course.status == CourseStatus.DRAFT.value
        assert executed(mock_session, course_service._insert_by_creator) == [
            [creator_id, course.created_at, course.id]
        ]
        assert executed(mock_session, course_service._insert_by_status) == [
            ["draft", course.created_at, course.id]
        ]

    @pytest.mark.asyncio
    async def test_publish_moves_catalog_entry(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        updated = await course_service.update_course(
            course.id, UpdateCourseRequest(status=CourseStatus.PUBLISHED)
        )

        assert updated.is_published
        assert executed(mock_session, course_service._delete_by_status)[0][0] == "draft"
        assert executed(mock_session, course_service._insert_by_status)[0][0] == "published"

    @pytest.mark.asyncio
    async def test_delete_is_soft(
        self, course_service: CourseService, course: Course
    ) -> None:
        await course_service.delete_course(course.id)
        assert course.is_deleted is True
        assert course.deleted_at is not None


class TestOutline:
    """Test section and item changes keep total_items in sync."""

    @pytest.mark.asyncio
    async def test_add_item_recounts(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        section = course.sections[0]

        item = await course_service.add_item(
            course.id, section.section_id, CreateItemRequest(title="Gather")
        )

        assert item.position == 2
        assert course.total_items == 3
        totals = executed(mock_session, course_service._update_total_items)
        assert totals[-1][0] == 3

    @pytest.mark.asyncio
    async def test_add_section_appends(
        self, course_service: CourseService, course: Course
    ) -> None:
        section = await course_service.add_section(
            course.id, CreateSectionRequest(title="Advanced")
        )
        assert section.position == 1
        assert course.total_items == 2

    @pytest.mark.asyncio
    async def test_remove_item_recounts(
        self, course_service: CourseService, course: Course
    ) -> None:
        total = await course_service.remove_item(course.id, course.items[0].item_id)
        assert total == 1
        assert course.items[0].is_active is False

    @pytest.mark.asyncio
    async def test_remove_section_drops_its_items(
        self, course_service: CourseService, course: Course
    ) -> None:
        total = await course_service.remove_section(course.id, course.sections[0].section_id)
        assert total == 0

    @pytest.mark.asyncio
    async def test_remove_unknown_item(
        self, course_service: CourseService, course: Course
    ) -> None:
        with pytest.raises(ItemNotFoundError):
            await course_service.remove_item(course.id, uuid4())

    @pytest.mark.asyncio
    async def test_add_item_to_inactive_section(
        self, course_service: CourseService, course: Course
    ) -> None:
        course.sections[0].is_active = False
        with pytest.raises(SectionNotFoundError):
            await course_service.add_item(
                course.id, course.sections[0].section_id, CreateItemRequest(title="X")
            )

    @pytest.mark.asyncio
    async def test_recount_persists_value(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        course.items[1].is_active = False
        assert await course_service.recount_total_items(course.id) == 1
        assert executed(mock_session, course_service._update_total_items)[-1][0] == 1


class TestCatalogSearch:
    """Free-text catalog filtering."""

    def test_matches_description_and_category(self) -> None:
        course = Course(
            title="Intro",
            creator_id=uuid4(),
            description="Build APIs with FastAPI",
            category="Programação",
        )
        assert course_matches(course, "fastapi")
        assert course_matches(course, "programacao")
        assert course_matches(course, None)
        assert course_matches(course, "cooking") is False

    @pytest.mark.asyncio
    async def test_list_courses_query(
        self, mock_session: Mock, locks: AggregateLocks, make_result: type
    ) -> None:
        service = CourseService(session=mock_session, keyspace="test_keyspace", locks=locks)
        published = CourseStatus.PUBLISHED.value
        courses = [
            Course(title="Knife Skills", creator_id=uuid4(), status=published, category="Cooking"),
            Course(
                title="Weeknight Meals",
                creator_id=uuid4(),
                status=published,
                description="Simple cooking for busy people",
            ),
            Course(title="Async Python", creator_id=uuid4(), status=published),
        ]
        by_id = {c.id: c for c in courses}
        mock_session.aexecute = AsyncMock(
            return_value=make_result([SimpleNamespace(course_id=c.id) for c in courses])
        )
        service._load_course_row = AsyncMock(side_effect=lambda cid: by_id[cid])

        matches, has_more = await service.list_courses(q="cooking")

        assert [c.title for c in matches] == ["Knife Skills", "Weeknight Meals"]
        assert has_more is False
