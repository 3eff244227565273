"""Tests for student and creator dashboards."""

from collections.abc import Callable
from datetime import timedelta
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from learnhub.core.locks import AggregateLocks
from learnhub.courses.models import ContentItem, Course, CourseStatus, Section
from learnhub.courses.service import CourseService
from learnhub.dashboard.schemas import CreatorDashboardResponse, StudentDashboardResponse
from learnhub.dashboard.service import DashboardService
from learnhub.enrollments.models import Enrollment
from learnhub.enrollments.service import EnrollmentService
from learnhub.utils import utcnow


def make_course(creator_id: UUID, items: int, title: str = "Course") -> Course:
    course = Course(title=title, creator_id=creator_id, status=CourseStatus.PUBLISHED.value)
    section = Section(course_id=course.id, title="Only section")
    course.sections = [section]
    course.items = [
        ContentItem(course.id, section.section_id, f"Item {n}", position=n)
        for n in range(items)
    ]
    course.recount_total_items()
    return course


def enroll(course: Course, student_id: UUID, completed: int, days_ago: int = 0) -> Enrollment:
    ids = [item.item_id for item in course.items[:completed]]
    return Enrollment(
        course_id=course.id,
        student_id=student_id,
        enrolled_at=utcnow() - timedelta(days=days_ago),
        completed_items=set(ids),
        # Cached value deliberately wrong; dashboards recompute
        progress_percent=7,
    )


@pytest.fixture
def course_service() -> Mock:
    return Mock(spec=CourseService)


@pytest.fixture
def enrollment_service() -> Mock:
    return Mock(spec=EnrollmentService)


@pytest.fixture
def dashboard_service(course_service: Mock, enrollment_service: Mock) -> DashboardService:
    return DashboardService(course_service, enrollment_service)


class TestStudentDashboard:
    """Test the student's course overview."""

    @pytest.mark.asyncio
    async def test_counts_and_average(
        self,
        dashboard_service: DashboardService,
        course_service: Mock,
        enrollment_service: Mock,
        student_id: UUID,
        creator_id: UUID,
    ) -> None:
        finished = make_course(creator_id, items=2, title="Finished")
        halfway = make_course(creator_id, items=4, title="Halfway")
        enrollments = {
            finished.id: enroll(finished, student_id, completed=2, days_ago=10),
            halfway.id: enroll(halfway, student_id, completed=2, days_ago=1),
        }
        courses = {finished.id: finished, halfway.id: halfway}
        enrollment_service.list_student_enrollments = AsyncMock(
            return_value=list(enrollments.values())
        )
        course_service.get_course = AsyncMock(side_effect=lambda cid: courses[cid])

        dashboard = await dashboard_service.get_student_dashboard(student_id)

        assert [c.title for c in dashboard.courses] == ["Halfway", "Finished"]
        assert [c.progress_percent for c in dashboard.courses] == [50, 100]
        assert dashboard.enrolled_count == 2
        assert dashboard.completed_count == 1
        assert dashboard.in_progress_count == 1
        assert dashboard.average_progress == 75.0
        enrollment_service.list_student_enrollments.assert_awaited_once_with(
            student_id, reconcile=True
        )

    @pytest.mark.asyncio
    async def test_skips_deleted_course(
        self,
        dashboard_service: DashboardService,
        course_service: Mock,
        enrollment_service: Mock,
        student_id: UUID,
    ) -> None:
        orphan = Enrollment(course_id=uuid4(), student_id=student_id)
        enrollment_service.list_student_enrollments = AsyncMock(return_value=[orphan])
        course_service.get_course = AsyncMock(return_value=None)

        dashboard = await dashboard_service.get_student_dashboard(student_id)

        assert dashboard.courses == []
        assert dashboard.average_progress == 0.0

    @pytest.mark.asyncio
    async def test_enrollment_missing_from_index(
        self,
        mock_session: Mock,
        locks: AggregateLocks,
        make_result: type,
        course_service: Mock,
        student_id: UUID,
        creator_id: UUID,
    ) -> None:
        course = make_course(creator_id, items=4)
        enrollment = enroll(course, student_id, completed=1)
        enrollment_service = EnrollmentService(
            session=mock_session,
            keyspace="test_keyspace",
            locks=locks,
            course_service=course_service,
        )
        index: dict[UUID, SimpleNamespace] = {}

        async def aexecute(statement: Any, params: list) -> Any:
            if statement is enrollment_service._get_enrollments_for_student:
                return make_result([SimpleNamespace(**enrollment.to_dict())])
            if statement is enrollment_service._get_student_index:
                return make_result(list(index.values()))
            if statement is enrollment_service._upsert_student_index:
                index[params[1]] = SimpleNamespace(course_id=params[1], progress_percent=params[3])
                return make_result([])
            raise AssertionError(f"unexpected statement {statement}")

        mock_session.aexecute = AsyncMock(side_effect=aexecute)
        course_service.get_course = AsyncMock(return_value=course)
        dashboard_service = DashboardService(course_service, enrollment_service)

        dashboard = await dashboard_service.get_student_dashboard(student_id)

        assert [c.course_id for c in dashboard.courses] == [course.id]
        assert dashboard.courses[0].progress_percent == 25
        assert course.id in index


class TestCreatorDashboard:
    """Test per-course statistics for creators."""

    @pytest.mark.asyncio
    async def test_course_stats(
        self,
        dashboard_service: DashboardService,
        course_service: Mock,
        enrollment_service: Mock,
        creator_id: UUID,
    ) -> None:
        course = make_course(creator_id, items=4)
        enrollments = [
            enroll(course, uuid4(), completed=4, days_ago=60),
            enroll(course, uuid4(), completed=1, days_ago=2),
            enroll(course, uuid4(), completed=0, days_ago=0),
        ]
        course_service.list_courses_by_creator = AsyncMock(return_value=[course])
        course_service.get_course = AsyncMock(return_value=course)
        enrollment_service.list_course_enrollments = AsyncMock(return_value=enrollments)

        dashboard = await dashboard_service.get_creator_dashboard(creator_id, recent_days=30)

        stats = dashboard.courses[0]
        assert stats.total_items == 4
        assert stats.enrollment_count == 3
        assert stats.completion_count == 1
        # (100 + 25 + 0) / 3
        assert stats.average_progress == 41.7
        assert stats.recent_enrollments == 2
        assert dashboard.total_enrollments == 3
        assert dashboard.recent_days == 30

    @pytest.mark.asyncio
    async def test_no_courses(
        self,
        dashboard_service: DashboardService,
        course_service: Mock,
        creator_id: UUID,
    ) -> None:
        course_service.list_courses_by_creator = AsyncMock(return_value=[])

        dashboard = await dashboard_service.get_creator_dashboard(creator_id)

        assert dashboard.total_courses == 0
        assert dashboard.total_completions == 0


class TestDashboardRouter:
    """Route access checks."""

    def test_service_unavailable(
        self,
        client: TestClient,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.get("/v1/dashboard/student", headers=auth_headers(student_id))
        assert response.status_code == 503

    def test_creator_dashboard_requires_creator(
        self,
        app: FastAPI,
        client: TestClient,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        app.state.dashboard_service = Mock(spec=DashboardService)
        response = client.get("/v1/dashboard/creator", headers=auth_headers(student_id))
        assert response.status_code == 403

    def test_student_dashboard(
        self,
        app: FastAPI,
        client: TestClient,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        service = Mock(spec=DashboardService)
        service.get_student_dashboard = AsyncMock(
            return_value=StudentDashboardResponse(
                courses=[],
                enrolled_count=0,
                completed_count=0,
                in_progress_count=0,
                average_progress=0.0,
            )
        )
        app.state.dashboard_service = service

        response = client.get("/v1/dashboard/student", headers=auth_headers(student_id))

        assert response.status_code == 200
        assert response.json()["enrolled_count"] == 0
        service.get_student_dashboard.assert_awaited_once_with(student_id)

    def test_creator_dashboard_recent_days(
        self,
        app: FastAPI,
        client: TestClient,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        service = Mock(spec=DashboardService)
        service.get_creator_dashboard = AsyncMock(
            return_value=CreatorDashboardResponse(
                courses=[],
                total_courses=0,
                total_enrollments=0,
                total_completions=0,
                recent_enrollments=0,
                recent_days=7,
            )
        )
        app.state.dashboard_service = service

        response = client.get(
            "/v1/dashboard/creator?recent_days=7", headers=auth_headers(creator_id, "creator")
        )

        assert response.status_code == 200
        service.get_creator_dashboard.assert_awaited_once_with(creator_id, 7)
