"""Tests for course endpoints with the service mocked out."""

from collections.abc import Callable
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from learnhub.courses.models import Course, CourseStatus, Section
from learnhub.courses.service import CourseService, SectionNotFoundError


@pytest.fixture
def draft(creator_id: UUID) -> Course:
    return Course(title="Draft Course", creator_id=creator_id)


@pytest.fixture
def course_service(app: FastAPI, draft: Course) -> Mock:
    service = Mock(spec=CourseService)
    service.get_course = AsyncMock(return_value=draft)
    service.list_reviews = AsyncMock(return_value=([], 0.0))
    app.state.course_service = service
    return service


class TestCourseVisibility:
    """Drafts are hidden from everyone but their creator and admins."""

    def test_anonymous_cannot_see_draft(
        self, client: TestClient, course_service: Mock, draft: Course
    ) -> None:
        response = client.get(f"/v1/courses/{draft.id}")
        assert response.status_code == 404

    def test_creator_sees_draft_outline(
        self,
        client: TestClient,
        course_service: Mock,
        draft: Course,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        draft.sections = [Section(course_id=draft.id, title="Only section")]

        response = client.get(
            f"/v1/courses/{draft.id}", headers=auth_headers(creator_id, "creator")
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "draft"
        assert [s["title"] for s in data["sections"]] == ["Only section"]

    def test_published_is_public(
        self, client: TestClient, course_service: Mock, draft: Course
    ) -> None:
        draft.status = CourseStatus.PUBLISHED.value
        response = client.get(f"/v1/courses/{draft.id}")
        assert response.status_code == 200
        assert response.json()["is_free"] is True


class TestCourseAuthoring:
    """Only the course creator or an admin edits the outline."""

    def test_create_requires_creator_role(
        self,
        client: TestClient,
        course_service: Mock,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.post(
            "/v1/courses", json={"title": "Mine"}, headers=auth_headers(student_id)
        )
        assert response.status_code == 403

    def test_create_course(
        self,
        client: TestClient,
        course_service: Mock,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        course_service.create_course = AsyncMock(
            return_value=Course(title="Mine", creator_id=creator_id)
        )

        response = client.post(
            "/v1/courses", json={"title": "Mine"}, headers=auth_headers(creator_id, "creator")
        )

        assert response.status_code == 201
        assert response.json()["creator_id"] == str(creator_id)

    def test_other_creator_forbidden(
        self,
        client: TestClient,
        course_service: Mock,
        draft: Course,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.post(
            f"/v1/courses/{draft.id}/sections",
            json={"title": "Hijack"},
            headers=auth_headers(uuid4(), "creator"),
        )
        assert response.status_code == 403
        course_service.add_section.assert_not_called()

    def test_admin_may_edit(
        self,
        client: TestClient,
        course_service: Mock,
        draft: Course,
        admin_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        course_service.recount_total_items = AsyncMock(return_value=4)

        response = client.post(
            f"/v1/courses/{draft.id}/recount", headers=auth_headers(admin_id, "admin")
        )

        assert response.status_code == 200
        assert response.json() == {"course_id": str(draft.id), "total_items": 4}

    def test_missing_section_is_404(
        self,
        client: TestClient,
        course_service: Mock,
        draft: Course,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        course_service.remove_section = AsyncMock(side_effect=SectionNotFoundError)

        response = client.delete(
            f"/v1/courses/{draft.id}/sections/{uuid4()}",
            headers=auth_headers(creator_id, "creator"),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Section not found"

    def test_missing_course_is_404(
        self,
        client: TestClient,
        course_service: Mock,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        course_service.get_course = AsyncMock(return_value=None)
        response = client.delete(
            f"/v1/courses/{uuid4()}", headers=auth_headers(creator_id, "creator")
        )
        assert response.status_code == 404
