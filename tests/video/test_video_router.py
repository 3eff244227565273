"""Tests for video endpoints with services mocked out."""

from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from learnhub.config.settings import Settings
from learnhub.courses.models import ContentItem, Course, CourseStatus, Section
from learnhub.courses.service import CourseService
from learnhub.enrollments.models import Enrollment
from learnhub.enrollments.service import EnrollmentService
from learnhub.video.router import get_bunny_service
from learnhub.video.service import BunnyService


VIDEO_ID = "3f2b9c1e-8d4a-4b6f-9e2c-1a7d5b3c9e0f"


def configured_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "environment": "testing",
        "bunny_library_id": "12345",
        "bunny_cdn_hostname": "vz-test.b-cdn.net",
        "bunny_token_key": "token-key",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def course(creator_id: UUID) -> Course:
    course = Course(
        title="Filming Basics", creator_id=creator_id, status=CourseStatus.PUBLISHED.value
    )
    section = Section(course_id=course.id, title="Start")
    course.sections = [section]
    course.items = [
        ContentItem(course.id, section.section_id, "Welcome", video_url=VIDEO_ID),
        ContentItem(course.id, section.section_id, "Reading"),
        ContentItem(course.id, section.section_id, "Broken", video_url="not-a-video"),
    ]
    return course


@pytest.fixture
def services(app: FastAPI, course: Course) -> tuple[Mock, Mock]:
    course_service = Mock(spec=CourseService)
    course_service.get_course = AsyncMock(return_value=course)
    enrollment_service = Mock(spec=EnrollmentService)
    enrollment_service.get_enrollment = AsyncMock(return_value=None)
    app.state.course_service = course_service
    app.state.enrollment_service = enrollment_service
    return course_service, enrollment_service


@pytest.fixture
def bunny(app: FastAPI) -> Iterator[None]:
    app.dependency_overrides[get_bunny_service] = lambda: BunnyService(configured_settings())
    yield
    app.dependency_overrides.clear()


def playback_path(course: Course, item: ContentItem) -> str:
    return f"/v1/video/courses/{course.id}/items/{item.item_id}/playback"


class TestVideoConfig:
    """Public configuration status."""

    def test_reports_unconfigured(self, app: FastAPI, client: TestClient) -> None:
        app.dependency_overrides[get_bunny_service] = lambda: BunnyService(
            Settings(environment="testing", bunny_token_key=None)
        )
        response = client.get("/v1/video/config")
        app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json() == {"configured": False, "library_id": None, "cdn_hostname": None}

    def test_reports_configured_without_keys(
        self, client: TestClient, bunny: None
    ) -> None:
        response = client.get("/v1/video/config")

        data = response.json()
        assert data["configured"] is True
        assert data["library_id"] == "12345"
        assert "token-key" not in response.text


class TestPlayback:
    """Access rules and error mapping for signed playback."""

    def test_enrolled_student(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        bunny: None,
        course: Course,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        services[1].get_enrollment = AsyncMock(
            return_value=Enrollment(course_id=course.id, student_id=student_id)
        )

        response = client.post(
            playback_path(course, course.items[0]), headers=auth_headers(student_id)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["video_id"] == VIDEO_ID
        assert data["embed_url"].startswith(
            f"https://iframe.mediadelivery.net/embed/12345/{VIDEO_ID}?token="
        )
        assert data["hls_url"].endswith("/playlist.m3u8")

    def test_not_enrolled(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        bunny: None,
        course: Course,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.post(
            playback_path(course, course.items[0]), headers=auth_headers(uuid4())
        )
        assert response.status_code == 403

    def test_owner_needs_no_enrollment(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        bunny: None,
        course: Course,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.post(
            playback_path(course, course.items[0]),
            headers=auth_headers(creator_id, "creator"),
        )
        assert response.status_code == 200
        services[1].get_enrollment.assert_not_called()

    def test_item_without_video(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        bunny: None,
        course: Course,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.post(
            playback_path(course, course.items[1]),
            headers=auth_headers(creator_id, "creator"),
        )
        assert response.status_code == 404

    def test_unrecognized_video_url(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        bunny: None,
        course: Course,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.post(
            playback_path(course, course.items[2]),
            headers=auth_headers(creator_id, "creator"),
        )
        assert response.status_code == 422

    def test_not_configured(
        self,
        app: FastAPI,
        client: TestClient,
        services: tuple[Mock, Mock],
        course: Course,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        app.dependency_overrides[get_bunny_service] = lambda: BunnyService(
            configured_settings(bunny_token_key=None)
        )
        response = client.post(
            playback_path(course, course.items[0]),
            headers=auth_headers(creator_id, "creator"),
        )
        app.dependency_overrides.clear()

        assert response.status_code == 503

    def test_missing_course(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        bunny: None,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        services[0].get_course = AsyncMock(return_value=None)
        response = client.post(
            f"/v1/video/courses/{uuid4()}/items/{uuid4()}/playback",
            headers=auth_headers(student_id),
        )
        assert response.status_code == 404


class TestLibrary:
    """Library browsing is for creators."""

    def test_student_forbidden(
        self,
        client: TestClient,
        bunny: None,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.get("/v1/video/library", headers=auth_headers(student_id))
        assert response.status_code == 403

    def test_without_api_key(
        self,
        client: TestClient,
        bunny: None,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.get("/v1/video/library", headers=auth_headers(creator_id, "creator"))
        assert response.status_code == 503
