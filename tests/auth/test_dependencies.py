"""Tests for authentication dependencies through the HTTP layer."""

from collections.abc import Callable
from unittest.mock import AsyncMock, Mock
from uuid import UUID

from fastapi import FastAPI
from fastapi.testclient import TestClient

from learnhub.courses.service import CourseService


class TestAuthDependencies:
    """Protected routes reject missing, invalid and underprivileged callers."""

    def _install(self, app: FastAPI) -> Mock:
        course_service = Mock(spec=CourseService)
        course_service.list_courses_by_creator = AsyncMock(return_value=[])
        app.state.course_service = course_service
        return course_service

    def test_missing_token(self, app: FastAPI, client: TestClient) -> None:
        self._install(app)
        response = client.get("/v1/courses/mine")
        assert response.status_code == 401
        assert response.json()["message"] == "Access token missing"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, app: FastAPI, client: TestClient) -> None:
        self._install(app)
        response = client.get(
            "/v1/courses/mine", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_non_bearer_scheme_is_missing(self, app: FastAPI, client: TestClient) -> None:
        self._install(app)
        response = client.get("/v1/courses/mine", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401
        assert response.json()["message"] == "Access token missing"

    def test_student_forbidden_on_creator_route(
        self,
        app: FastAPI,
        client: TestClient,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        self._install(app)
        response = client.get("/v1/courses/mine", headers=auth_headers(student_id))
        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient permissions"

    def test_creator_and_admin_allowed(
        self,
        app: FastAPI,
        client: TestClient,
        creator_id: UUID,
        admin_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        course_service = self._install(app)

        for user_id, role in ((creator_id, "creator"), (admin_id, "admin")):
            response = client.get("/v1/courses/mine", headers=auth_headers(user_id, role))
            assert response.status_code == 200

        calls = [c.args[0] for c in course_service.list_courses_by_creator.call_args_list]
        assert calls == [creator_id, admin_id]
