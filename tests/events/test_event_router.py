"""Tests for event endpoints with services mocked out."""

from collections.abc import Callable
from datetime import timedelta
from unittest.mock import AsyncMock, Mock
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from learnhub.communities.models import Community, MemberRole
from learnhub.communities.service import CommunityService
from learnhub.events.models import Event
from learnhub.events.service import EventFullError, EventService, InvalidScheduleError
from learnhub.utils import utcnow


@pytest.fixture
def community(creator_id: UUID, student_id: UUID) -> Community:
    community = Community(name="Meetups", creator_id=creator_id, members=[])
    community.add_member(creator_id, MemberRole.CREATOR.value)
    community.add_member(student_id)
    return community


@pytest.fixture
def event(community: Community, creator_id: UUID) -> Event:
    start = utcnow() + timedelta(days=1)
    return Event(
        community_id=community.id,
        creator_id=creator_id,
        title="Kickoff",
        start_at=start,
        end_at=start + timedelta(hours=1),
        max_attendees=1,
    )


@pytest.fixture
def services(app: FastAPI, community: Community, event: Event) -> tuple[Mock, Mock]:
    community_service = Mock(spec=CommunityService)
    community_service.get_community = AsyncMock(return_value=community)
    event_service = Mock(spec=EventService)
    event_service.get_event = AsyncMock(return_value=event)
    app.state.community_service = community_service
    app.state.event_service = event_service
    return community_service, event_service


def schedule_payload(hours: int = 1) -> dict[str, str]:
    start = utcnow() + timedelta(days=2)
    return {
        "title": "Workshop",
        "start_at": start.isoformat(),
        "end_at": (start + timedelta(hours=hours)).isoformat(),
    }


class TestScheduling:
    """Only moderators schedule events."""

    def test_member_cannot_schedule(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        community: Community,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.post(
            f"/v1/communities/{community.id}/events",
            json=schedule_payload(),
            headers=auth_headers(student_id),
        )
        assert response.status_code == 403

    def test_creator_schedules(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        community: Community,
        event: Event,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        services[1].create_event = AsyncMock(return_value=event)

        response = client.post(
            f"/v1/communities/{community.id}/events",
            json=schedule_payload(),
            headers=auth_headers(creator_id, "creator"),
        )

        assert response.status_code == 201
        assert response.json()["attendee_count"] == 0

    def test_inverted_schedule_rejected(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        community: Community,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        response = client.post(
            f"/v1/communities/{community.id}/events",
            json=schedule_payload(hours=-1),
            headers=auth_headers(creator_id, "creator"),
        )
        assert response.status_code == 422

    def test_update_inverted_schedule(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        event: Event,
        creator_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        services[1].update_event = AsyncMock(side_effect=InvalidScheduleError)
        response = client.patch(
            f"/v1/events/{event.id}",
            json={"end_at": utcnow().isoformat()},
            headers=auth_headers(creator_id, "creator"),
        )
        assert response.status_code == 422


class TestRSVP:
    """RSVP error mapping."""

    def test_full_event(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        event: Event,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        services[1].rsvp = AsyncMock(side_effect=EventFullError)
        response = client.post(
            f"/v1/events/{event.id}/rsvp",
            json={"status": "going"},
            headers=auth_headers(student_id),
        )
        assert response.status_code == 400

    def test_going_shows_my_rsvp(
        self,
        client: TestClient,
        services: tuple[Mock, Mock],
        event: Event,
        student_id: UUID,
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        event.set_rsvp(student_id, "going")
        services[1].rsvp = AsyncMock(return_value=event)

        response = client.post(
            f"/v1/events/{event.id}/rsvp", json={}, headers=auth_headers(student_id)
        )

        assert response.status_code == 200
        assert response.json()["my_rsvp"] == "going"
        assert response.json()["attendee_count"] == 1
