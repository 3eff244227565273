"""Community event API endpoints.

Provides routes for:
- Scheduling events in a community (moderators)
- Listing a community's events
- Update and cancellation
- RSVP
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from learnhub.auth.dependencies import CurrentUser
from learnhub.auth.schemas import UserResponse
from learnhub.communities.dependencies import (
    CommunityServiceDep,
    can_moderate,
    ensure_moderator,
    ensure_participant,
)
from learnhub.communities.models import Community
from learnhub.communities.service import CommunityNotFoundError, CommunityService
from learnhub.core.exceptions import DomainError
from learnhub.events.dependencies import EventServiceDep, handle_event_error
from learnhub.events.models import Event
from learnhub.events.schemas import (
    CreateEventRequest,
    EventListResponse,
    EventResponse,
    RSVPRequest,
    UpdateEventRequest,
)
from learnhub.events.service import EventNotFoundError, EventService


router = APIRouter(prefix="/v1", tags=["events"])


async def _load_community(
    community_service: CommunityService, community_id: UUID, user: UserResponse
) -> Community:
    community = await community_service.get_community(community_id)
    if community is None:
        raise handle_event_error(CommunityNotFoundError(community_id))
    ensure_participant(user, community)
    return community


async def _load_event(
    event_service: EventService,
    community_service: CommunityService,
    event_id: UUID,
    user: UserResponse,
) -> tuple[Event, Community]:
    event = await event_service.get_event(event_id)
    if event is None:
        raise handle_event_error(EventNotFoundError(event_id))
    community = await _load_community(community_service, event.community_id, user)
    return event, community


def _ensure_can_edit(user: UserResponse, event: Event, community: Community) -> None:
    if user.id != event.creator_id and not can_moderate(user, community):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the event creator or a moderator can do this",
        )


@router.post(
    "/communities/{community_id}/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule event",
)
async def create_event(
    community_id: UUID,
    data: CreateEventRequest,
    event_service: EventServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> EventResponse:
    """Schedule an event (community moderators)."""
    community = await _load_community(community_service, community_id, user)
    ensure_moderator(user, community)

    event = await event_service.create_event(community_id, user.id, data)
    return EventResponse.from_entity(event, viewer_id=user.id)


@router.get(
    "/communities/{community_id}/events",
    response_model=EventListResponse,
    summary="List events",
)
async def list_events(
    community_id: UUID,
    event_service: EventServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
    upcoming_only: bool = Query(True, description="Hide events that have ended"),
) -> EventListResponse:
    await _load_community(community_service, community_id, user)
    events = await event_service.list_community_events(community_id, upcoming_only)
    items = [EventResponse.from_entity(e, viewer_id=user.id) for e in events]
    return EventListResponse(items=items, total=len(items))


@router.get("/events/{event_id}", response_model=EventResponse, summary="Get event")
async def get_event(
    event_id: UUID,
    event_service: EventServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> EventResponse:
    event, _ = await _load_event(event_service, community_service, event_id, user)
    return EventResponse.from_entity(event, viewer_id=user.id)


@router.patch("/events/{event_id}", response_model=EventResponse, summary="Update event")
async def update_event(
    event_id: UUID,
    data: UpdateEventRequest,
    event_service: EventServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> EventResponse:
    """Update an event (its creator or a moderator)."""
    event, community = await _load_event(event_service, community_service, event_id, user)
    _ensure_can_edit(user, event, community)

    try:
        event = await event_service.update_event(event_id, data)
    except DomainError as e:
        raise handle_event_error(e) from e
    return EventResponse.from_entity(event, viewer_id=user.id)


@router.delete(
    "/events/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel event",
)
async def cancel_event(
    event_id: UUID,
    event_service: EventServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> None:
    event, community = await _load_event(event_service, community_service, event_id, user)
    _ensure_can_edit(user, event, community)

    try:
        await event_service.cancel_event(event_id)
    except DomainError as e:
        raise handle_event_error(e) from e


@router.post("/events/{event_id}/rsvp", response_model=EventResponse, summary="RSVP")
async def rsvp(
    event_id: UUID,
    data: RSVPRequest,
    event_service: EventServiceDep,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> EventResponse:
    """RSVP to an event (members). ``going`` fails once the event is full."""
    await _load_event(event_service, community_service, event_id, user)
    try:
        event = await event_service.rsvp(event_id, user.id, data.status)
    except DomainError as e:
        raise handle_event_error(e) from e
    return EventResponse.from_entity(event, viewer_id=user.id)
