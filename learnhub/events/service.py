"""Community event service layer.

Business logic for:
- Event scheduling, update and cancellation
- Upcoming/all listing per community
- RSVPs with an optional cap on ``going`` attendees
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.core.exceptions import AggregateNotFoundError, DomainError
from learnhub.events.models import Attendee, Event, RSVPStatus
from learnhub.events.schemas import CreateEventRequest, UpdateEventRequest
from learnhub.utils import utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.core.locks import AggregateLocks

logger = structlog.get_logger(__name__)

EVENT_LOCK = "event"


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EventError(DomainError):
    """Base event error."""

    def __init__(self, message: str, code: str = "event_error"):
        super().__init__(message, code)


class EventFullError(EventError):
    """The event has reached its ``going`` capacity."""

    def __init__(self, message: str = "Event is full"):
        super().__init__(message, "event_full")


class InvalidScheduleError(EventError):
    def __init__(self, message: str = "end_at must be after start_at"):
        super().__init__(message, "invalid_schedule")


class EventNotFoundError(AggregateNotFoundError):
    """Event missing or cancelled."""

    def __init__(self, event_id: UUID):
        super().__init__("event", event_id)


# ==============================================================================
# Event Service
# ==============================================================================


class EventService:
    """Service for community events and RSVPs."""

    def __init__(self, session: "Session", keyspace: str, locks: "AggregateLocks"):
        """Initialize with Cassandra session and the shared aggregate locks."""
        self.session = session
        self.keyspace = keyspace
        self.locks = locks
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Events
        self._get_event = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.events WHERE id = ?"
        )
        self._upsert_event = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.events
            (id, community_id, creator_id, title, description, start_at, end_at,
             meeting_link, location, max_attendees, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Attendees
        self._get_attendees = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.event_attendees WHERE event_id = ?"
        )
        self._upsert_attendee = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.event_attendees
            (event_id, user_id, status, rsvp_at) VALUES (?, ?, ?, ?)
        """)

        # Schedule lookup
        self._insert_by_community = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.events_by_community
            (community_id, start_at, event_id) VALUES (?, ?, ?)
        """)
        self._delete_by_community = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.events_by_community
            WHERE community_id = ? AND start_at = ? AND event_id = ?
        """)
        self._get_by_community = self.session.prepare(f"""
            SELECT event_id FROM {self.keyspace}.events_by_community
            WHERE community_id = ?
        """)

    async def _save_event(self, event: Event) -> None:
        await self.session.aexecute(
            self._upsert_event,
            [
                event.id,
                event.community_id,
                event.creator_id,
                event.title,
                event.description,
                event.start_at,
                event.end_at,
                event.meeting_link,
                event.location,
                event.max_attendees,
                event.is_active,
                event.created_at,
                event.updated_at,
            ],
        )

    # ==========================================================================
    # Events
    # ==========================================================================

    async def get_event(self, event_id: UUID) -> Event | None:
        """Load an event with its RSVPs; None if missing or cancelled."""
        result = await self.session.aexecute(self._get_event, [event_id])
        row = result.one()
        if row is None or row.is_active is False:
            return None

        attendee_rows = await self.session.aexecute(self._get_attendees, [event_id])
        return Event.from_row(row, [Attendee.from_row(r) for r in attendee_rows])

    async def require_event(self, event_id: UUID) -> Event:
        event = await self.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def create_event(
        self, community_id: UUID, creator_id: UUID, data: CreateEventRequest
    ) -> Event:
        event = Event(
            community_id=community_id,
            creator_id=creator_id,
            title=data.title.strip(),
            description=data.description,
            start_at=data.start_at,
            end_at=data.end_at,
            meeting_link=data.meeting_link,
            location=data.location,
            max_attendees=data.max_attendees,
        )
        await self._save_event(event)
        await self.session.aexecute(
            self._insert_by_community, [community_id, event.start_at, event.id]
        )

        logger.info(
            "event_created",
            event_id=str(event.id),
            community_id=str(community_id),
            start_at=event.start_at.isoformat(),
        )
        return event

    async def list_community_events(
        self, community_id: UUID, upcoming_only: bool = True
    ) -> list[Event]:
        """Active events of a community ordered by start time."""
        rows = await self.session.aexecute(self._get_by_community, [community_id])
        now = utcnow()

        events = []
        for row in rows:
            event = await self.get_event(row.event_id)
            if event is None:
                continue
            if upcoming_only and not event.is_upcoming(now):
                continue
            events.append(event)
        return sorted(events, key=lambda e: e.start_at)

    async def update_event(self, event_id: UUID, data: UpdateEventRequest) -> Event:
        """Apply a partial update.

        Raises:
            InvalidScheduleError: If the resulting end is not after the start
        """
        async with self.locks.hold(EVENT_LOCK, event_id):
            event = await self.require_event(event_id)
            previous_start = event.start_at

            start_at = data.start_at or event.start_at
            end_at = data.end_at or event.end_at
            if end_at <= start_at:
                raise InvalidScheduleError

            if data.title is not None:
                event.title = data.title.strip()
            if data.description is not None:
                event.description = data.description
            if data.meeting_link is not None:
                event.meeting_link = data.meeting_link
            if data.location is not None:
                event.location = data.location
            if data.max_attendees is not None:
                event.max_attendees = data.max_attendees
            event.start_at = start_at
            event.end_at = end_at
            event.updated_at = utcnow()
            await self._save_event(event)

            if event.start_at != previous_start:
                await self.session.aexecute(
                    self._delete_by_community,
                    [event.community_id, previous_start, event.id],
                )
                await self.session.aexecute(
                    self._insert_by_community,
                    [event.community_id, event.start_at, event.id],
                )

        return event

    async def cancel_event(self, event_id: UUID) -> None:
        """Soft cancel; the event leaves the community schedule."""
        async with self.locks.hold(EVENT_LOCK, event_id):
            event = await self.require_event(event_id)
            event.is_active = False
            event.updated_at = utcnow()
            await self._save_event(event)
            await self.session.aexecute(
                self._delete_by_community, [event.community_id, event.start_at, event.id]
            )

        logger.info("event_cancelled", event_id=str(event_id))

    # ==========================================================================
    # RSVP
    # ==========================================================================

    async def rsvp(self, event_id: UUID, user_id: UUID, status: RSVPStatus) -> Event:
        """Record the user's RSVP and return the updated event.

        Raises:
            EventFullError: If ``going`` would exceed ``max_attendees``
        """
        async with self.locks.hold(EVENT_LOCK, event_id):
            event = await self.require_event(event_id)
            if status == RSVPStatus.GOING and not event.has_room_for(user_id):
                raise EventFullError

            attendee = event.set_rsvp(user_id, status.value)
            await self.session.aexecute(
                self._upsert_attendee,
                [attendee.event_id, attendee.user_id, attendee.status, attendee.rsvp_at],
            )

        logger.info(
            "event_rsvp",
            event_id=str(event_id),
            user_id=str(user_id),
            status=status.value,
            going=event.going_count,
        )
        return event
