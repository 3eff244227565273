"""Database models for community events.

Cassandra table definitions for:
- Events: main table (soft-cancelled via is_active)
- Event attendees: RSVP rows partitioned by event
- Events by community: schedule lookup ordered by start time
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.utils import ensure_utc_aware, utcnow


class RSVPStatus(str, Enum):
    GOING = "going"
    MAYBE = "maybe"
    NOT_GOING = "not_going"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

EVENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.events (
    id UUID PRIMARY KEY,
    community_id UUID,
    creator_id UUID,
    title TEXT,
    description TEXT,
    start_at TIMESTAMP,
    end_at TIMESTAMP,
    meeting_link TEXT,
    location TEXT,
    max_attendees INT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

EVENT_ATTENDEES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.event_attendees (
    event_id UUID,
    user_id UUID,
    status TEXT,
    rsvp_at TIMESTAMP,
    PRIMARY KEY (event_id, user_id)
)
"""

EVENTS_BY_COMMUNITY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.events_by_community (
    community_id UUID,
    start_at TIMESTAMP,
    event_id UUID,
    PRIMARY KEY ((community_id), start_at, event_id)
) WITH CLUSTERING ORDER BY (start_at ASC, event_id ASC)
"""

EVENTS_TABLES_CQL = [
    EVENT_TABLE_CQL,
    EVENT_ATTENDEES_TABLE_CQL,
    EVENTS_BY_COMMUNITY_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Attendee:
    """One user's RSVP to an event."""

    event_id: UUID
    user_id: UUID
    status: str
    rsvp_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Any) -> "Attendee":
        return cls(
            event_id=row.event_id,
            user_id=row.user_id,
            status=row.status or RSVPStatus.GOING.value,
            rsvp_at=ensure_utc_aware(row.rsvp_at) or utcnow(),
        )


@dataclass
class Event:
    """Community event with its RSVPs keyed by user id."""

    community_id: UUID
    creator_id: UUID
    title: str
    start_at: datetime
    end_at: datetime
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    meeting_link: str | None = None
    location: str | None = None
    max_attendees: int | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    attendees: dict[UUID, Attendee] = field(default_factory=dict)

    @property
    def going_count(self) -> int:
        return sum(1 for a in self.attendees.values() if a.status == RSVPStatus.GOING.value)

    @property
    def attendee_count(self) -> int:
        return self.going_count

    def is_upcoming(self, now: datetime | None = None) -> bool:
        """Not yet over (ongoing events count as upcoming)."""
        return self.end_at > (now or utcnow())

    def rsvp_status(self, user_id: UUID | None) -> str | None:
        attendee = self.attendees.get(user_id) if user_id else None
        return attendee.status if attendee else None

    def has_room_for(self, user_id: UUID) -> bool:
        """Whether ``user_id`` may RSVP ``going`` without exceeding the cap."""
        if self.max_attendees is None:
            return True
        if self.rsvp_status(user_id) == RSVPStatus.GOING.value:
            return True
        return self.going_count < self.max_attendees

    def set_rsvp(self, user_id: UUID, status: str) -> Attendee:
        """Upsert the user's RSVP; the capacity check is the caller's."""
        attendee = Attendee(event_id=self.id, user_id=user_id, status=status)
        self.attendees[user_id] = attendee
        return attendee

    @classmethod
    def from_row(cls, row: Any, attendees: list[Attendee] | None = None) -> "Event":
        """Create Event from Cassandra row plus attendee rows."""
        return cls(
            id=row.id,
            community_id=row.community_id,
            creator_id=row.creator_id,
            title=row.title or "",
            description=row.description,
            start_at=ensure_utc_aware(row.start_at),
            end_at=ensure_utc_aware(row.end_at),
            meeting_link=row.meeting_link,
            location=row.location,
            max_attendees=row.max_attendees,
            is_active=row.is_active if row.is_active is not None else True,
            created_at=ensure_utc_aware(row.created_at) or utcnow(),
            updated_at=ensure_utc_aware(row.updated_at),
            attendees={a.user_id: a for a in attendees or []},
        )
