"""Pydantic schemas for community events."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from learnhub.events.models import Event, RSVPStatus
from learnhub.utils import ensure_utc_aware


class CreateEventRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    start_at: datetime
    end_at: datetime
    meeting_link: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=200)
    max_attendees: int | None = Field(None, ge=1)

    @field_validator("start_at", "end_at")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        # Offset-less input is taken as UTC
        return ensure_utc_aware(v)

    @model_validator(mode="after")
    def validate_schedule(self) -> "CreateEventRequest":
        if self.end_at <= self.start_at:
            msg = "end_at must be after start_at"
            raise ValueError(msg)
        return self


class UpdateEventRequest(BaseModel):
    """Partial event update; the resulting schedule is validated by the service."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    start_at: datetime | None = None
    end_at: datetime | None = None
    meeting_link: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=200)
    max_attendees: int | None = Field(None, ge=1)

    @field_validator("start_at", "end_at")
    @classmethod
    def validate_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_utc_aware(v)


class RSVPRequest(BaseModel):
    status: RSVPStatus = RSVPStatus.GOING


class EventResponse(BaseModel):
    id: UUID
    community_id: UUID
    creator_id: UUID
    title: str
    description: str | None = None
    start_at: datetime
    end_at: datetime
    meeting_link: str | None = None
    location: str | None = None
    max_attendees: int | None = None
    attendee_count: int = Field(description="RSVPs with status going")
    my_rsvp: RSVPStatus | None = None
    created_at: datetime

    @classmethod
    def from_entity(cls, event: Event, viewer_id: UUID | None = None) -> "EventResponse":
        my_rsvp = event.rsvp_status(viewer_id)
        return cls(
            id=event.id,
            community_id=event.community_id,
            creator_id=event.creator_id,
            title=event.title,
            description=event.description,
            start_at=event.start_at,
            end_at=event.end_at,
            meeting_link=event.meeting_link,
            location=event.location,
            max_attendees=event.max_attendees,
            attendee_count=event.attendee_count,
            my_rsvp=RSVPStatus(my_rsvp) if my_rsvp else None,
            created_at=event.created_at,
        )


class EventListResponse(BaseModel):
    items: list[EventResponse]
    total: int
