"""Community events module: scheduling and RSVPs."""

from .models import EVENTS_TABLES_CQL, Attendee, Event, RSVPStatus


__all__ = ["EVENTS_TABLES_CQL", "Attendee", "Event", "RSVPStatus"]
