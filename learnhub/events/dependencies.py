"""FastAPI dependencies for community events."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.core.exceptions import DomainError
from learnhub.events.service import EventService


async def get_event_service(request: Request) -> EventService:
    """Get event service from app state."""
    service = getattr(request.app.state, "event_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Event service not available",
        )
    return service


EventServiceDep = Annotated[EventService, Depends(get_event_service)]


def handle_event_error(error: DomainError) -> HTTPException:
    """Convert event errors to HTTP exceptions."""
    status_map = {
        "aggregate_not_found": status.HTTP_404_NOT_FOUND,
        "event_full": status.HTTP_400_BAD_REQUEST,
        "invalid_schedule": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "not_a_member": status.HTTP_403_FORBIDDEN,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=error.message)
