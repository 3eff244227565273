"""FastAPI dependencies for enrollments.

Provides dependency injection for:
- Enrollment service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.core.exceptions import DomainError
from learnhub.enrollments.service import EnrollmentService


async def get_enrollment_service(request: Request) -> EnrollmentService:
    """Get enrollment service from app state."""
    service = getattr(request.app.state, "enrollment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Enrollment service not available",
        )
    return service


# Type alias for dependency injection
EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]


def handle_enrollment_error(error: DomainError) -> HTTPException:
    """Convert enrollment and course errors to HTTP exceptions."""
    status_map = {
        "already_enrolled": status.HTTP_409_CONFLICT,
        "not_enrolled": status.HTTP_404_NOT_FOUND,
        "item_not_found": status.HTTP_404_NOT_FOUND,
        "aggregate_not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=error.message)
