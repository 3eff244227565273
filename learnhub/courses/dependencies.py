"""FastAPI dependencies for course management.

Provides dependency injection for:
- Course service
- Ownership and visibility checks
- Error handlers
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from learnhub.auth.permissions import is_admin
from learnhub.auth.schemas import UserResponse
from learnhub.core.exceptions import DomainError
from learnhub.courses.models import Course
from learnhub.courses.service import CourseService


async def get_course_service(request: Request) -> CourseService:
    """Get course service from app state."""
    service = getattr(request.app.state, "course_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return service


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]


# ==============================================================================
# Ownership Verification
# ==============================================================================


def is_owner_or_admin(user: UserResponse | None, creator_id: UUID) -> bool:
    """Check if user authored the resource or is a platform admin."""
    if user is None:
        return False
    return is_admin(user.role) or user.id == creator_id


def can_view_course(user: UserResponse | None, course: Course) -> bool:
    """Published courses are public; drafts and archives are owner/admin only."""
    return course.is_published or is_owner_or_admin(user, course.creator_id)


def ensure_course_owner(user: UserResponse, course: Course) -> None:
    """Raise 403 unless the user authored the course or is an admin."""
    if not is_owner_or_admin(user, course.creator_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the course creator can do this",
        )


def handle_course_error(error: DomainError) -> HTTPException:
    """Convert course errors to HTTP exceptions."""
    status_map = {
        "aggregate_not_found": status.HTTP_404_NOT_FOUND,
        "section_not_found": status.HTTP_404_NOT_FOUND,
        "item_not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=error.message)
