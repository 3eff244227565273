"""Enrollment and progress API endpoints.

Provides routes for:
- Enrolling in / leaving a published course
- Marking content items complete
- Fresh progress queries
- Creator views: enrolled students, bulk progress recompute
- The student's own enrollments, with optional index reconciliation
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from learnhub.auth.dependencies import CurrentUser
from learnhub.core.exceptions import DomainError
from learnhub.courses.dependencies import CourseServiceDep, ensure_course_owner
from learnhub.courses.models import Course
from learnhub.courses.service import CourseNotFoundError, CourseService

from .dependencies import EnrollmentServiceDep, handle_enrollment_error
from .schemas import (
    EnrollmentListResponse,
    EnrollmentResponse,
    MarkCompleteResponse,
    ProgressResponse,
    RecomputeResponse,
)


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


async def _require_course(course_service: CourseService, course_id: UUID) -> Course:
    course = await course_service.get_course(course_id)
    if course is None:
        raise handle_enrollment_error(CourseNotFoundError(course_id))
    return course


# ==============================================================================
# Student Endpoints
# ==============================================================================


@router.post(
    "/courses/{course_id}",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Enroll the current user in a published course."""
    course = await _require_course(course_service, course_id)
    if not course.is_published:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found or not published",
        )

    try:
        enrollment = await enrollment_service.enroll(course_id, user.id)
    except DomainError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@router.delete(
    "/courses/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave course",
)
async def unenroll(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> None:
    """Remove the current user's enrollment and all of its progress."""
    try:
        await enrollment_service.unenroll(course_id, user.id)
    except DomainError as e:
        raise handle_enrollment_error(e) from e


@router.get(
    "/courses/{course_id}",
    response_model=EnrollmentResponse,
    summary="Get my enrollment",
)
async def get_my_enrollment(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Get the current user's enrollment with freshly computed progress."""
    try:
        enrollment = await enrollment_service.require_enrollment(course_id, user.id)
        progress = await enrollment_service.compute_progress(course_id, user.id)
    except DomainError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_entity(enrollment, progress=progress)


@router.post(
    "/courses/{course_id}/items/{item_id}/complete",
    response_model=MarkCompleteResponse,
    summary="Mark item complete",
)
async def mark_item_complete(
    course_id: UUID,
    item_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> MarkCompleteResponse:
    """Mark a content item complete for the current user.

    Safe to repeat; returns the recomputed progress either way.
    """
    try:
        progress = await enrollment_service.mark_item_complete(
            course_id, user.id, item_id
        )
    except DomainError as e:
        raise handle_enrollment_error(e) from e
    return MarkCompleteResponse(
        course_id=course_id, item_id=item_id, progress_percent=progress
    )


@router.get(
    "/courses/{course_id}/progress",
    response_model=ProgressResponse,
    summary="Get my progress",
)
async def get_progress(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ProgressResponse:
    """Compute progress against the course's current outline."""
    try:
        snapshot = await enrollment_service.get_progress_snapshot(course_id, user.id)
    except DomainError as e:
        raise handle_enrollment_error(e) from e
    return ProgressResponse(
        course_id=course_id,
        student_id=user.id,
        progress_percent=snapshot.progress_percent,
        completed_count=snapshot.completed_count,
        total_items=snapshot.total_items,
    )


@router.get("/me", response_model=EnrollmentListResponse, summary="List my enrollments")
async def list_my_enrollments(
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
    reconcile: bool = Query(
        False, description="Read the authoritative table and repair the index"
    ),
) -> EnrollmentListResponse:
    enrollments = await enrollment_service.list_student_enrollments(
        user.id, reconcile=reconcile
    )
    items = [EnrollmentResponse.from_entity(e) for e in enrollments]
    return EnrollmentListResponse(items=items, total=len(items))


# ==============================================================================
# Creator Endpoints
# ==============================================================================


@router.get(
    "/courses/{course_id}/students",
    response_model=EnrollmentListResponse,
    summary="List enrolled students",
)
async def list_course_students(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> EnrollmentListResponse:
    """Enrolled students with progress computed from the current outline."""
    course = await _require_course(course_service, course_id)
    ensure_course_owner(user, course)

    enrollments = await enrollment_service.list_course_enrollments(course_id)
    items = [
        EnrollmentResponse.from_entity(e, progress=e.compute_progress(course))
        for e in enrollments
    ]
    return EnrollmentListResponse(items=items, total=len(items))


@router.post(
    "/courses/{course_id}/recompute",
    response_model=RecomputeResponse,
    summary="Recompute cached progress",
)
async def recompute_course_progress(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> RecomputeResponse:
    """Refresh every enrollment's stored progress after outline changes."""
    course = await _require_course(course_service, course_id)
    ensure_course_owner(user, course)

    try:
        updated, total = await enrollment_service.recompute_course_progress(course_id)
    except DomainError as e:
        raise handle_enrollment_error(e) from e
    return RecomputeResponse(course_id=course_id, updated=updated, total_enrollments=total)
