"""Course authoring API endpoints.

Provides routes for:
- Courses: CRUD and catalog listing
- Sections and content items
- Total item recount
- Reviews
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from learnhub.auth.dependencies import CreatorUser, CurrentUser, OptionalUser
from learnhub.auth.schemas import UserResponse
from learnhub.courses.dependencies import (
    CourseServiceDep,
    can_view_course,
    ensure_course_owner,
    handle_course_error,
)
from learnhub.courses.models import Course, CourseLevel, CourseStatus
from learnhub.courses.schemas import (
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CreateCourseRequest,
    CreateItemRequest,
    CreateSectionRequest,
    ItemResponse,
    RecountResponse,
    ReviewListResponse,
    ReviewRequest,
    ReviewResponse,
    SectionResponse,
    UpdateCourseRequest,
    UpdateItemRequest,
    UpdateSectionRequest,
)
from learnhub.courses.service import CourseError, CourseNotFoundError, CourseService
from learnhub.enrollments.dependencies import EnrollmentServiceDep


router = APIRouter(prefix="/v1/courses", tags=["courses"])


async def _load_owned_course(
    course_service: CourseService, course_id: UUID, user: UserResponse
) -> Course:
    course = await course_service.get_course(course_id)
    if course is None:
        raise handle_course_error(CourseNotFoundError(course_id))
    ensure_course_owner(user, course)
    return course


# ==============================================================================
# Course CRUD
# ==============================================================================


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    user: CreatorUser,
) -> CourseResponse:
    """Create a draft course (CREATOR or ADMIN only)."""
    course = await course_service.create_course(data, user.id)
    return CourseResponse.from_entity(course)


@router.get("", response_model=CourseListResponse, summary="Course catalog")
async def list_courses(
    course_service: CourseServiceDep,
    category: str | None = None,
    level: CourseLevel | None = None,
    q: str | None = Query(None, max_length=100, description="Title, description or category contains"),
    limit: int = Query(20, ge=1, le=100),
) -> CourseListResponse:
    """List published courses, newest first (public)."""
    courses, has_more = await course_service.list_courses(
        status=CourseStatus.PUBLISHED,
        limit=limit,
        category=category,
        level=level.value if level else None,
        q=q,
    )
    items = [CourseResponse.from_entity(c) for c in courses]
    return CourseListResponse(items=items, total=len(items), has_more=has_more)


@router.get("/mine", response_model=CourseListResponse, summary="List my courses")
async def list_my_courses(
    course_service: CourseServiceDep,
    user: CreatorUser,
    limit: int = Query(50, ge=1, le=100),
) -> CourseListResponse:
    """List courses authored by the current user, any status."""
    courses = await course_service.list_courses_by_creator(user.id, limit)
    items = [CourseResponse.from_entity(c) for c in courses]
    return CourseListResponse(items=items, total=len(items), has_more=len(items) >= limit)


@router.get(
    "/{course_id}",
    response_model=CourseDetailResponse,
    summary="Get course with outline",
)
async def get_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: OptionalUser,
) -> CourseDetailResponse:
    """Get a course with its active sections and items.

    Drafts and archived courses are only visible to their creator and admins.
    """
    course = await course_service.get_course(course_id)
    if course is None or not can_view_course(user, course):
        raise handle_course_error(CourseNotFoundError(course_id))

    reviews, average = await course_service.list_reviews(course_id)
    return CourseDetailResponse.from_course(
        course, average_rating=average, review_count=len(reviews)
    )


@router.patch("/{course_id}", response_model=CourseResponse, summary="Update course")
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> CourseResponse:
    """Update course metadata or status (creator or admin)."""
    await _load_owned_course(course_service, course_id, user)
    try:
        course = await course_service.update_course(course_id, data)
    except (CourseError, CourseNotFoundError) as e:
        raise handle_course_error(e) from e
    return CourseResponse.from_entity(course)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
)
async def delete_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> None:
    """Soft delete a course (creator or admin)."""
    await _load_owned_course(course_service, course_id, user)
    try:
        await course_service.delete_course(course_id)
    except CourseNotFoundError as e:
        raise handle_course_error(e) from e


# ==============================================================================
# Sections
# ==============================================================================


@router.post(
    "/{course_id}/sections",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add section",
)
async def add_section(
    course_id: UUID,
    data: CreateSectionRequest,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> SectionResponse:
    await _load_owned_course(course_service, course_id, user)
    try:
        section = await course_service.add_section(course_id, data)
    except (CourseError, CourseNotFoundError) as e:
        raise handle_course_error(e) from e
    return SectionResponse.from_entity(section)


@router.patch(
    "/{course_id}/sections/{section_id}",
    response_model=SectionResponse,
    summary="Update section",
)
async def update_section(
    course_id: UUID,
    section_id: UUID,
    data: UpdateSectionRequest,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> SectionResponse:
    await _load_owned_course(course_service, course_id, user)
    try:
        section = await course_service.update_section(course_id, section_id, data)
    except (CourseError, CourseNotFoundError) as e:
        raise handle_course_error(e) from e
    return SectionResponse.from_entity(section)


@router.delete(
    "/{course_id}/sections/{section_id}",
    response_model=RecountResponse,
    summary="Remove section",
)
async def remove_section(
    course_id: UUID,
    section_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> RecountResponse:
    """Remove a section from the outline and recount the course items."""
    await _load_owned_course(course_service, course_id, user)
    try:
        total = await course_service.remove_section(course_id, section_id)
    except (CourseError, CourseNotFoundError) as e:
        raise handle_course_error(e) from e
    return RecountResponse(course_id=course_id, total_items=total)


# ==============================================================================
# Content items
# ==============================================================================


@router.post(
    "/{course_id}/sections/{section_id}/items",
    response_model=ItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add content item",
)
async def add_item(
    course_id: UUID,
    section_id: UUID,
    data: CreateItemRequest,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> ItemResponse:
    await _load_owned_course(course_service, course_id, user)
    try:
        item = await course_service.add_item(course_id, section_id, data)
    except (CourseError, CourseNotFoundError) as e:
        raise handle_course_error(e) from e
    return ItemResponse.from_entity(item)


@router.patch(
    "/{course_id}/items/{item_id}",
    response_model=ItemResponse,
    summary="Update content item",
)
async def update_item(
    course_id: UUID,
    item_id: UUID,
    data: UpdateItemRequest,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> ItemResponse:
    await _load_owned_course(course_service, course_id, user)
    try:
        item = await course_service.update_item(course_id, item_id, data)
    except (CourseError, CourseNotFoundError) as e:
        raise handle_course_error(e) from e
    return ItemResponse.from_entity(item)


@router.delete(
    "/{course_id}/items/{item_id}",
    response_model=RecountResponse,
    summary="Remove content item",
)
async def remove_item(
    course_id: UUID,
    item_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> RecountResponse:
    """Remove an item and recount the course items."""
    await _load_owned_course(course_service, course_id, user)
    try:
        total = await course_service.remove_item(course_id, item_id)
    except (CourseError, CourseNotFoundError) as e:
        raise handle_course_error(e) from e
    return RecountResponse(course_id=course_id, total_items=total)


@router.post(
    "/{course_id}/recount",
    response_model=RecountResponse,
    summary="Recount active items",
)
async def recount_total_items(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> RecountResponse:
    await _load_owned_course(course_service, course_id, user)
    try:
        total = await course_service.recount_total_items(course_id)
    except CourseNotFoundError as e:
        raise handle_course_error(e) from e
    return RecountResponse(course_id=course_id, total_items=total)


# ==============================================================================
# Reviews
# ==============================================================================


@router.get(
    "/{course_id}/reviews",
    response_model=ReviewListResponse,
    summary="List reviews",
)
async def list_reviews(
    course_id: UUID,
    course_service: CourseServiceDep,
) -> ReviewListResponse:
    reviews, average = await course_service.list_reviews(course_id)
    return ReviewListResponse(
        items=[ReviewResponse.from_entity(r) for r in reviews],
        average_rating=average,
        total=len(reviews),
    )


@router.post(
    "/{course_id}/reviews",
    response_model=ReviewResponse,
    summary="Review a course",
)
async def review_course(
    course_id: UUID,
    data: ReviewRequest,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ReviewResponse:
    """Rate a course; only enrolled students may review, once each."""
    enrollment = await enrollment_service.get_enrollment(course_id, user.id)
    if enrollment is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only enrolled students can review this course",
        )
    try:
        review = await course_service.add_review(course_id, user.id, data)
    except CourseNotFoundError as e:
        raise handle_course_error(e) from e
    return ReviewResponse.from_entity(review)
