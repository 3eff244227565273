"""Video delivery API endpoints.

Provides routes for:
- Checking whether video delivery is configured
- Signed playback URLs for course content items
- Browsing the video library (creators)
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from learnhub.auth.dependencies import CreatorUser, CurrentUser
from learnhub.config.settings import Settings, get_settings
from learnhub.courses.dependencies import CourseServiceDep, is_owner_or_admin
from learnhub.courses.service import CourseNotFoundError, ItemNotFoundError
from learnhub.enrollments.dependencies import EnrollmentServiceDep, handle_enrollment_error
from learnhub.video.schemas import (
    LibraryResponse,
    LibraryVideo,
    PlaybackResponse,
    VideoConfigResponse,
)
from learnhub.video.service import (
    BunnyService,
    InvalidVideoUrlError,
    VideoApiError,
    VideoNotConfiguredError,
)


router = APIRouter(prefix="/v1/video", tags=["video"])


def get_bunny_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> BunnyService:
    return BunnyService(settings)


BunnyServiceDep = Annotated[BunnyService, Depends(get_bunny_service)]


@router.get("/config", response_model=VideoConfigResponse, summary="Video config")
async def get_video_config(bunny_service: BunnyServiceDep) -> VideoConfigResponse:
    """Public configuration status; no keys are exposed."""
    configured = bunny_service.is_configured
    settings = bunny_service.settings
    return VideoConfigResponse(
        configured=configured,
        library_id=settings.bunny_library_id if configured else None,
        cdn_hostname=settings.bunny_cdn_hostname if configured else None,
    )


@router.post(
    "/courses/{course_id}/items/{item_id}/playback",
    response_model=PlaybackResponse,
    summary="Sign playback URLs",
)
async def get_playback_urls(
    course_id: UUID,
    item_id: UUID,
    bunny_service: BunnyServiceDep,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    user: CurrentUser,
) -> PlaybackResponse:
    """Sign playback URLs for an item.

    Open to enrolled students, the course creator and admins.
    """
    course = await course_service.get_course(course_id)
    if course is None:
        raise handle_enrollment_error(CourseNotFoundError(course_id))

    if not is_owner_or_admin(user, course.creator_id):
        enrollment = await enrollment_service.get_enrollment(course_id, user.id)
        if enrollment is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Enroll in the course to watch its videos",
            )

    item = course.find_active_item(item_id)
    if item is None:
        raise handle_enrollment_error(ItemNotFoundError())
    if not item.video_url:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Content item has no video",
        )

    try:
        urls = bunny_service.playback_urls(item.video_url)
    except VideoNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        ) from e
    except InvalidVideoUrlError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e

    return PlaybackResponse(
        course_id=course_id,
        item_id=item_id,
        video_id=urls.video_id,
        embed_url=urls.embed_url,
        hls_url=urls.hls_url,
        expires=urls.expires,
    )


@router.get("/library", response_model=LibraryResponse, summary="Browse video library")
async def list_library(
    bunny_service: BunnyServiceDep,
    _user: CreatorUser,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, max_length=200),
) -> LibraryResponse:
    """List library videos to attach to content items (CREATOR or ADMIN only)."""
    try:
        result = await bunny_service.list_library_videos(page, per_page, search)
    except VideoNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        ) from e
    except VideoApiError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    return LibraryResponse(
        videos=[LibraryVideo(**v) for v in result["videos"]],
        total_items=result["total_items"],
        page=result["page"],
    )
