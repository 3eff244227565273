"""Pydantic schemas for video delivery."""

from uuid import UUID

from pydantic import BaseModel, Field


class VideoConfigResponse(BaseModel):
    """Whether playback signing is available; never carries secrets."""

    configured: bool = Field(..., description="Whether Bunny.net is configured")
    library_id: str | None = None
    cdn_hostname: str | None = Field(
        default=None, description="CDN hostname for thumbnails (e.g., vz-xxx.b-cdn.net)"
    )


class PlaybackResponse(BaseModel):
    """Signed, time-limited URLs for one content item."""

    course_id: UUID
    item_id: UUID
    video_id: str
    embed_url: str = Field(..., description="Signed iframe embed URL")
    hls_url: str | None = Field(default=None, description="Signed HLS playlist URL")
    expires: int = Field(..., description="UNIX timestamp the signatures expire at")


class LibraryVideo(BaseModel):
    video_id: str
    title: str
    length: int = Field(default=0, description="Duration in seconds")
    status: str = "unknown"


class LibraryResponse(BaseModel):
    videos: list[LibraryVideo] = Field(default_factory=list)
    total_items: int = 0
    page: int = 1
