"""Bunny.net Stream playback signing for course content items.

This service handles:
- Extracting the Bunny video id from a content item's ``video_url``
- Signing iframe embed URLs and HLS playlist URLs
- Listing the Stream library so creators can pick videos for items

SECURITY: token_key and api_key never leave the server.
"""

import hashlib
import re
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode, urlparse

import httpx
import structlog

from learnhub.config.settings import Settings


logger = structlog.get_logger(__name__)

EMBED_HOST = "https://iframe.mediadelivery.net"
STREAM_API_BASE = "https://video.bunnycdn.com"

_PLAYER_URL = re.compile(
    r"iframe\.mediadelivery\.net/(?:embed|play)/(\d+)/([a-f0-9-]+)", re.IGNORECASE
)
_PLAYLIST_URL = re.compile(r"/([a-f0-9-]{36})/playlist\.m3u8", re.IGNORECASE)
_VIDEO_ID = re.compile(r"^[a-f0-9-]{36}$", re.IGNORECASE)
_VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".m4v")


@dataclass(frozen=True)
class VideoRef:
    """A Bunny video identified inside an item's ``video_url``."""

    video_id: str
    library_id: str | None = None


@dataclass(frozen=True)
class PlaybackUrls:
    video_id: str
    embed_url: str
    hls_url: str | None
    expires: int


class VideoError(Exception):
    """Base exception for video delivery errors."""


class VideoNotConfiguredError(VideoError):
    """Bunny.net credentials are missing."""


class InvalidVideoUrlError(VideoError):
    """No Bunny video id could be found in the URL."""


class VideoApiError(VideoError):
    """The Bunny.net Stream API call failed."""


def parse_video_url(url: str) -> VideoRef:
    """Find the Bunny video id (and library, when present) in a URL.

    Accepts a bare video id, a player URL (``/embed/`` or ``/play/``), an HLS
    playlist URL, or a direct file URL whose path contains the id.

    Raises:
        InvalidVideoUrlError: If nothing recognizable is found.
    """
    url = url.strip()
    if _VIDEO_ID.match(url):
        return VideoRef(video_id=url)

    match = _PLAYER_URL.search(url)
    if match:
        return VideoRef(video_id=match.group(2), library_id=match.group(1))

    match = _PLAYLIST_URL.search(url)
    if match:
        return VideoRef(video_id=match.group(1))

    path = urlparse(url).path
    if path.lower().endswith(_VIDEO_EXTENSIONS):
        for segment in path.strip("/").split("/"):
            if _VIDEO_ID.match(segment):
                return VideoRef(video_id=segment)

    raise InvalidVideoUrlError(f"Cannot find a video id in {url!r}")


class BunnyService:
    """Signs time-limited playback URLs.

    Embed token: ``SHA256_HEX(token_key + video_id + expires)``.
    HLS token: ``SHA256_HEX(token_key + "/<video_id>/" + expires)``.
    """

    VIDEO_STATUS: dict[int, str] = {
        0: "created",
        1: "uploading",
        2: "processing",
        3: "encoding",
        4: "finished",
        5: "resolution_finished",
        6: "error",
        7: "upload_failed",
    }

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return self.settings.bunny_configured

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise VideoNotConfiguredError(
                "Video delivery is not configured "
                "(BUNNY_LIBRARY_ID, BUNNY_CDN_HOSTNAME, BUNNY_TOKEN_KEY)"
            )

    def _sign(self, subject: str, expires: int) -> str:
        payload = f"{self.settings.bunny_token_key}{subject}{expires}"
        return hashlib.sha256(payload.encode()).hexdigest()

    def sign_embed_url(
        self, video_id: str, expires: int, library_id: str | None = None
    ) -> str:
        self._require_configured()
        library = library_id or self.settings.bunny_library_id
        query = urlencode({"token": self._sign(video_id, expires), "expires": expires})
        return f"{EMBED_HOST}/embed/{library}/{video_id}?{query}"

    def sign_hls_url(self, video_id: str, expires: int) -> str:
        self._require_configured()
        token_path = f"/{video_id}/"
        token = self._sign(token_path, expires)
        return (
            f"https://{self.settings.bunny_cdn_hostname}/"
            f"bcdn_token={token}&expires={expires}&token_path={token_path}"
            f"/{video_id}/playlist.m3u8"
        )

    def playback_urls(self, video_url: str, now: float | None = None) -> PlaybackUrls:
        """Signed embed URL, plus an HLS URL when a CDN hostname is set.

        Raises:
            VideoNotConfiguredError: If Bunny.net is not configured
            InvalidVideoUrlError: If ``video_url`` holds no video id
        """
        self._require_configured()
        ref = parse_video_url(video_url)
        expires = int(now if now is not None else time.time())
        expires += self.settings.bunny_token_expiry_seconds

        embed_url = self.sign_embed_url(ref.video_id, expires, ref.library_id)
        hls_url = (
            self.sign_hls_url(ref.video_id, expires)
            if self.settings.bunny_cdn_hostname
            else None
        )

        logger.debug("playback_urls_signed", video_id=ref.video_id, expires=expires)
        return PlaybackUrls(
            video_id=ref.video_id, embed_url=embed_url, hls_url=hls_url, expires=expires
        )

    async def list_library_videos(
        self, page: int = 1, per_page: int = 20, search: str | None = None
    ) -> dict[str, Any]:
        """One page of the Stream library.

        Raises:
            VideoNotConfiguredError: If the API key or library id is missing
            VideoApiError: If the API call fails
        """
        if not self.settings.bunny_api_configured:
            raise VideoNotConfiguredError(
                "Video library is not configured (BUNNY_LIBRARY_ID, BUNNY_API_KEY)"
            )

        params: dict[str, str | int] = {"page": page, "itemsPerPage": per_page}
        if search:
            params["search"] = search

        url = f"{STREAM_API_BASE}/library/{self.settings.bunny_library_id}/videos"
        headers = {
            "AccessKey": self.settings.bunny_api_key or "",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.error("video_library_request_failed", error=str(e))
            raise VideoApiError("Video library request failed") from e

        if response.status_code != httpx.codes.OK:
            logger.error(
                "video_library_bad_status",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise VideoApiError(f"Video library returned {response.status_code}")

        data = response.json()
        videos = [
            {
                "video_id": item.get("guid", ""),
                "title": item.get("title") or "Untitled",
                "length": item.get("length", 0),
                "status": self.VIDEO_STATUS.get(item.get("status", 0), "unknown"),
            }
            for item in data.get("items", [])
        ]
        return {"videos": videos, "total_items": data.get("totalItems", 0), "page": page}
