"""Tests for Bunny.net playback signing and library listing."""

import hashlib
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from learnhub.config.settings import Settings
from learnhub.video.service import (
    BunnyService,
    InvalidVideoUrlError,
    VideoApiError,
    VideoNotConfiguredError,
    parse_video_url,
)


VIDEO_ID = "3f2b9c1e-8d4a-4b6f-9e2c-1a7d5b3c9e0f"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="testing",
        bunny_library_id="12345",
        bunny_cdn_hostname="vz-test.b-cdn.net",
        bunny_token_key="token-key",
        bunny_token_expiry_seconds=3600,
        bunny_api_key="api-key",
    )


class TestParseVideoUrl:
    """Tests for parse_video_url function."""

    def test_bare_id(self) -> None:
        ref = parse_video_url(f"  {VIDEO_ID} ")
        assert ref.video_id == VIDEO_ID
        assert ref.library_id is None

    @pytest.mark.parametrize("kind", ["embed", "play"])
    def test_player_url(self, kind: str) -> None:
        ref = parse_video_url(f"https://iframe.mediadelivery.net/{kind}/999/{VIDEO_ID}")
        assert ref.video_id == VIDEO_ID
        assert ref.library_id == "999"

    def test_playlist_url(self) -> None:
        ref = parse_video_url(f"https://vz-test.b-cdn.net/{VIDEO_ID}/playlist.m3u8")
        assert ref.video_id == VIDEO_ID

    def test_direct_file_url(self) -> None:
        ref = parse_video_url(f"https://cdn.example.com/videos/{VIDEO_ID}/play_720p.mp4")
        assert ref.video_id == VIDEO_ID

    @pytest.mark.parametrize(
        "url",
        ["https://youtube.com/watch?v=abc", "not-a-video", "https://cdn.example.com/a.mp4"],
    )
    def test_unrecognized(self, url: str) -> None:
        with pytest.raises(InvalidVideoUrlError):
            parse_video_url(url)


class TestSigning:
    """Token format and expiry."""

    def test_embed_token(self, settings: Settings) -> None:
        service = BunnyService(settings)
        url = service.sign_embed_url(VIDEO_ID, 1700000000)

        expected = hashlib.sha256(f"token-key{VIDEO_ID}1700000000".encode()).hexdigest()
        assert url == (
            f"https://iframe.mediadelivery.net/embed/12345/{VIDEO_ID}"
            f"?token={expected}&expires=1700000000"
        )

    def test_hls_token_uses_path(self, settings: Settings) -> None:
        service = BunnyService(settings)
        url = service.sign_hls_url(VIDEO_ID, 1700000000)

        expected = hashlib.sha256(f"token-key/{VIDEO_ID}/1700000000".encode()).hexdigest()
        assert url.startswith(f"https://vz-test.b-cdn.net/bcdn_token={expected}")
        assert url.endswith(f"/{VIDEO_ID}/playlist.m3u8")

    def test_playback_urls_expiry(self, settings: Settings) -> None:
        urls = BunnyService(settings).playback_urls(VIDEO_ID, now=1000.7)

        assert urls.expires == 1000 + 3600
        assert urls.video_id == VIDEO_ID
        assert "expires=4600" in urls.embed_url
        assert urls.hls_url is not None

    def test_player_url_keeps_its_library(self, settings: Settings) -> None:
        urls = BunnyService(settings).playback_urls(
            f"https://iframe.mediadelivery.net/embed/777/{VIDEO_ID}", now=0
        )
        assert f"/embed/777/{VIDEO_ID}?" in urls.embed_url

    def test_not_configured(self) -> None:
        service = BunnyService(Settings(environment="testing", bunny_token_key=None))
        assert service.is_configured is False
        with pytest.raises(VideoNotConfiguredError):
            service.playback_urls(VIDEO_ID)


class TestLibrary:
    """Library listing through the Stream API."""

    @pytest.mark.asyncio
    async def test_lists_videos(self, settings: Settings) -> None:
        request = httpx.Request("GET", "https://video.bunnycdn.com/library/12345/videos")
        response = httpx.Response(
            200,
            json={
                "totalItems": 1,
                "items": [{"guid": VIDEO_ID, "title": "Intro", "length": 90, "status": 4}],
            },
            request=request,
        )

        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=response)) as get:
            result = await BunnyService(settings).list_library_videos(search="intro")

        assert result == {
            "videos": [
                {"video_id": VIDEO_ID, "title": "Intro", "length": 90, "status": "finished"}
            ],
            "total_items": 1,
            "page": 1,
        }
        assert get.call_args.kwargs["headers"]["AccessKey"] == "api-key"
        assert get.call_args.kwargs["params"]["search"] == "intro"

    @pytest.mark.asyncio
    async def test_bad_status(self, settings: Settings) -> None:
        request = httpx.Request("GET", "https://video.bunnycdn.com/library/12345/videos")
        response = httpx.Response(401, text="unauthorized", request=request)

        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=response)):
            with pytest.raises(VideoApiError):
                await BunnyService(settings).list_library_videos()

    @pytest.mark.asyncio
    async def test_requires_api_key(self) -> None:
        service = BunnyService(
            Settings(environment="testing", bunny_library_id="1", bunny_api_key=None)
        )
        with pytest.raises(VideoNotConfiguredError):
            await service.list_library_videos()
