"""Video delivery: signed Bunny.net Stream playback for course items."""

from .service import BunnyService, parse_video_url


__all__ = ["BunnyService", "parse_video_url"]
