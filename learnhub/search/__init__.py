"""Combined search over courses, communities and posts."""

from .service import SearchService


__all__ = ["SearchService"]
