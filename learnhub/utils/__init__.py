"""Small helpers shared by the entity modules."""

from learnhub.utils.dates import ensure_utc_aware, utcnow
from learnhub.utils.text import contains_text, generate_slug


__all__ = ["contains_text", "ensure_utc_aware", "generate_slug", "utcnow"]
