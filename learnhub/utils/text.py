import re
import unicodedata


def _fold(value: str) -> str:
    value = unicodedata.normalize("NFKD", value)
    return value.encode("ascii", "ignore").decode("ascii").lower()


def generate_slug(title: str) -> str:
    """Generate URL-friendly slug from title."""
    slug = _fold(title).strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    return re.sub(r"[-\s]+", "-", slug).strip("-")


def contains_text(haystack: str | None, needle: str | None) -> bool:
    """Accent- and case-insensitive substring match; an empty needle matches."""
    if not needle:
        return True
    return _fold(needle.strip()) in _fold(haystack or "")
