"""Base exceptions shared by every domain package.

Each package defines its own ``<Package>Error(DomainError)`` hierarchy in its
service module; the HTTP layer maps the ``code`` attribute to a status code.
"""

from uuid import UUID


class DomainError(Exception):
    """Base domain error carrying a user-facing message and a machine code."""

    def __init__(self, message: str, code: str = "domain_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AggregateNotFoundError(DomainError):
    """The requested course, community, post or event does not exist.

    Soft-deleted aggregates are reported as not found as well.
    """

    def __init__(self, kind: str, aggregate_id: UUID | str, message: str | None = None):
        self.kind = kind
        self.aggregate_id = aggregate_id
        super().__init__(
            message or f"{kind.capitalize()} not found",
            "aggregate_not_found",
        )


class RateLimitExceededError(DomainError):
    """Too many writes in the current window."""

    def __init__(self, message: str = "Rate limit exceeded, try again later"):
        super().__init__(message, "rate_limit_exceeded")
