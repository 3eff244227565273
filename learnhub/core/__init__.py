# Core infrastructure
from learnhub.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_request_id,
    set_user_id,
)
from learnhub.core.exceptions import (
    AggregateNotFoundError,
    DomainError,
    RateLimitExceededError,
)
from learnhub.core.locks import AggregateLocks
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.rate_limit import RateLimiter, RateWindow


__all__ = [
    "AggregateLocks",
    "AggregateNotFoundError",
    "DomainError",
    "RateLimitExceededError",
    "RateLimiter",
    "RateWindow",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_request_id",
    "set_user_id",
]
