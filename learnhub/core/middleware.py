"""Request middleware for context management and access logging."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from learnhub.core.context import clear_context, set_request_id, set_trace_id


logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request/trace IDs to the logging context and log each request.

    The request ID is taken from ``X-Request-ID`` when the caller provides one
    and echoed back on the response either way.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"
    TRACEPARENT_HEADER = "traceparent"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or ["/health"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()

        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        trace_id = request.headers.get(self.TRACE_ID_HEADER) or self._extract_traceparent(
            request.headers.get(self.TRACEPARENT_HEADER)
        )
        if trace_id:
            set_trace_id(trace_id)

        request.state.request_id = request_id
        should_log = self.log_requests and not self._should_exclude(request.url.path)

        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                query=str(request.query_params) if request.query_params else None,
                client_ip=self._get_client_ip(request),
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        else:
            if should_log:
                log_method = (
                    logger.warning if response.status_code >= 400 else logger.info
                )
                log_method(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()

    def _should_exclude(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.exclude_paths)

    def _get_client_ip(self, request: Request) -> str | None:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip
        return request.client.host if request.client else None

    def _extract_traceparent(self, traceparent: str | None) -> str | None:
        """Extract the trace ID from a W3C ``traceparent`` header.

        Format: {version}-{trace-id}-{parent-id}-{trace-flags}
        """
        if not traceparent:
            return None
        parts = traceparent.split("-")
        return parts[1] if len(parts) >= 2 else None
