"""Per-request logging context and access logging."""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from learnhub.core.context import (
    PurchaseContext,
    clear_context,
    set_request_id,
    set_trace_id,
)
from learnhub.core.logging import get_logger


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
TRACE_ID_HEADER = "X-Trace-ID"
TRACEPARENT_HEADER = "traceparent"
# Payment providers echo the reference issued at purchase initiation
PURCHASE_REFERENCE_HEADER = "X-Purchase-Reference"


def trace_id_from_headers(request: Request) -> str | None:
    """Trace id from ``X-Trace-ID`` or the W3C ``traceparent`` header.

    traceparent format: {version}-{trace-id}-{parent-id}-{trace-flags}
    """
    explicit = request.headers.get(TRACE_ID_HEADER)
    if explicit:
        return explicit

    parts = (request.headers.get(TRACEPARENT_HEADER) or "").split("-")
    if len(parts) == 4 and parts[1]:
        return parts[1]
    return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request, trace and purchase ids for the duration of a request.

    The request id is echoed in ``X-Request-ID``; when the caller sends
    ``X-Purchase-Reference`` it is echoed too, so provider webhook retries
    can be matched to our log lines.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
        slow_request_ms: float = 1000.0,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])
        self.slow_request_ms = slow_request_ms

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_trace_id(trace_id_from_headers(request))

        purchase_reference = request.headers.get(PURCHASE_REFERENCE_HEADER)
        access_log = self.log_requests and not request.url.path.startswith(
            self.exclude_paths
        )

        try:
            if purchase_reference:
                with PurchaseContext(purchase_reference):
                    response = await call_next(request)
            else:
                response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=self._elapsed_ms(started),
            )
            raise
        else:
            if access_log:
                self._log_response(request, response, self._elapsed_ms(started))
            response.headers[REQUEST_ID_HEADER] = request_id
            if purchase_reference:
                response.headers[PURCHASE_REFERENCE_HEADER] = purchase_reference
            return response
        finally:
            clear_context()

    def _log_response(self, request: Request, response: Response, duration_ms: float) -> None:
        slow = duration_ms >= self.slow_request_ms
        log = logger.warning if response.status_code >= 500 or slow else logger.info
        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            slow=slow,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
