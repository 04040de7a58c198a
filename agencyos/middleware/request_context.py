"""
Request context middleware.

WHAT: Captures client IP, user agent and a request ID for every incoming
request and exposes them for the rest of the request lifecycle.

WHY: Audit entries record who did what from where, and rate limits for
public endpoints are keyed by client IP. Services that write audit rows do
not receive the Request object, so the context travels in a ContextVar.

HOW: The middleware stores a RequestContext both on ``request.state`` and in
a ContextVar, and echoes the request ID in the X-Request-ID response header.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class RequestContext:
    """
    Request-scoped data for audit logging and log correlation.

    Fields:
    - request_id: Caller-supplied X-Request-ID or a fresh UUID4
    - ip_address: Client IP (proxy headers honoured)
    - user_agent: Raw User-Agent header
    - path / method: Route being served
    """

    request_id: str
    ip_address: str
    user_agent: Optional[str]
    path: str
    method: str


# WHY: each async request sees its own value
_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """
    Get the context of the request being served.

    Returns:
        RequestContext inside a request, None otherwise (scheduler jobs,
        tests calling services directly)
    """
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address, handling proxy headers.

    HOW: Checks headers in order of trust:
    1. X-Real-IP (set by nginx-style proxies)
    2. X-Forwarded-For (first entry is the original client)
    3. request.client.host (direct connection)

    Security Note:
        These headers can be spoofed when the API is not behind a proxy
        that overwrites them.
    """
    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip.strip()

    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    """Return the User-Agent header, if any."""
    return request.headers.get("User-Agent")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that builds the RequestContext for every request.

    Example:
        ctx = get_request_context()
        logger.info(f"Request {ctx.request_id} from {ctx.ip_address}")
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        context = RequestContext(
            request_id=request_id,
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context
        token = _request_context.set(context)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            _request_context.reset(token)
