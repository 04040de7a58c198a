"""
Middleware package.

WHY: Middleware and request-scoped dependencies provide cross-cutting
concerns (request context, rate limiting) that apply to all endpoints.
"""

from agencyos.middleware.request_context import (
    RequestContextMiddleware,
    get_request_context,
    get_client_ip,
    get_user_agent,
    RequestContext,
)
from agencyos.middleware.rate_limiter import (
    CounterStore,
    InMemoryCounterStore,
    RedisCounterStore,
    RateLimiter,
    RateLimitCategory,
    RateLimitConfig,
    RateLimitResult,
    check_rate_limit,
    get_rate_limiter,
    set_rate_limiter,
    rate_limit,
    rate_limit_by_ip,
)

__all__ = [
    # Request context
    "RequestContextMiddleware",
    "get_request_context",
    "get_client_ip",
    "get_user_agent",
    "RequestContext",
    # Rate limiting
    "CounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "RateLimiter",
    "RateLimitCategory",
    "RateLimitConfig",
    "RateLimitResult",
    "check_rate_limit",
    "get_rate_limiter",
    "set_rate_limiter",
    "rate_limit",
    "rate_limit_by_ip",
]
