"""
Rate limiting for API endpoints.

WHAT: Per-client request budgets for four endpoint classes (read, mutation,
auth, strict) with fixed-window counters.

WHY: Rate limiting is a best-effort abuse guard:
1. Slows down brute force against login and invitation tokens
2. Keeps one noisy client from starving the others
3. Protects sensitive operations (password changes) with a strict budget

HOW: Counters live behind a small CounterStore interface:
- InMemoryCounterStore: process-local dict with an explicit expiry sweep
- RedisCounterStore: INCR + EXPIRE, shared between workers
The RateLimiter turns a counter value into a RateLimitResult, and the
``rate_limit(category)`` FastAPI dependency raises RateLimitExceeded and sets
the X-RateLimit-* headers.

Design decisions:
- Fail-open: If the store is unavailable, allow requests (prevents self-DOS)
- Authenticated endpoints are keyed by user id, public ones by client IP
- No persistence across restarts; counters are advisory
"""

import asyncio
import enum
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as aioredis
from fastapi import Depends, Request, Response

from agencyos.core.config import settings
from agencyos.core.deps import get_current_user
from agencyos.core.exceptions import RateLimitExceeded
from agencyos.middleware.request_context import get_client_ip
from agencyos.models.user import User


logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================


class RateLimitCategory(str, enum.Enum):
    """
    Endpoint classes sharing one budget.

    - READ: listing and fetching data
    - MUTATION: creating and editing data
    - AUTH: login and invitation acceptance (credential guessing targets)
    - STRICT: sensitive operations such as password changes
    """

    READ = "read"
    MUTATION = "mutation"
    AUTH = "auth"
    STRICT = "strict"


@dataclass
class RateLimitConfig:
    """
    Configuration for one rate limit budget.

    WHY: Different endpoint classes need different limits; a password
    change is far more sensitive than reading the request board.
    """

    requests_per_window: int = 60
    """Maximum number of requests allowed in the window."""

    window_seconds: int = 60
    """Duration of the rate limit window in seconds."""

    key_prefix: str = "ratelimit"
    """Counter key prefix, namespacing keys in a shared store."""


def default_category_configs() -> Dict[RateLimitCategory, RateLimitConfig]:
    """Build the per-category budgets from settings."""
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    return {
        RateLimitCategory.READ: RateLimitConfig(settings.RATE_LIMIT_READ_PER_MINUTE, window),
        RateLimitCategory.MUTATION: RateLimitConfig(settings.RATE_LIMIT_MUTATION_PER_MINUTE, window),
        RateLimitCategory.AUTH: RateLimitConfig(settings.RATE_LIMIT_AUTH_PER_MINUTE, window),
        RateLimitCategory.STRICT: RateLimitConfig(settings.RATE_LIMIT_STRICT_PER_MINUTE, window),
    }


@dataclass
class RateLimitResult:
    """
    Result of a rate limit check.

    WHY: Carries everything needed to decide, to set the X-RateLimit-*
    headers, and to compute the Retry-After hint.
    """

    allowed: bool
    """Whether the request is allowed (under limit)."""

    remaining: int
    """Number of requests remaining in current window (-1 if unknown)."""

    reset_after: int
    """Seconds until the rate limit window resets."""

    limit: int
    """Maximum requests allowed per window."""


# ============================================================================
# Counter Stores
# ============================================================================


class CounterStore(ABC):
    """
    Storage for fixed-window request counters.

    WHY: Call sites depend only on this interface, so the in-process store
    can be swapped for a shared one without touching endpoints.
    """

    @abstractmethod
    async def increment(self, key: str, window_seconds: int) -> Tuple[int, int]:
        """
        Count one hit for ``key``.

        Args:
            key: Counter key
            window_seconds: Window length used when the counter is created

        Returns:
            Tuple of (count in the current window, seconds until it resets)
        """


class InMemoryCounterStore(CounterStore):
    """
    Process-local fixed-window counters.

    HOW: Each key maps to (count, window_end). A window that has ended is
    restarted on the next hit. Expired keys are swept every
    ``sweep_interval`` seconds so idle clients do not accumulate.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 60.0,
    ):
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._next_sweep = clock() + sweep_interval
        self._lock = asyncio.Lock()

    async def increment(self, key: str, window_seconds: int) -> Tuple[int, int]:
        async with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)

            count, window_end = self._counters.get(key, (0, 0.0))
            if now >= window_end:
                count, window_end = 0, now + window_seconds

            count += 1
            self._counters[key] = (count, window_end)
            return count, max(1, int(window_end - now + 0.999))

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, window_end) in self._counters.items() if window_end <= now]
        for key in expired:
            del self._counters[key]
        self._next_sweep = now + self._sweep_interval

    def __len__(self) -> int:
        return len(self._counters)


class RedisCounterStore(CounterStore):
    """
    Redis-backed counters shared by every worker.

    HOW: Uses a pipeline for INCR + TTL; the expiry is set only when the key
    is new so the window stays fixed instead of sliding on every hit.
    """

    def __init__(self, redis_client: aioredis.Redis):
        self._redis = redis_client

    async def increment(self, key: str, window_seconds: int) -> Tuple[int, int]:
        pipe = self._redis.pipeline()
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = await pipe.execute()

        # -1 means the key exists without an expiry (just created)
        if ttl is None or ttl < 0:
            await self._redis.expire(key, window_seconds)
            ttl = window_seconds
        return int(count), int(ttl)


# ============================================================================
# Rate Limiter Service
# ============================================================================


class RateLimiter:
    """
    Rate limiter applying per-category budgets on top of a CounterStore.
    """

    def __init__(
        self,
        store: CounterStore,
        configs: Optional[Dict[RateLimitCategory, RateLimitConfig]] = None,
    ):
        """
        Args:
            store: Counter storage
            configs: Budget per category (defaults from settings)
        """
        self._store = store
        self._configs = configs or default_category_configs()

    def config_for(self, category: RateLimitCategory) -> RateLimitConfig:
        return self._configs[category]

    def _build_key(self, identifier: str, category: RateLimitCategory) -> str:
        """Format: {prefix}:{category}:{identifier}"""
        config = self.config_for(category)
        return f"{config.key_prefix}:{category.value}:{identifier}"

    async def check(self, identifier: str, category: RateLimitCategory) -> RateLimitResult:
        """
        Count a request and decide whether it is allowed.

        Args:
            identifier: Client identifier ("user:12" or "ip:10.0.0.1")
            category: Endpoint class

        Returns:
            RateLimitResult with allowed status and metadata
        """
        config = self.config_for(category)
        key = self._build_key(identifier, category)

        try:
            count, reset_after = await self._store.increment(key, config.window_seconds)
        except Exception as e:
            # Fail-open: a broken counter store must not take the API down
            logger.error(
                f"Rate limit store error (allowing request): {e}",
                extra={"identifier": identifier, "category": category.value},
            )
            return RateLimitResult(
                allowed=True,
                remaining=-1,
                reset_after=config.window_seconds,
                limit=config.requests_per_window,
            )

        return RateLimitResult(
            allowed=count <= config.requests_per_window,
            remaining=max(0, config.requests_per_window - count),
            reset_after=reset_after,
            limit=config.requests_per_window,
        )


# ============================================================================
# Global Rate Limiter Instance
# ============================================================================


_rate_limiter: Optional[RateLimiter] = None


def build_counter_store() -> CounterStore:
    """Create the counter store selected by RATE_LIMIT_BACKEND."""
    if settings.RATE_LIMIT_BACKEND == "redis":
        redis_client = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        return RedisCounterStore(redis_client)
    return InMemoryCounterStore()


async def get_rate_limiter() -> RateLimiter:
    """
    Get or create the global rate limiter instance.

    Returns:
        RateLimiter instance
    """
    global _rate_limiter

    if _rate_limiter is None:
        _rate_limiter = RateLimiter(build_counter_store())

    return _rate_limiter


def set_rate_limiter(limiter: Optional[RateLimiter]) -> None:
    """Replace the global limiter (None resets to lazy creation)."""
    global _rate_limiter
    _rate_limiter = limiter


async def check_rate_limit(identifier: str, category: RateLimitCategory) -> RateLimitResult:
    """
    Check a budget and raise if it is exhausted.

    Raises:
        RateLimitExceeded: If rate limit is exceeded (429)
    """
    limiter = await get_rate_limiter()
    result = await limiter.check(identifier, category)

    if not result.allowed:
        logger.warning(f"Rate limit exceeded for {identifier} ({category.value})")
        raise RateLimitExceeded(
            message=f"Too many requests. Try again in {result.reset_after} seconds.",
            retry_after=result.reset_after,
            limit=result.limit,
        )

    return result


def _set_headers(response: Response, result: RateLimitResult) -> None:
    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(max(result.remaining, 0))
    response.headers["X-RateLimit-Reset"] = str(result.reset_after)


# ============================================================================
# Dependencies for Endpoint Rate Limiting
# ============================================================================


def rate_limit(category: RateLimitCategory):
    """
    FastAPI dependency factory for authenticated endpoints.

    WHY: Keys by user id so colleagues behind one office IP do not share a
    budget. get_current_user is cached per request, so it adds no query.

    Usage:
        @router.get("", dependencies=[Depends(rate_limit(RateLimitCategory.READ))])
    """

    async def dependency(
        response: Response,
        current_user: User = Depends(get_current_user),
    ) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        result = await check_rate_limit(f"user:{current_user.id}", category)
        _set_headers(response, result)

    return dependency


def rate_limit_by_ip(category: RateLimitCategory):
    """
    FastAPI dependency factory for public endpoints (login, invitations).
    """

    async def dependency(request: Request, response: Response) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        result = await check_rate_limit(f"ip:{get_client_ip(request)}", category)
        _set_headers(response, result)

    return dependency
