"""Per-client rate limiting for abuse-prone endpoints.

Limits credential guessing on login, bulk account creation and booking
request spam. Counters live in process memory, so each worker enforces
its own limits.
"""

import logging
import math
import re
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Iterable, NamedTuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from app.core.config import settings
from app.utils.request import get_client_ip

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = "Too many requests. Please try again later."


@dataclass(frozen=True)
class RateLimitRule:
    """Allow `limit` requests per client within `window_seconds`.

    `path` is a route template as produced by normalize_path.
    """

    method: str
    path: str
    limit: int
    window_seconds: int


class RateLimitDecision(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: int


def default_rules() -> list[RateLimitRule]:
    return [
        RateLimitRule("POST", "/api/auth/login", settings.rate_limit_login_per_minute, 60),
        RateLimitRule(
            "POST", "/api/auth/register", settings.rate_limit_register_per_minute, 60
        ),
        RateLimitRule("POST", "/api/auth/verify-practice-tag", 10, 60),
        RateLimitRule("POST", "/api/bookings", settings.rate_limit_bookings_per_hour, 3600),
    ]


def normalize_path(path: str) -> str:
    """Collapse numeric path segments so /bookings/7 matches /bookings/{id}."""
    return re.sub(r"/\d+(?=/|$)", "/{id}", path.rstrip("/") or "/")


class SlidingWindowLimiter:
    """Sliding-window request log keyed by client and route."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        """Record a request for key unless it would exceed the limit."""
        now = self._clock()
        hits = self._hits[key]
        while hits and hits[0] <= now - window_seconds:
            hits.popleft()

        if len(hits) >= limit:
            retry_after = max(1, math.ceil(hits[0] + window_seconds - now))
            return RateLimitDecision(False, 0, retry_after)

        hits.append(now)
        return RateLimitDecision(True, limit - len(hits), window_seconds)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answer 429 once a client exceeds a route's rule.

    Routes without a rule pass straight through.
    """

    def __init__(
        self,
        app,
        rules: Iterable[RateLimitRule] | None = None,
        limiter: SlidingWindowLimiter | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self.rules = {
            (rule.method, rule.path): rule
            for rule in (default_rules() if rules is None else rules)
        }
        self.limiter = limiter or SlidingWindowLimiter()
        self.enabled = enabled

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if not self.enabled:
            return await call_next(request)

        route = normalize_path(request.url.path)
        rule = self.rules.get((request.method, route))
        if rule is None:
            return await call_next(request)

        client_ip = get_client_ip(request) or "unknown"
        decision = self.limiter.hit(
            f"{rule.method}:{rule.path}:{client_ip}", rule.limit, rule.window_seconds
        )

        if not decision.allowed:
            logger.warning(
                f"Rate limit exceeded: {request.method} {route} from {client_ip}"
            )
            return JSONResponse(
                status_code=429,
                content={"detail": TOO_MANY_REQUESTS, "retry_after": decision.retry_after},
                headers={
                    "Retry-After": str(decision.retry_after),
                    "X-RateLimit-Limit": str(rule.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rule.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
