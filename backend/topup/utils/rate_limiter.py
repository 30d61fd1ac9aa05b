"""
Rate limiting middleware using Redis-backed sliding window
"""

import time
import uuid
import logging
from typing import Optional, Tuple
import redis
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from topup.infrastructure.redis_client import get_redis
from topup.infrastructure.settings import get_settings
from topup.infrastructure.logging_config import trace_id_context
from topup.utils.metrics import record_rate_limit_exceeded

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Redis-backed rate limiter using sliding window algorithm.

    Uses Redis sorted sets: one member per request, scored by timestamp.
    Key format: "ratelimit:{endpoint_group}:{identifier}"
    """

    def __init__(
        self,
        redis_client,
        limit: int,
        window_seconds: int = 60,
    ):
        self.redis = redis_client
        self.limit = limit
        self.window_seconds = window_seconds

    def get_key(self, endpoint_group: str, identifier: str) -> str:
        return f"ratelimit:{endpoint_group}:{identifier}"

    def check_rate_limit(
        self,
        endpoint_group: str,
        identifier: str,
    ) -> Tuple[bool, int, int, int]:
        """
        Check if request is within rate limit.

        Returns:
            Tuple of (is_allowed, remaining, limit, reset_time)
        """
        key = self.get_key(endpoint_group, identifier)
        now = time.time()
        window_start = now - self.window_seconds

        self.redis.zremrangebyscore(key, 0, window_start)
        current_count = self.redis.zcard(key)

        if current_count >= self.limit:
            oldest_entry = self.redis.zrange(key, 0, 0, withscores=True)
            if oldest_entry:
                reset_time = int(oldest_entry[0][1]) + self.window_seconds
            else:
                reset_time = int(now) + self.window_seconds
            return False, 0, self.limit, reset_time

        self.redis.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
        self.redis.expire(key, self.window_seconds + 10)

        remaining = max(0, self.limit - current_count - 1)
        return True, remaining, self.limit, int(now) + self.window_seconds


def get_client_identifier(request: Request) -> str:
    """
    Extract client identifier from request (IP address).

    Handles proxy headers (X-Forwarded-For, X-Real-IP).
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def endpoint_group_for_path(path: str) -> Optional[str]:
    """Map a request path to its rate-limit and logging group (None for health and metrics routes)"""
    settings = get_settings()
    if path.startswith(settings.WEBHOOKS_V1_PREFIX + "/"):
        return "webhook"
    elif path.startswith(settings.ADMIN_V1_PREFIX + "/"):
        return "admin"
    elif path.startswith(settings.API_V1_PREFIX + "/"):
        return "api"
    return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting per endpoint group:
    - /webhooks/v1/* -> webhook
    - /admin/v1/* -> admin
    - /api/v1/* -> api

    The Redis client is looked up per request. When Redis is unreachable the
    request is let through and a warning is logged.
    """

    def __init__(self, app):
        super().__init__(app)
        self.settings = get_settings()
        self.limits = {
            "webhook": self.settings.RL_WEBHOOK_PER_MIN,
            "admin": self.settings.RL_ADMIN_PER_MIN,
            "api": self.settings.RL_API_PER_MIN,
        }

    async def dispatch(self, request: Request, call_next):
        endpoint_group = endpoint_group_for_path(request.url.path)
        if not endpoint_group:
            return await call_next(request)

        identifier = get_client_identifier(request)
        limiter = RateLimiter(redis_client=get_redis(), limit=self.limits[endpoint_group])
        trace_id = trace_id_context.get()

        try:
            is_allowed, remaining, limit, reset_time = limiter.check_rate_limit(
                endpoint_group=endpoint_group,
                identifier=identifier,
            )
        except redis.RedisError as e:
            logger.warning(f"Rate limiter unavailable, allowing request: group={endpoint_group}, error={e}, trace_id={trace_id}")
            return await call_next(request)

        if not is_allowed:
            record_rate_limit_exceeded(group=endpoint_group)
            logger.warning(
                "Rate limit exceeded",
                extra={"endpoint_group": endpoint_group, "identifier": identifier, "path": request.url.path},
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error": {
                        "code": "RATE_LIMITED",
                        "message": f"Rate limit exceeded. Maximum {limit} requests per minute.",
                        "details": {
                            "endpoint_group": endpoint_group,
                            "reset_at": reset_time,
                        },
                        "trace_id": trace_id,
                    }
                },
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset_time),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_time)
        return response
