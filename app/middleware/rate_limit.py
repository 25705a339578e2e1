"""
Rate limiting middleware using a Redis fixed window
"""

import logging
from typing import Optional, Tuple
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from redis.exceptions import RedisError

from app.core.config import settings

# Configure logging
logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limit admin write traffic per client; reads and viewer sockets are never limited"""

    def __init__(self, app, redis_client=None):
        super().__init__(app)
        self.redis_client = redis_client
        self.rate_limit_requests = settings.rate_limit_requests
        self.rate_limit_window = settings.rate_limit_window_seconds

    async def dispatch(self, request: Request, call_next):
        """Process request with rate limiting"""

        # The client is created at startup, after middleware is built
        redis_client = self.redis_client or getattr(request.app.state, "redis", None)
        if not redis_client:
            return await call_next(request)

        rate_limit_key = self._get_rate_limit_key(request)
        if not rate_limit_key:
            return await call_next(request)

        is_allowed, retry_after = await self._check_rate_limit(redis_client, rate_limit_key)
        if not is_allowed:
            logger.warning(f"Rate limit exceeded for key: {rate_limit_key}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Rate limit exceeded",
                    "retry_after": retry_after
                },
                headers={"Retry-After": str(retry_after)}
            )

        response = await call_next(request)
        await self._record_request(redis_client, rate_limit_key)
        return response

    def _get_rate_limit_key(self, request: Request) -> Optional[str]:
        """Get rate limit key for match write endpoints"""
        path = request.url.path
        prefix = f"{settings.api_v1_prefix}/matches/"
        if not path.startswith(prefix):
            return None

        client_ip = request.client.host if request.client else "unknown"
        if request.method == "PUT" and "/update/" in path:
            return f"rate_limit:match_update:{client_ip}"
        if request.method == "POST" and path.endswith("/create"):
            return f"rate_limit:match_create:{client_ip}"
        return None

    async def _check_rate_limit(self, redis_client, key: str) -> Tuple[bool, int]:
        """Check if request is within rate limit"""
        try:
            request_count = await redis_client.get(key)
            request_count = int(request_count) if request_count else 0

            if request_count >= self.rate_limit_requests:
                ttl = await redis_client.ttl(key)
                retry_after = max(1, ttl) if ttl > 0 else self.rate_limit_window
                return False, retry_after

            return True, 0

        except RedisError as e:
            logger.error(f"Error checking rate limit for key {key}: {e}")
            # Allow request if rate limiting fails
            return True, 0

    async def _record_request(self, redis_client, key: str):
        """Record a request for rate limiting"""
        try:
            pipe = redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.rate_limit_window)
            await pipe.execute()
        except RedisError as e:
            logger.error(f"Error recording request for key {key}: {e}")
