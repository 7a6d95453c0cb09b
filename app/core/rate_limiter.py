"""
Redis-based rate limiting for public and expensive endpoints.

Fixed-window counters with automatic expiration. If Redis is unreachable the
limiter fails open and the request proceeds.
"""

import logging
import redis
from fastapi import HTTPException, status
from app.core.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Redis-based rate limiter for protecting endpoints.

    The client is created on first use so importing this module never opens
    a connection.
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client = None

    @property
    def redis_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
        return self._client

    def check_rate_limit(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
        error_message: str = "Rate limit exceeded"
    ) -> None:
        """
        Check if a request is within rate limits.

        Args:
            key: Unique identifier for this rate limit (e.g., "signup:203.0.113.7")
            max_requests: Maximum number of requests allowed
            window_seconds: Time window in seconds
            error_message: Custom error message if rate limit exceeded

        Raises:
            HTTPException: 429 Too Many Requests if rate limit exceeded
        """
        try:
            pipe = self.redis_client.pipeline()
            pipe.incr(key)
            pipe.ttl(key)
            count, ttl = pipe.execute()

            if ttl == -1:
                # New key (or one that lost its expiry): start the window
                self.redis_client.expire(key, window_seconds)
                ttl = window_seconds

            if count > max_requests:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail=f"{error_message}. Try again in {ttl} seconds."
                )

        except redis.RedisError as e:
            # Fail open
            logger.warning(f"Redis rate limiter error for {key}: {e}")

    def reset_limit(self, key: str) -> None:
        """Reset the rate limit for a key."""
        try:
            self.redis_client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Redis reset error for {key}: {e}")


# Singleton instance
rate_limiter = RateLimiter(settings.REDIS_URL)
