# dhakacart/services/rate_limiter.py
from dataclasses import dataclass

import redis

from dhakacart.utils.retry import redis_retry
from dhakacart.utils.settings import (
    RATE_LIMIT_MAX,
    RATE_LIMIT_WINDOW_SECONDS,
    REDIS_SOCKET_TIMEOUT,
    REDIS_URL,
)
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int


class RateLimiter:
    """
    Stale okno czasowe per klient (IP).
    Licznik w redisie z EXPIRE, wiec nie trzeba recznie czyscic starych wpisow.
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        url: str | None = None,
        max_requests: int = RATE_LIMIT_MAX,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
    ):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
            socket_timeout=REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=REDIS_SOCKET_TIMEOUT,
        )
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @redis_retry()
    def hit(self, client_key: str) -> RateLimitResult:
        key = f"ratelimit:{client_key}"

        count = self.redis.incr(key)
        if count == 1:
            # pierwsze zadanie w oknie startuje odliczanie
            self.redis.expire(key, self.window_seconds)

        ttl = self.redis.ttl(key)
        if ttl < 0:
            self.redis.expire(key, self.window_seconds)
            ttl = self.window_seconds

        if count > self.max_requests:
            logger.warning(f"Rate limit exceeded for {client_key} ({count}/{self.max_requests})")
            return RateLimitResult(allowed=False, remaining=0, retry_after=ttl)

        return RateLimitResult(
            allowed=True,
            remaining=self.max_requests - count,
            retry_after=0,
        )

    def close(self) -> None:
        self.redis.close()
