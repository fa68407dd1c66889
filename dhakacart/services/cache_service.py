# dhakacart/services/cache_service.py
import json
from typing import Any

import redis
from redis.exceptions import RedisError

from dhakacart.utils.retry import redis_retry
from dhakacart.utils.settings import REDIS_SOCKET_TIMEOUT, REDIS_URL
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCT_LIST_PREFIX = "products:"


def product_key(product_id: int) -> str:
    return f"product:{product_id}"


class CacheService:
    """
    Read-through cache nad redisem.
    -tylko zapytania do odczytu (lista produktow, szczegoly produktu)
    -uniewaznienie przy kazdym zapisie (delete / delete_prefix)
    -awaria redisa = odczyt z bazy, logujemy i idziemy dalej
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
            socket_timeout=REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=REDIS_SOCKET_TIMEOUT,
        )

    @redis_retry()
    def _get(self, key: str):
        return self.redis.get(key)

    @redis_retry()
    def _setex(self, key: str, ttl: int, value: str):
        return self.redis.setex(key, ttl, value)

    @redis_retry()
    def _delete(self, *keys: str) -> int:
        return self.redis.delete(*keys)

    @redis_retry()
    def _keys_with_prefix(self, prefix: str) -> list:
        return list(self.redis.scan_iter(match=f"{prefix}*"))

    def get_json(self, key: str) -> Any | None:
        try:
            raw = self._get(key)
        except RedisError as e:
            logger.warning(f"Cache GET {key} failed: {e}")
            return None

        return json.loads(raw) if raw else None

    def set_json(self, key: str, ttl: int, value: Any) -> None:
        try:
            self._setex(key, ttl, json.dumps(value, default=str))
        except RedisError as e:
            logger.warning(f"Cache SETEX {key} failed: {e}")

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return self._delete(*keys)
        except RedisError as e:
            logger.error(f"Cache DEL {keys} failed: {e}")
            return 0

    def delete_prefix(self, prefix: str) -> int:
        try:
            keys = self._keys_with_prefix(prefix)
            if not keys:
                return 0
            return self._delete(*keys)
        except RedisError as e:
            logger.error(f"Cache invalidation of {prefix}* failed: {e}")
            return 0

    def invalidate_products(self, product_ids=()) -> None:
        removed = self.delete_prefix(PRODUCT_LIST_PREFIX)
        removed += self.delete(*[product_key(pid) for pid in product_ids])
        logger.info(f"Invalidated {removed} product cache entries")

    def ping(self) -> bool:
        return bool(self.redis.ping())

    def close(self) -> None:
        self.redis.close()
