"""Redis client configuration and the Redis-backed idempotency store."""

from typing import cast

import redis

from app.config import settings
from app.schemas.idempotency import IdempotencyRecord

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


# Compare-and-set on the stored record's owner token
REPLACE_IF_OWNED_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current or cjson.decode(current)['token'] ~= ARGV[1] then
    return 0
end
redis.call('SET', KEYS[1], ARGV[2], 'PX', ARGV[3])
return 1
"""

DELETE_IF_OWNED_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current or cjson.decode(current)['token'] ~= ARGV[1] then
    return 0
end
redis.call('DEL', KEYS[1])
return 1
"""


class RedisIdempotencyStore:
    """
    Idempotency records stored as JSON strings with a Redis TTL.

    ``SET NX PX`` makes the first reservation atomic across processes;
    Redis evicts expired records, so an abandoned reservation frees
    its key on its own. Completing and releasing run as Lua scripts that
    check the owner token and write in one step.
    """

    def __init__(self, redis_client: redis.Redis, prefix: str = "idempotency:"):
        """Initialize store with Redis client and key prefix."""
        self.redis = redis_client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @staticmethod
    def _ttl_ms(record: IdempotencyRecord, now_ms: int) -> int:
        return max(record.expires_at_ms - now_ms, 1)

    def insert_if_absent(self, record: IdempotencyRecord, now_ms: int) -> bool:
        """
        Store the record only if no live record holds the key.

        Args:
            record: Record to insert
            now_ms: Current time in epoch milliseconds

        Returns:
            True if the record was stored
        """
        stored = self.redis.set(
            self._key(record.key),
            record.model_dump_json(),
            nx=True,
            px=self._ttl_ms(record, now_ms),
        )
        return bool(stored)

    def get(self, key: str, now_ms: int) -> IdempotencyRecord | None:
        """Return the live record for a key, if any."""
        raw = cast(str | bytes | None, self.redis.get(self._key(key)))
        if raw is None:
            return None
        record = IdempotencyRecord.model_validate_json(raw)
        if record.is_expired(now_ms):
            return None
        return record

    def replace_if_owned(self, record: IdempotencyRecord, now_ms: int) -> bool:
        """Overwrite a record held by the same token, refreshing its TTL."""
        replaced = self.redis.eval(
            REPLACE_IF_OWNED_SCRIPT,
            1,
            self._key(record.key),
            record.token,
            record.model_dump_json(),
            self._ttl_ms(record, now_ms),
        )
        return bool(replaced)

    def delete_if_owned(self, key: str, token: str) -> bool:
        """Delete a record held by ``token``."""
        deleted = self.redis.eval(DELETE_IF_OWNED_SCRIPT, 1, self._key(key), token)
        return bool(deleted)
