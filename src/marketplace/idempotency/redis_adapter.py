"""Redis-backed idempotency store for production.

Relies on Redis key expiry for the TTL, so entries vanish without a sweeper.
"""

import redis

from marketplace.idempotency.port import IdempotencyStore


class RedisIdempotencyStore(IdempotencyStore):
    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisIdempotencyStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> str | None:
        value = self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.client.set(key, value, ex=ttl_seconds)

    def delete(self, key: str) -> None:
        self.client.delete(key)
