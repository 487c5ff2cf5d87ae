"""Idempotency store factory and guard access.

Provides get_store() / set_store() / reset_store() to swap implementations:
- InMemoryIdempotencyStore for development and testing
- RedisIdempotencyStore for production (IDEMPOTENCY_STORE=redis)
"""

import os

from marketplace.idempotency.guard import (
    DEFAULT_TTL_SECONDS,
    CachedResponse,
    IdempotencyGuard,
    IdempotencyResult,
)
from marketplace.idempotency.memory_adapter import InMemoryIdempotencyStore
from marketplace.idempotency.port import IdempotencyStore

_current_store: IdempotencyStore | None = None


def get_store() -> IdempotencyStore:
    """Return the configured idempotency store (singleton)."""
    global _current_store
    if _current_store is None:
        backend = os.environ.get("IDEMPOTENCY_STORE", "memory")
        if backend == "memory":
            _current_store = InMemoryIdempotencyStore()
        elif backend == "redis":
            from marketplace.idempotency.redis_adapter import RedisIdempotencyStore

            _current_store = RedisIdempotencyStore.from_url(os.environ.get("REDIS_URL", "redis://localhost:6379/0"))
        else:
            raise ValueError(f"Unknown idempotency store: {backend}")
    return _current_store


def set_store(store: IdempotencyStore) -> None:
    """Override the active store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_store() -> None:
    """Reset to the configured default store."""
    global _current_store
    _current_store = None


def get_guard() -> IdempotencyGuard:
    return IdempotencyGuard(get_store())


__all__ = [
    "DEFAULT_TTL_SECONDS",
    "CachedResponse",
    "IdempotencyGuard",
    "IdempotencyResult",
    "IdempotencyStore",
    "get_guard",
    "get_store",
    "reset_store",
    "set_store",
]
