"""Idempotency store port (abstract interface).

A TTL-capable key-value store. Adapters only need get/set/delete; the
``IdempotencyGuard`` owns key namespacing and serialization.
"""

from abc import ABC, abstractmethod


class IdempotencyStore(ABC):
    """Abstract TTL key-value store for cached responses."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent or expired."""
        ...

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Create or overwrite ``key``; it disappears after ``ttl_seconds``."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...
