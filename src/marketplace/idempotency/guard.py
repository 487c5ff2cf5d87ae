"""Idempotency guard: keyed request deduplication with cached-response replay.

Every state-changing operation is funnelled through ``execute``: the key is
checked before any domain code runs, a hit replays the stored status code and
body verbatim, and a miss runs the operation and stores its result under the
key. Only exact key matches count; reusing a key for a different operation
is a client error the guard does not try to detect.
"""

import json
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from marketplace.idempotency.port import IdempotencyStore

logger = structlog.get_logger(__name__)

KEY_PREFIX = "idempotency:"
DEFAULT_TTL_SECONDS = 24 * 60 * 60


def default_ttl_seconds() -> int:
    return int(os.environ.get("IDEMPOTENCY_TTL_SECONDS", DEFAULT_TTL_SECONDS))


@dataclass(frozen=True)
class CachedResponse:
    status_code: int
    body: Any


@dataclass(frozen=True)
class IdempotencyResult:
    exists: bool
    response: CachedResponse | None = None


class IdempotencyGuard:
    def __init__(self, store: IdempotencyStore, ttl_seconds: int | None = None) -> None:
        self.backend = store
        self.ttl_seconds = ttl_seconds or default_ttl_seconds()

    @staticmethod
    def _key(idempotency_key: str) -> str:
        return f"{KEY_PREFIX}{idempotency_key}"

    def check(self, idempotency_key: str) -> IdempotencyResult:
        cached = self.backend.get(self._key(idempotency_key))
        if cached is None:
            return IdempotencyResult(exists=False)

        parsed = json.loads(cached)
        return IdempotencyResult(
            exists=True,
            response=CachedResponse(status_code=parsed["statusCode"], body=parsed["body"]),
        )

    def store(
        self,
        idempotency_key: str,
        status_code: int,
        body: Any,
        ttl_seconds: int | None = None,
    ) -> CachedResponse:
        value = json.dumps({"statusCode": status_code, "body": body}, default=str)
        self.backend.set(self._key(idempotency_key), value, ttl_seconds or self.ttl_seconds)
        # Hand back exactly what a replay will see.
        return CachedResponse(status_code=status_code, body=json.loads(value)["body"])

    def invalidate(self, idempotency_key: str) -> None:
        self.backend.delete(self._key(idempotency_key))

    def execute(
        self,
        idempotency_key: str,
        operation: Callable[[], tuple[int, Any]],
        ttl_seconds: int | None = None,
    ) -> CachedResponse:
        """Replay the cached response for ``idempotency_key`` or run ``operation`` once.

        ``operation`` returns ``(status_code, body)``. Exceptions propagate and
        nothing is cached, so a failed attempt can be retried with the same key.
        """
        result = self.check(idempotency_key)
        if result.exists:
            logger.info("Idempotent replay", idempotency_key=idempotency_key)
            return result.response

        status_code, body = operation()
        return self.store(idempotency_key, status_code, body, ttl_seconds=ttl_seconds)
