"""Per-request caller context read from headers.

Authentication happens upstream; the gateway forwards the verified actor in
``X-Actor-Id`` / ``X-Actor-Role``. ``X-Correlation-Id`` is optional and is
generated when absent so every audit entry of a request shares one id.
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Header, HTTPException
from fastapi.responses import JSONResponse

from marketplace.idempotency import get_guard
from marketplace.shared.actor import Actor, Role
from marketplace.shared.correlation import ensure_correlation_id
from marketplace.utils.logging import add_context


@dataclass(frozen=True)
class RequestContext:
    actor: Actor
    correlation_id: str

    def command_fields(self) -> dict[str, str]:
        """Actor and correlation fields every command carries."""
        return {
            "actor_id": self.actor.actor_id,
            "actor_role": self.actor.role.value,
            "correlation_id": self.correlation_id,
        }


def request_context(
    x_actor_id: str = Header(...),
    x_actor_role: str = Header(...),
    x_correlation_id: str | None = Header(default=None),
) -> RequestContext:
    try:
        role = Role(x_actor_role)
    except ValueError:
        raise HTTPException(status_code=403, detail=f"Unknown role: {x_actor_role}") from None

    correlation_id = ensure_correlation_id(x_correlation_id)
    add_context(correlation_id=correlation_id, actor_id=x_actor_id)
    return RequestContext(actor=Actor(actor_id=x_actor_id, role=role), correlation_id=correlation_id)


def idempotency_key(idempotency_key: str = Header(..., alias="Idempotency-Key", min_length=1)) -> str:
    return idempotency_key


def idempotent_response(key: str, operation) -> JSONResponse:
    """Run ``operation`` at most once per key and answer with the cached result.

    ``operation`` returns ``(status_code, body)``; the first call and every
    replay serialize the same stored body.
    """
    cached = get_guard().execute(key, operation)
    return JSONResponse(status_code=cached.status_code, content=cached.body)


def dump(model) -> dict[str, Any]:
    return model.model_dump(mode="json")
