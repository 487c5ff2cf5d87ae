"""Maps domain error kinds to HTTP responses.

protean's own handlers cover the base exceptions; the handlers registered
here are for the subclasses, which Starlette resolves first.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from marketplace.errors import (
    AlreadyActive,
    DomainRuleViolation,
    DuplicateActiveSubscription,
    Forbidden,
    InvalidPrice,
    InvalidTransition,
    MissingReason,
    NotFound,
    ProductUnavailable,
    QuantityInvariantViolation,
    UnknownOrderStatus,
)

STATUS_BY_ERROR = {
    NotFound: 404,
    Forbidden: 403,
    InvalidTransition: 409,
    DuplicateActiveSubscription: 409,
    AlreadyActive: 409,
    MissingReason: 422,
    QuantityInvariantViolation: 422,
    ProductUnavailable: 422,
    InvalidPrice: 422,
    UnknownOrderStatus: 422,
}


def _handler(status_code):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        content = {"error": type(exc).__name__, "message": getattr(exc, "message", str(exc))}
        if isinstance(exc, DomainRuleViolation):
            content["errors"] = exc.messages
        if isinstance(exc, InvalidTransition):
            content["current_status"] = exc.current_status
            content["valid_next_states"] = exc.valid_next_states
        return JSONResponse(status_code=status_code, content=content)

    return handle


def install_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    for error_cls, status_code in STATUS_BY_ERROR.items():
        app.add_exception_handler(error_cls, _handler(status_code))
