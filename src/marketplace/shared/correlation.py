"""Correlation ids group every audit entry written by one request or job run."""

from uuid import uuid4


def new_correlation_id() -> str:
    return str(uuid4())


def ensure_correlation_id(value: str | None) -> str:
    return value or new_correlation_id()
