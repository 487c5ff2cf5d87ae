"""Repository lookups that surface missing aggregates as ``NotFound``."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.errors import NotFound


def get_or_not_found(aggregate_cls, identifier, label=None):
    try:
        return current_domain.repository_for(aggregate_cls).get(str(identifier))
    except ObjectNotFoundError:
        raise NotFound(f"{label or aggregate_cls.__name__} not found") from None
