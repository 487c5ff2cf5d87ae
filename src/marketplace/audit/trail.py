"""Audit trail writer.

An ``AuditTrail`` is bound to one unit of work (a request or a job run)
and stamps its correlation id and actor on every entry it writes. Handlers
create one per command and pass it down explicitly.
"""

import structlog
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction, AuditLogEntry
from marketplace.shared.correlation import ensure_correlation_id

logger = structlog.get_logger(__name__)


def snapshot(aggregate):
    """Plain-dict copy of an aggregate's current state."""
    if aggregate is None:
        return None
    return aggregate.to_dict()


class AuditTrail:
    def __init__(self, correlation_id=None, actor_id=None):
        self.correlation_id = ensure_correlation_id(correlation_id)
        self.actor_id = actor_id

    def record(
        self,
        action: AuditAction,
        aggregate,
        previous_state=None,
        metadata=None,
        entity_type=None,
    ) -> AuditLogEntry:
        """Append one entry describing ``aggregate`` after a transition."""
        entry = AuditLogEntry.write(
            action=action,
            entity_type=entity_type or type(aggregate).__name__,
            entity_id=aggregate.id,
            correlation_id=self.correlation_id,
            previous_state=previous_state,
            new_state=snapshot(aggregate),
            actor_id=self.actor_id,
            metadata=metadata,
        )
        current_domain.repository_for(AuditLogEntry).add(entry)

        logger.info(
            "Audit entry recorded",
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=str(entry.entity_id),
            correlation_id=self.correlation_id,
        )
        return entry

    def note(self, action: AuditAction, entity_type: str, entity_id: str, metadata=None) -> AuditLogEntry:
        """Append an entry for something that is not an aggregate, e.g. a job run."""
        entry = AuditLogEntry.write(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=self.correlation_id,
            actor_id=self.actor_id,
            metadata=metadata,
        )
        current_domain.repository_for(AuditLogEntry).add(entry)

        logger.info(
            "Audit entry recorded",
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=str(entry.entity_id),
            correlation_id=self.correlation_id,
        )
        return entry
