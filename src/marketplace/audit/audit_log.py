"""AuditLogEntry aggregate: the append-only ledger of state transitions.

Entries are written once by ``AuditTrail.record`` and never updated or
deleted. Snapshots and metadata are stored as JSON text so the ledger stays
independent of the shape of the aggregates it describes.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import InvalidOperationError
from protean.fields import DateTime, Identifier, String, Text

from marketplace.domain import marketplace


class AuditAction(Enum):
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_ACTIVATED = "SUBSCRIPTION_ACTIVATED"
    SUBSCRIPTION_EXPIRED = "SUBSCRIPTION_EXPIRED"
    SUBSCRIPTION_CANCELLED = "SUBSCRIPTION_CANCELLED"
    RESTAURANT_CREATED = "RESTAURANT_CREATED"
    RESTAURANT_ACTIVATED = "RESTAURANT_ACTIVATED"
    RESTAURANT_SUSPENDED = "RESTAURANT_SUSPENDED"
    RESTAURANT_DELETED = "RESTAURANT_DELETED"
    RESTAURANT_RESTORED = "RESTAURANT_RESTORED"
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_ACCEPTED = "ORDER_ACCEPTED"
    ORDER_REJECTED = "ORDER_REJECTED"
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    ORDER_PREPARING = "ORDER_PREPARING"
    ORDER_READY = "ORDER_READY"
    ORDER_DELIVERED = "ORDER_DELIVERED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_REPORTED = "ORDER_REPORTED"
    ADMIN_ACTION = "ADMIN_ACTION"
    RESTAURANT_UPDATED = "RESTAURANT_UPDATED"
    PRODUCT_CREATED = "PRODUCT_CREATED"
    PRODUCT_UPDATED = "PRODUCT_UPDATED"
    PRODUCT_DELETED = "PRODUCT_DELETED"
    PRODUCT_RESTORED = "PRODUCT_RESTORED"


def _dump(value):
    if value is None:
        return None
    return json.dumps(value, default=str, sort_keys=True)


def _load(value):
    if not value:
        return None
    return json.loads(value)


@marketplace.aggregate
class AuditLogEntry:
    """One state transition of one entity, with before/after snapshots."""

    action: String(required=True, choices=AuditAction, max_length=50)
    entity_type: String(required=True, max_length=50)
    entity_id: Identifier(required=True)
    previous_state: Text()  # JSON snapshot
    new_state: Text()  # JSON snapshot
    correlation_id: String(required=True, max_length=64)
    actor_id: String(max_length=255)
    details: Text()  # JSON metadata
    created_at: DateTime(default=lambda: datetime.now(UTC))

    @classmethod
    def write(
        cls,
        action,
        entity_type,
        entity_id,
        correlation_id,
        previous_state=None,
        new_state=None,
        actor_id=None,
        metadata=None,
    ):
        return cls(
            action=action.value if isinstance(action, AuditAction) else action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            previous_state=_dump(previous_state),
            new_state=_dump(new_state),
            correlation_id=correlation_id,
            actor_id=actor_id,
            details=_dump(metadata),
            created_at=datetime.now(UTC),
        )

    @property
    def previous_snapshot(self):
        return _load(self.previous_state)

    @property
    def new_snapshot(self):
        return _load(self.new_state)

    @property
    def entry_metadata(self):
        return _load(self.details) or {}

    def to_record(self):
        """The stable external shape consumed by compliance reports and the admin UI."""
        return {
            "action": self.action,
            "entityType": self.entity_type,
            "entityId": str(self.entity_id),
            "previousState": self.previous_snapshot,
            "newState": self.new_snapshot,
            "correlationId": self.correlation_id,
            "actorId": self.actor_id,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
            "metadata": self.entry_metadata,
        }


@marketplace.repository(part_of=AuditLogEntry)
class AuditLogRepository:
    """Read side of the ledger. Entries are only ever added; re-adding a stored entry is refused."""

    def find_by_entity(self, entity_type: str, entity_id: str) -> list[AuditLogEntry]:
        entries = self._dao.query.filter(entity_type=entity_type, entity_id=str(entity_id)).limit(None).all().items
        return sorted(entries, key=lambda e: e.created_at)

    def find_by_correlation_id(self, correlation_id: str) -> list[AuditLogEntry]:
        entries = self._dao.query.filter(correlation_id=correlation_id).limit(None).all().items
        return sorted(entries, key=lambda e: e.created_at)

    def find_by_action(self, action: AuditAction) -> list[AuditLogEntry]:
        value = action.value if isinstance(action, AuditAction) else action
        entries = self._dao.query.filter(action=value).limit(None).all().items
        return sorted(entries, key=lambda e: e.created_at)

    def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        if entry.state_.is_persisted or self._dao.query.filter(id=str(entry.id)).all().first is not None:
            raise InvalidOperationError("Audit log entries are append-only")
        return super().add(entry)
