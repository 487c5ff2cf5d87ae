"""Admin reads over the audit ledger."""

from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditLogEntry
from marketplace.shared.actor import Actor, Role


def get_audit_logs(entity_type: str, entity_id: str, actor: Actor) -> list[dict]:
    """History of one entity, oldest first, in the external record shape."""
    actor.require_role(Role.ADMIN)
    entries = current_domain.repository_for(AuditLogEntry).find_by_entity(entity_type, entity_id)
    return [entry.to_record() for entry in entries]
