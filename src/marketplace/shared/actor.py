"""The already-authenticated caller of a command.

Credentials are verified upstream; commands only carry the actor's id and
role, and handlers check ownership and role against them.
"""

from dataclasses import dataclass
from enum import Enum

from marketplace.errors import Forbidden


class Role(Enum):
    CUSTOMER = "CUSTOMER"
    RESTAURANT_OWNER = "RESTAURANT_OWNER"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class Actor:
    actor_id: str
    role: Role

    @classmethod
    def from_command(cls, command) -> "Actor":
        try:
            role = Role(command.actor_role)
        except ValueError:
            raise Forbidden(f"Unknown role: {command.actor_role}") from None
        return cls(actor_id=str(command.actor_id), role=role)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def require_role(self, *roles: Role) -> None:
        if self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise Forbidden(f"Role {self.role.value} is not allowed to perform this action (requires {allowed})")

    def require_owner_or_admin(self, owner_id: str, message: str) -> None:
        if self.is_admin:
            return
        if self.role != Role.RESTAURANT_OWNER or str(owner_id) != self.actor_id:
            raise Forbidden(message)


SYSTEM_ACTOR = Actor(actor_id="system", role=Role.SYSTEM)
