"""Restaurant registration — command and handler."""

import structlog
from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail
from marketplace.domain import marketplace
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor, Role

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Restaurant")
class RegisterRestaurant:
    """An owner lists a new restaurant. It stays PENDING until a subscription is paid."""

    name: String(required=True, max_length=255)
    description: Text()
    address: String(required=True, max_length=500)
    phone: String(required=True, max_length=30)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Restaurant)
class RegisterRestaurantHandler:
    @handle(RegisterRestaurant)
    def register_restaurant(self, command):
        actor = Actor.from_command(command)
        actor.require_role(Role.RESTAURANT_OWNER)

        restaurant = Restaurant.register(
            owner_id=actor.actor_id,
            name=command.name,
            address=command.address,
            phone=command.phone,
            description=command.description,
        )
        current_domain.repository_for(Restaurant).add(restaurant)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.RESTAURANT_CREATED,
            restaurant,
            metadata={"owner_id": actor.actor_id},
        )
        logger.info("Restaurant registered", restaurant_id=str(restaurant.id), owner_id=actor.actor_id)
        return str(restaurant.id)
