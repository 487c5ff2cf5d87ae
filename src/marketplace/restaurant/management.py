"""Restaurant administration: profile edits, suspension, reinstatement, soft delete and restore."""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail, snapshot
from marketplace.domain import marketplace
from marketplace.errors import Forbidden, InvalidTransition, NotFound
from marketplace.restaurant.restaurant import Restaurant, RestaurantStatus
from marketplace.shared.actor import Actor, Role
from marketplace.shared.lookup import get_or_not_found
from marketplace.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Restaurant")
class UpdateRestaurant:
    """Owner edits the public profile. Omitted fields are left unchanged."""

    restaurant_id: Identifier(required=True)
    name: String(max_length=255)
    description: Text()
    address: String(max_length=500)
    phone: String(max_length=30)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Restaurant")
class SuspendRestaurant:
    """Admin takes a restaurant off the customer-facing listings."""

    restaurant_id: Identifier(required=True)
    reason: String(required=True, max_length=500)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Restaurant")
class ReinstateRestaurant:
    """Admin lifts a suspension. Requires a valid current subscription."""

    restaurant_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Restaurant")
class DeleteRestaurant:
    restaurant_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Restaurant")
class RestoreRestaurant:
    restaurant_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


def _has_valid_subscription(restaurant_id) -> bool:
    return current_domain.repository_for(Subscription).find_current_for_restaurant(restaurant_id) is not None


@marketplace.command_handler(part_of=Restaurant)
class ManageRestaurantHandler:
    @handle(UpdateRestaurant)
    def update_restaurant(self, command):
        actor = Actor.from_command(command)
        repo = current_domain.repository_for(Restaurant)
        restaurant = get_or_not_found(Restaurant, command.restaurant_id, "Restaurant")
        actor.require_owner_or_admin(restaurant.owner_id, "Not authorized to update this restaurant")
        if restaurant.is_deleted:
            raise NotFound("Restaurant not found")

        changes = {
            name: getattr(command, name)
            for name in ("name", "description", "address", "phone")
            if getattr(command, name) is not None
        }
        previous_state = snapshot(restaurant)
        restaurant.update_details(**changes)
        repo.add(restaurant)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.RESTAURANT_UPDATED,
            restaurant,
            previous_state=previous_state,
            metadata={"updated_fields": sorted(changes)},
        )
        logger.info("Restaurant profile updated", restaurant_id=str(restaurant.id), fields=sorted(changes))

    @handle(SuspendRestaurant)
    def suspend_restaurant(self, command):
        actor = Actor.from_command(command)
        actor.require_role(Role.ADMIN)

        repo = current_domain.repository_for(Restaurant)
        restaurant = get_or_not_found(Restaurant, command.restaurant_id, "Restaurant")
        if restaurant.is_deleted or restaurant.is_suspended():
            raise InvalidTransition(
                "suspend restaurant",
                restaurant.status,
                RestaurantStatus.SUSPENDED.value,
                [],
            )

        previous_state = snapshot(restaurant)
        restaurant.suspend(reason=command.reason)
        repo.add(restaurant)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.RESTAURANT_SUSPENDED,
            restaurant,
            previous_state=previous_state,
            metadata={"reason": command.reason, "automatic_suspension": False},
        )
        logger.info("Restaurant suspended by admin", restaurant_id=str(restaurant.id))

    @handle(ReinstateRestaurant)
    def reinstate_restaurant(self, command):
        actor = Actor.from_command(command)
        actor.require_role(Role.ADMIN)

        repo = current_domain.repository_for(Restaurant)
        restaurant = get_or_not_found(Restaurant, command.restaurant_id, "Restaurant")
        if not restaurant.is_suspended():
            raise InvalidTransition(
                "reinstate restaurant",
                restaurant.status,
                RestaurantStatus.ACTIVE.value,
                [],
            )
        if not _has_valid_subscription(restaurant.id):
            raise Forbidden("Restaurant subscription is not active or has expired")

        previous_state = snapshot(restaurant)
        restaurant.activate()
        repo.add(restaurant)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.RESTAURANT_ACTIVATED,
            restaurant,
            previous_state=previous_state,
            metadata={"activated_by": Role.ADMIN.value, "reinstated": True},
        )

    @handle(DeleteRestaurant)
    def delete_restaurant(self, command):
        actor = Actor.from_command(command)
        repo = current_domain.repository_for(Restaurant)
        restaurant = get_or_not_found(Restaurant, command.restaurant_id, "Restaurant")
        actor.require_owner_or_admin(restaurant.owner_id, "Not authorized to delete this restaurant")
        if restaurant.is_deleted:
            return

        previous_state = snapshot(restaurant)
        restaurant.soft_delete()
        repo.add(restaurant)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.RESTAURANT_DELETED,
            restaurant,
            previous_state=previous_state,
        )

    @handle(RestoreRestaurant)
    def restore_restaurant(self, command):
        actor = Actor.from_command(command)
        repo = current_domain.repository_for(Restaurant)
        restaurant = get_or_not_found(Restaurant, command.restaurant_id, "Restaurant")
        actor.require_owner_or_admin(restaurant.owner_id, "Not authorized to restore this restaurant")
        if not restaurant.is_deleted:
            return

        previous_state = snapshot(restaurant)
        restaurant.restore(has_valid_subscription=_has_valid_subscription(restaurant.id))
        repo.add(restaurant)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.RESTAURANT_RESTORED,
            restaurant,
            previous_state=previous_state,
        )
