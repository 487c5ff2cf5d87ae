"""Subscription activation through admin payment validation.

Activating a subscription cascades to its restaurant: both changes are
audited as separate entries under one correlation id.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail, snapshot
from marketplace.domain import marketplace
from marketplace.errors import NotFound
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor, Role
from marketplace.shared.lookup import get_or_not_found
from marketplace.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Subscription")
class ValidateSubscriptionPayment:
    """Admin confirms the payment was received and starts the subscription period."""

    subscription_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Subscription)
class ValidateSubscriptionPaymentHandler:
    @handle(ValidateSubscriptionPayment)
    def validate_payment(self, command):
        actor = Actor.from_command(command)
        actor.require_role(Role.ADMIN)
        trail = AuditTrail(command.correlation_id, actor.actor_id)

        subscription_repo = current_domain.repository_for(Subscription)
        restaurant_repo = current_domain.repository_for(Restaurant)

        subscription = get_or_not_found(Subscription, command.subscription_id, "Subscription")
        restaurant = restaurant_repo.find_by_id(subscription.restaurant_id)
        if restaurant is None or restaurant.is_deleted:
            raise NotFound("Restaurant not found")

        previous_subscription = snapshot(subscription)
        subscription.activate()
        subscription_repo.add(subscription)

        trail.record(
            AuditAction.SUBSCRIPTION_ACTIVATED,
            subscription,
            previous_state=previous_subscription,
            metadata={
                "activated_by": Role.ADMIN.value,
                "start_date": subscription.start_date.isoformat(),
                "end_date": subscription.end_date.isoformat(),
            },
        )

        previous_restaurant = snapshot(restaurant)
        restaurant.activate()
        restaurant_repo.add(restaurant)

        trail.record(
            AuditAction.RESTAURANT_ACTIVATED,
            restaurant,
            previous_state=previous_restaurant,
            metadata={"subscription_id": str(subscription.id), "activated_by": Role.ADMIN.value},
        )

        logger.info(
            "Subscription activated",
            subscription_id=str(subscription.id),
            restaurant_id=str(restaurant.id),
            end_date=subscription.end_date.isoformat(),
            correlation_id=trail.correlation_id,
        )
        return str(subscription.id)
