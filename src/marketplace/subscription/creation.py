"""Subscription request — command and handler.

The owner asks for a month of visibility; the record stays PENDING until an
admin validates the (manual) payment.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail
from marketplace.domain import marketplace
from marketplace.errors import DuplicateActiveSubscription, Forbidden
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor, Role
from marketplace.shared.lookup import get_or_not_found
from marketplace.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Subscription")
class RequestSubscription:
    restaurant_id: Identifier(required=True)
    monthly_amount: Float(required=True, min_value=0.0)
    payment_method: String(max_length=50)
    payment_reference: String(max_length=255)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Subscription)
class RequestSubscriptionHandler:
    @handle(RequestSubscription)
    def request_subscription(self, command):
        actor = Actor.from_command(command)
        actor.require_role(Role.RESTAURANT_OWNER)

        restaurant = get_or_not_found(Restaurant, command.restaurant_id, "Restaurant")
        if restaurant.owner_id != actor.actor_id:
            raise Forbidden("Not authorized to create subscription for this restaurant")

        repo = current_domain.repository_for(Subscription)
        if repo.find_current_for_restaurant(restaurant.id) is not None:
            raise DuplicateActiveSubscription("Restaurant already has an active subscription")

        subscription = Subscription.request(
            restaurant_id=restaurant.id,
            monthly_amount=command.monthly_amount,
            payment_method=command.payment_method,
            payment_reference=command.payment_reference,
        )
        repo.add(subscription)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.SUBSCRIPTION_CREATED,
            subscription,
            metadata={
                "payment_method": command.payment_method,
                "payment_reference": command.payment_reference,
            },
        )
        logger.info(
            "Subscription requested",
            subscription_id=str(subscription.id),
            restaurant_id=str(restaurant.id),
        )
        return str(subscription.id)
