"""Subscription cancellation — command and handler.

Cancellation is a distinct business event from expiry: it never suspends
or reactivates the restaurant by itself.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail, snapshot
from marketplace.domain import marketplace
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor
from marketplace.shared.lookup import get_or_not_found
from marketplace.subscription.subscription import Subscription


@marketplace.command(part_of="Subscription")
class CancelSubscription:
    subscription_id: Identifier(required=True)
    reason: String(max_length=500)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Subscription)
class CancelSubscriptionHandler:
    @handle(CancelSubscription)
    def cancel_subscription(self, command):
        actor = Actor.from_command(command)
        repo = current_domain.repository_for(Subscription)

        subscription = get_or_not_found(Subscription, command.subscription_id, "Subscription")
        restaurant = get_or_not_found(Restaurant, subscription.restaurant_id, "Restaurant")
        actor.require_owner_or_admin(restaurant.owner_id, "Not authorized to cancel this subscription")

        previous_state = snapshot(subscription)
        subscription.cancel()
        repo.add(subscription)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.SUBSCRIPTION_CANCELLED,
            subscription,
            previous_state=previous_state,
            metadata={"reason": command.reason, "cancelled_by": actor.role.value},
        )
