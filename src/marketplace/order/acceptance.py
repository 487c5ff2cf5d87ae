"""Order acceptance and rejection — commands and handler.

The restaurant acknowledges (or turns down) a PENDING order. Rejecting an
order that is already REJECTED is a no-op, so a retried rejection neither
fails nor writes a second audit entry.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail, snapshot
from marketplace.domain import marketplace
from marketplace.order.access import authorize_restaurant_side, load_order
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.actor import Actor

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class AcceptOrder:
    order_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Order")
class RejectOrder:
    order_id: Identifier(required=True)
    reason: String(max_length=500)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Order)
class OrderAcceptanceHandler:
    @handle(AcceptOrder)
    def accept_order(self, command):
        actor = Actor.from_command(command)
        order = load_order(command.order_id)
        authorize_restaurant_side(actor, order)

        previous_state = snapshot(order)
        order.accept()
        current_domain.repository_for(Order).add(order)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.ORDER_ACCEPTED,
            order,
            previous_state=previous_state,
        )
        logger.info("Order accepted", order_id=str(order.id))

    @handle(RejectOrder)
    def reject_order(self, command):
        actor = Actor.from_command(command)
        order = load_order(command.order_id)
        authorize_restaurant_side(actor, order)

        if order.current_status == OrderStatus.REJECTED:
            logger.info("Order already rejected", order_id=str(order.id))
            return

        previous_state = snapshot(order)
        order.reject(command.reason)
        current_domain.repository_for(Order).add(order)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.ORDER_REJECTED,
            order,
            previous_state=previous_state,
            metadata={"reason": command.reason},
        )
        logger.info("Order rejected", order_id=str(order.id))
