"""Order cancellation — command and handler.

Either side may cancel before the food is handed over. Cancelling an order
that is already CANCELLED is a no-op.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail, snapshot
from marketplace.domain import marketplace
from marketplace.order.access import authorize_participant, load_order
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.actor import Actor

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id: Identifier(required=True)
    reason: String(max_length=500)  # Optional
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        actor = Actor.from_command(command)
        order = load_order(command.order_id)
        authorize_participant(actor, order)

        if order.current_status == OrderStatus.CANCELLED:
            logger.info("Order already cancelled", order_id=str(order.id))
            return

        previous_state = snapshot(order)
        order.cancel(reason=command.reason)
        current_domain.repository_for(Order).add(order)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.ORDER_CANCELLED,
            order,
            previous_state=previous_state,
            metadata={"reason": command.reason, "cancelled_by": actor.role.value},
        )
        logger.info("Order cancelled", order_id=str(order.id), cancelled_by=actor.role.value)
