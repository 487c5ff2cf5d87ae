"""Order reporting — command and handler.

A problem report closes an order for good once it has been accepted,
including after delivery. Reporting an already-REPORTED order is a no-op.
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
class ReportOrder:
    order_id: Identifier(required=True)
    reason: String(max_length=500)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Order)
class ReportOrderHandler:
    @handle(ReportOrder)
    def report_order(self, command):
        actor = Actor.from_command(command)
        order = load_order(command.order_id)
        authorize_participant(actor, order)

        if order.current_status == OrderStatus.REPORTED:
            logger.info("Order already reported", order_id=str(order.id))
            return

        previous_state = snapshot(order)
        order.report(command.reason)
        current_domain.repository_for(Order).add(order)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.ORDER_REPORTED,
            order,
            previous_state=previous_state,
            metadata={"reason": command.reason, "reported_by": actor.role.value},
        )
        logger.warning("Order reported", order_id=str(order.id), reported_by=actor.role.value)
