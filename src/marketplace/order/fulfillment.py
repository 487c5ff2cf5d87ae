"""Order fulfillment — commands and handler.

The kitchen pipeline after acceptance: confirm, start preparing, mark ready,
mark delivered. Each is a single forward edge of the state machine.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail, snapshot
from marketplace.domain import marketplace
from marketplace.order.access import authorize_restaurant_side, load_order
from marketplace.order.order import Order
from marketplace.shared.actor import Actor

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class ConfirmOrder:
    """Restaurant commits kitchen resources to an accepted order."""

    order_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Order")
class StartPreparingOrder:
    order_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Order")
class MarkOrderReady:
    order_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Order")
class MarkOrderDelivered:
    order_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Order)
class OrderFulfillmentHandler:
    def _advance(self, command, transition, action: AuditAction):
        actor = Actor.from_command(command)
        order = load_order(command.order_id)
        authorize_restaurant_side(actor, order)

        previous_state = snapshot(order)
        transition(order)
        current_domain.repository_for(Order).add(order)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            action,
            order,
            previous_state=previous_state,
        )
        logger.info(
            "Order advanced",
            order_id=str(order.id),
            from_status=previous_state["status"],
            to_status=order.status,
        )

    @handle(ConfirmOrder)
    def confirm_order(self, command):
        self._advance(command, Order.confirm, AuditAction.ORDER_CONFIRMED)

    @handle(StartPreparingOrder)
    def start_preparing_order(self, command):
        self._advance(command, Order.start_preparing, AuditAction.ORDER_PREPARING)

    @handle(MarkOrderReady)
    def mark_order_ready(self, command):
        self._advance(command, Order.mark_ready, AuditAction.ORDER_READY)

    @handle(MarkOrderDelivered)
    def mark_order_delivered(self, command):
        self._advance(command, Order.mark_delivered, AuditAction.ORDER_DELIVERED)
