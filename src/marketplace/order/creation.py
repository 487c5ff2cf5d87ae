"""Order placement — command and handler.

Placing an order is idempotent on the client-supplied key: a retried request
finds the order created by the first attempt and gets its id back.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail
from marketplace.domain import marketplace
from marketplace.errors import Forbidden, NotFound, ProductUnavailable
from marketplace.order.order import Order
from marketplace.product.product import Product
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor, Role
from marketplace.shared.lookup import get_or_not_found
from marketplace.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    restaurant_id: Identifier(required=True)
    items: Text(required=True)  # JSON: list of {product_id, quantity}
    idempotency_key: String(required=True, max_length=255)
    notes: Text()
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


def _priced_items(restaurant_id, requested_items):
    """Resolve requested lines against the catalogue and freeze their prices."""
    if not requested_items:
        raise ProductUnavailable("Order must contain at least one item")

    product_repo = current_domain.repository_for(Product)
    priced = []
    for line in requested_items:
        product = product_repo.find_by_id(line["product_id"])
        if product is None or product.is_deleted:
            raise NotFound(f"Product {line['product_id']} not found")
        if product.restaurant_id != str(restaurant_id):
            raise ProductUnavailable(f"Product {product.id} does not belong to this restaurant")
        if not product.can_be_ordered():
            raise ProductUnavailable(f"Product {product.name} is not available")

        priced.append(
            {
                "product_id": product.id,
                "product_name": product.name,
                "quantity": int(line["quantity"]),
                "unit_price": product.price,
            }
        )
    return priced


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        actor = Actor.from_command(command)
        actor.require_role(Role.CUSTOMER)

        repo = current_domain.repository_for(Order)
        existing = repo.find_by_idempotency_key(command.idempotency_key)
        if existing is not None:
            logger.info(
                "Order already placed for idempotency key",
                idempotency_key=command.idempotency_key,
                order_id=str(existing.id),
            )
            return str(existing.id)

        restaurant = get_or_not_found(Restaurant, command.restaurant_id, "Restaurant")
        if restaurant.is_deleted:
            raise NotFound("Restaurant not found")
        if not restaurant.can_receive_orders():
            raise Forbidden("Restaurant is not accepting orders")

        subscription = current_domain.repository_for(Subscription).find_current_for_restaurant(restaurant.id)
        if subscription is None:
            raise Forbidden("Restaurant subscription is not active or has expired")

        requested = json.loads(command.items) if isinstance(command.items, str) else command.items
        items_data = _priced_items(restaurant.id, requested)

        order = Order.place(
            customer_id=actor.actor_id,
            restaurant_id=restaurant.id,
            items_data=items_data,
            idempotency_key=command.idempotency_key,
            notes=command.notes,
        )
        repo.add(order)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            AuditAction.ORDER_CREATED,
            order,
            metadata={
                "restaurant_id": str(restaurant.id),
                "total_amount": order.total_amount,
                "item_count": len(items_data),
            },
        )
        logger.info(
            "Order placed",
            order_id=str(order.id),
            restaurant_id=str(restaurant.id),
            total_amount=order.total_amount,
        )
        return str(order.id)
