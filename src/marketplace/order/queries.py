"""Read side for orders.

Reads go straight to the repository; there are no projections in this
context. Authorization mirrors the write side.
"""

from protean.utils.globals import current_domain

from marketplace.errors import UnknownOrderStatus
from marketplace.order.access import authorize_participant, load_order
from marketplace.order.order import Order, OrderStatus
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor, Role
from marketplace.shared.lookup import get_or_not_found


def get_order(order_id, actor: Actor) -> Order:
    order = load_order(order_id)
    authorize_participant(actor, order)
    return order


def list_customer_orders(actor: Actor) -> list[Order]:
    """Orders placed by the calling customer, newest first."""
    actor.require_role(Role.CUSTOMER)
    return current_domain.repository_for(Order).find_by_customer(actor.actor_id)


def _order_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise UnknownOrderStatus(f"Unknown order status: {value}") from None


PENDING_STATUSES = (OrderStatus.PENDING,)
IN_PROGRESS_STATUSES = (OrderStatus.ACCEPTED, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY)


def list_restaurant_orders(restaurant_id, actor: Actor, statuses=None) -> list[Order]:
    """Orders received by one restaurant, newest first. Owner or admin only.

    ``statuses`` narrows the list; unknown status names are rejected.
    """
    restaurant = get_or_not_found(Restaurant, restaurant_id, "Restaurant")
    actor.require_owner_or_admin(restaurant.owner_id, "Not authorized to view orders for this restaurant")
    wanted = [_order_status(s) for s in statuses] if statuses else None
    return current_domain.repository_for(Order).find_by_restaurant(restaurant.id, statuses=wanted)


def list_pending_orders(restaurant_id, actor: Actor) -> list[Order]:
    """Orders still waiting for the restaurant to accept or reject them."""
    return list_restaurant_orders(restaurant_id, actor, statuses=PENDING_STATUSES)


def list_active_orders(restaurant_id, actor: Actor) -> list[Order]:
    """Accepted orders the kitchen has not handed over yet."""
    return list_restaurant_orders(restaurant_id, actor, statuses=IN_PROGRESS_STATUSES)
