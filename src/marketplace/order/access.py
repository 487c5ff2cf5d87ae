"""Who may act on an order.

Restaurant-side transitions belong to the owner of the order's restaurant;
customers may only cancel or report their own orders. Admins may do anything.
"""

from marketplace.errors import Forbidden
from marketplace.order.order import Order
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor, Role
from marketplace.shared.lookup import get_or_not_found


def load_order(order_id) -> Order:
    return get_or_not_found(Order, order_id, "Order")


def _owns_restaurant(actor: Actor, order: Order) -> bool:
    if actor.role != Role.RESTAURANT_OWNER:
        return False
    restaurant = get_or_not_found(Restaurant, order.restaurant_id, "Restaurant")
    return restaurant.owner_id == actor.actor_id


def _placed_order(actor: Actor, order: Order) -> bool:
    return actor.role == Role.CUSTOMER and order.customer_id == actor.actor_id


def authorize_restaurant_side(actor: Actor, order: Order) -> None:
    if actor.is_admin or _owns_restaurant(actor, order):
        return
    raise Forbidden("Not authorized to manage this order")


def authorize_participant(actor: Actor, order: Order) -> None:
    if actor.is_admin or _placed_order(actor, order) or _owns_restaurant(actor, order):
        return
    raise Forbidden("Not authorized to access this order")
