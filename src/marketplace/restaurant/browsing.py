"""Customer-facing read queries.

Each query re-evaluates visibility on the spot: restaurant status and soft
delete, then the validity of its current subscription. Anything hidden is
reported as not found rather than forbidden, so existence does not leak.
"""

from datetime import datetime

from protean.utils.globals import current_domain

from marketplace.errors import NotFound
from marketplace.product.product import Product
from marketplace.restaurant.restaurant import Restaurant
from marketplace.restaurant.visibility import is_publicly_visible, product_is_visible
from marketplace.shared.clock import utc_now
from marketplace.subscription.subscription import Subscription


def _current_subscription(restaurant_id, as_of):
    return current_domain.repository_for(Subscription).find_current_for_restaurant(restaurant_id, as_of)


def _restaurant_is_listed(restaurant, as_of) -> bool:
    return is_publicly_visible(restaurant, _current_subscription(restaurant.id, as_of), as_of)


def list_visible_restaurants(as_of: datetime | None = None) -> list[Restaurant]:
    as_of = as_of or utc_now()
    candidates = current_domain.repository_for(Restaurant).find_active()
    visible = [r for r in candidates if _restaurant_is_listed(r, as_of)]
    return sorted(visible, key=lambda r: r.name)


def get_visible_restaurant(restaurant_id: str, as_of: datetime | None = None) -> Restaurant:
    as_of = as_of or utc_now()
    restaurant = current_domain.repository_for(Restaurant).find_by_id(restaurant_id)
    if restaurant is None or not _restaurant_is_listed(restaurant, as_of):
        raise NotFound("Restaurant not found")
    return restaurant


def list_visible_products(restaurant_id: str, as_of: datetime | None = None) -> list[Product]:
    get_visible_restaurant(restaurant_id, as_of)
    products = current_domain.repository_for(Product).find_by_restaurant(restaurant_id)
    return [p for p in products if product_is_visible(p)]


def get_visible_product(product_id: str, as_of: datetime | None = None) -> Product:
    product = current_domain.repository_for(Product).find_by_id(product_id)
    if product is None or not product_is_visible(product):
        raise NotFound("Product not found")
    get_visible_restaurant(product.restaurant_id, as_of)
    return product


def list_featured_products(restaurant_id: str, as_of: datetime | None = None) -> list[Product]:
    """Featured menu entries of a listed restaurant; empty while it is hidden."""
    as_of = as_of or utc_now()
    restaurant = current_domain.repository_for(Restaurant).find_by_id(restaurant_id)
    if restaurant is None or not _restaurant_is_listed(restaurant, as_of):
        return []
    products = current_domain.repository_for(Product).find_featured_by_restaurant(restaurant_id)
    return [p for p in products if product_is_visible(p)]
