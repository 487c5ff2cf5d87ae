"""Visibility rules as pure predicates, evaluated on every read.

Nothing here touches storage. A suspension therefore takes effect on the
very next query, with no cached flag to invalidate.
"""

from datetime import datetime

from marketplace.restaurant.restaurant import HIDDEN_SCORE, VISIBLE_SCORE


def restaurant_is_visible(restaurant) -> bool:
    return restaurant is not None and restaurant.is_visible


def product_is_visible(product) -> bool:
    return product is not None and product.is_visible


def subscription_is_valid(subscription, as_of: datetime | None = None) -> bool:
    # No subscription record at all means not valid.
    return subscription is not None and subscription.is_valid(as_of)


def is_publicly_visible(restaurant, subscription, as_of: datetime | None = None) -> bool:
    """Full customer-facing visibility: visible restaurant AND valid current subscription."""
    return restaurant_is_visible(restaurant) and subscription_is_valid(subscription, as_of)


def is_product_publicly_visible(product, restaurant, subscription, as_of: datetime | None = None) -> bool:
    return product_is_visible(product) and is_publicly_visible(restaurant, subscription, as_of)


def visibility_score(restaurant, subscription, as_of: datetime | None = None) -> int:
    return VISIBLE_SCORE if is_publicly_visible(restaurant, subscription, as_of) else HIDDEN_SCORE
