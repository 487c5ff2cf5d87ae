"""Owner dashboard reads: the caller's own restaurants with their subscription state."""

from dataclasses import dataclass
from datetime import datetime

from protean.utils.globals import current_domain

from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor, Role
from marketplace.shared.clock import utc_now
from marketplace.subscription.subscription import Subscription


@dataclass
class OwnedRestaurant:
    restaurant: Restaurant
    subscription_status: str | None
    subscription_end_date: datetime | None
    days_remaining: int


def list_owner_restaurants(actor: Actor, as_of: datetime | None = None) -> list[OwnedRestaurant]:
    """Every non-deleted restaurant of the calling owner, whatever its status."""
    actor.require_role(Role.RESTAURANT_OWNER)
    as_of = as_of or utc_now()
    subscriptions = current_domain.repository_for(Subscription)

    owned = []
    for restaurant in current_domain.repository_for(Restaurant).find_by_owner(actor.actor_id):
        latest = subscriptions.find_latest_for_restaurant(restaurant.id)
        owned.append(
            OwnedRestaurant(
                restaurant=restaurant,
                subscription_status=latest.status if latest else None,
                subscription_end_date=latest.end_date if latest else None,
                days_remaining=latest.days_remaining(as_of) if latest and latest.is_active() else 0,
            )
        )
    return sorted(owned, key=lambda o: o.restaurant.name)
