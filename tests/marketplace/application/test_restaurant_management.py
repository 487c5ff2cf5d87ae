"""Application tests for restaurant registration, administration and browsing."""

import pytest
from marketplace.audit.audit_log import AuditAction, AuditLogEntry
from marketplace.errors import Forbidden, InvalidTransition, NotFound
from marketplace.product.management import FeatureProduct
from marketplace.restaurant.browsing import (
    get_visible_product,
    get_visible_restaurant,
    list_featured_products,
    list_visible_products,
    list_visible_restaurants,
)
from marketplace.restaurant.dashboard import list_owner_restaurants
from marketplace.restaurant.management import (
    DeleteRestaurant,
    ReinstateRestaurant,
    RestoreRestaurant,
    SuspendRestaurant,
    UpdateRestaurant,
)
from marketplace.restaurant.registration import RegisterRestaurant
from marketplace.restaurant.restaurant import Restaurant, RestaurantStatus
from marketplace.shared.actor import Actor, Role
from marketplace.subscription.cancellation import CancelSubscription
from marketplace.subscription.subscription import SubscriptionStatus
from protean import current_domain

ADMIN = {"actor_id": "admin-001", "actor_role": "ADMIN"}
OWNER = {"actor_id": "owner-001", "actor_role": "RESTAURANT_OWNER"}


def _audit_actions(restaurant_id):
    entries = current_domain.repository_for(AuditLogEntry).find_by_entity("Restaurant", restaurant_id)
    return [e.action for e in entries]


class TestRegistration:
    def test_registered_restaurant_is_pending_and_hidden(self, world):
        restaurant_id = world.register_restaurant()

        restaurant = world.get(Restaurant, restaurant_id)
        assert restaurant.status == RestaurantStatus.PENDING.value
        assert restaurant.owner_id == "owner-001"
        assert restaurant.visibility == 0
        assert _audit_actions(restaurant_id) == [AuditAction.RESTAURANT_CREATED.value]

    def test_customers_cannot_register(self, world):
        with pytest.raises(Forbidden):
            world.process(
                RegisterRestaurant(
                    name="Nope",
                    address="Somewhere",
                    phone="000",
                    actor_id="cust-001",
                    actor_role="CUSTOMER",
                )
            )


class TestSuspendAndReinstate:
    def test_admin_suspension(self, world):
        restaurant_id, _ = world.active_restaurant()

        world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="Hygiene complaint", **ADMIN))

        restaurant = world.get(Restaurant, restaurant_id)
        assert restaurant.status == RestaurantStatus.SUSPENDED.value
        assert restaurant.suspension_reason == "Hygiene complaint"
        entries = current_domain.repository_for(AuditLogEntry).find_by_action(AuditAction.RESTAURANT_SUSPENDED)
        assert entries[0].entry_metadata["automatic_suspension"] is False

    def test_owner_cannot_suspend(self, world):
        restaurant_id, _ = world.active_restaurant()
        with pytest.raises(Forbidden):
            world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="x", **OWNER))

    def test_suspending_twice_fails(self, world):
        restaurant_id, _ = world.active_restaurant()
        world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="first", **ADMIN))
        with pytest.raises(InvalidTransition):
            world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="second", **ADMIN))

    def test_reinstate_with_valid_subscription(self, world):
        restaurant_id, _ = world.active_restaurant()
        world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="Review", **ADMIN))

        world.process(ReinstateRestaurant(restaurant_id=restaurant_id, **ADMIN))

        assert world.get(Restaurant, restaurant_id).status == RestaurantStatus.ACTIVE.value

    def test_reinstate_without_valid_subscription_is_refused(self, world):
        restaurant_id, subscription_id = world.active_restaurant()
        world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="Review", **ADMIN))
        world.process(CancelSubscription(subscription_id=subscription_id, **ADMIN))

        with pytest.raises(Forbidden):
            world.process(ReinstateRestaurant(restaurant_id=restaurant_id, **ADMIN))


class TestSoftDelete:
    def test_delete_hides_and_marks_inactive(self, world):
        restaurant_id, _ = world.active_restaurant()

        world.process(DeleteRestaurant(restaurant_id=restaurant_id, **OWNER))

        restaurant = world.get(Restaurant, restaurant_id)
        assert restaurant.is_deleted
        assert restaurant.status == RestaurantStatus.INACTIVE.value
        with pytest.raises(NotFound):
            get_visible_restaurant(restaurant_id)

    def test_restore_with_valid_subscription_is_active(self, world):
        restaurant_id, _ = world.active_restaurant()
        world.process(DeleteRestaurant(restaurant_id=restaurant_id, **OWNER))

        world.process(RestoreRestaurant(restaurant_id=restaurant_id, **OWNER))

        restaurant = world.get(Restaurant, restaurant_id)
        assert not restaurant.is_deleted
        assert restaurant.status == RestaurantStatus.ACTIVE.value
        assert _audit_actions(restaurant_id)[-2:] == [
            AuditAction.RESTAURANT_DELETED.value,
            AuditAction.RESTAURANT_RESTORED.value,
        ]

    def test_restore_without_subscription_is_suspended(self, world):
        restaurant_id = world.register_restaurant()
        world.process(DeleteRestaurant(restaurant_id=restaurant_id, **OWNER))
        world.process(RestoreRestaurant(restaurant_id=restaurant_id, **ADMIN))

        assert world.get(Restaurant, restaurant_id).status == RestaurantStatus.SUSPENDED.value

    def test_deleting_twice_writes_one_entry(self, world):
        restaurant_id = world.register_restaurant()
        world.process(DeleteRestaurant(restaurant_id=restaurant_id, **OWNER))
        world.process(DeleteRestaurant(restaurant_id=restaurant_id, **OWNER))

        assert _audit_actions(restaurant_id).count(AuditAction.RESTAURANT_DELETED.value) == 1

    def test_other_owner_cannot_delete(self, world):
        restaurant_id = world.register_restaurant()
        with pytest.raises(Forbidden):
            world.process(DeleteRestaurant(restaurant_id=restaurant_id, actor_id="owner-999", actor_role="RESTAURANT_OWNER"))


class TestBrowsing:
    def test_only_restaurants_with_current_subscription_are_listed(self, world):
        listed_id, _ = world.active_restaurant(name="Amala Spot")
        world.register_restaurant(owner_id="owner-002", name="Pending Place")

        assert [str(r.id) for r in list_visible_restaurants()] == [listed_id]

    def test_pending_restaurant_detail_is_not_found(self, world):
        restaurant_id = world.register_restaurant()
        with pytest.raises(NotFound):
            get_visible_restaurant(restaurant_id)

    def test_products_follow_restaurant_visibility(self, world):
        restaurant_id, _ = world.active_restaurant()
        product_id = world.add_product(restaurant_id)
        world.add_product(restaurant_id, name="Sold out stew", quantity=0)

        assert [str(p.id) for p in list_visible_products(restaurant_id)] == [product_id]
        assert str(get_visible_product(product_id).id) == product_id

        world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="Review", **ADMIN))
        with pytest.raises(NotFound):
            list_visible_products(restaurant_id)
        with pytest.raises(NotFound):
            get_visible_product(product_id)

    def test_featured_products_of_a_listed_restaurant(self, world):
        restaurant_id, _ = world.active_restaurant()
        featured_id = world.add_product(restaurant_id, name="Suya Platter")
        world.add_product(restaurant_id, name="Plain Rice")
        world.process(FeatureProduct(product_id=featured_id, is_featured=True, **OWNER))

        assert [str(p.id) for p in list_featured_products(restaurant_id)] == [featured_id]

    def test_hidden_restaurant_has_no_featured_products(self, world):
        restaurant_id, _ = world.active_restaurant()
        featured_id = world.add_product(restaurant_id)
        world.process(FeatureProduct(product_id=featured_id, is_featured=True, **OWNER))
        world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="Review", **ADMIN))

        assert list_featured_products(restaurant_id) == []
        assert list_featured_products("no-such-restaurant") == []


class TestProfileUpdate:
    def test_owner_updates_supplied_fields_only(self, world):
        restaurant_id, _ = world.active_restaurant()

        world.process(UpdateRestaurant(restaurant_id=restaurant_id, name="Chez Amina II", phone="+2348111111111", **OWNER))

        restaurant = world.get(Restaurant, restaurant_id)
        assert restaurant.name == "Chez Amina II"
        assert restaurant.phone == "+2348111111111"
        assert restaurant.address == "12 Marina Road, Lagos"
        assert restaurant.status == RestaurantStatus.ACTIVE.value

    def test_update_is_audited_with_before_and_after(self, world):
        restaurant_id = world.register_restaurant()

        world.process(UpdateRestaurant(restaurant_id=restaurant_id, description="Now open late", **OWNER))

        entries = current_domain.repository_for(AuditLogEntry).find_by_entity("Restaurant", restaurant_id)
        update = entries[-1]
        assert update.action == AuditAction.RESTAURANT_UPDATED.value
        assert update.previous_snapshot["description"] is None
        assert update.new_snapshot["description"] == "Now open late"
        assert update.entry_metadata == {"updated_fields": ["description"]}

    def test_other_owner_cannot_update(self, world):
        restaurant_id = world.register_restaurant()
        with pytest.raises(Forbidden):
            world.process(
                UpdateRestaurant(
                    restaurant_id=restaurant_id,
                    name="Hijacked",
                    actor_id="owner-999",
                    actor_role="RESTAURANT_OWNER",
                )
            )
        assert world.get(Restaurant, restaurant_id).name == "Chez Amina"

    def test_deleted_restaurant_cannot_be_updated(self, world):
        restaurant_id = world.register_restaurant()
        world.process(DeleteRestaurant(restaurant_id=restaurant_id, **OWNER))

        with pytest.raises(NotFound):
            world.process(UpdateRestaurant(restaurant_id=restaurant_id, name="Back again", **OWNER))


class TestOwnerDashboard:
    def test_lists_own_restaurants_with_subscription_state(self, world):
        active_id, _ = world.active_restaurant(name="Amala Spot")
        pending_id = world.register_restaurant(name="Bole Corner")
        world.register_restaurant(owner_id="owner-002", name="Someone Else")

        owned = list_owner_restaurants(Actor("owner-001", Role.RESTAURANT_OWNER))

        assert [str(o.restaurant.id) for o in owned] == [active_id, pending_id]
        assert owned[0].subscription_status == SubscriptionStatus.ACTIVE.value
        assert owned[0].days_remaining >= 28
        assert owned[1].subscription_status is None
        assert owned[1].days_remaining == 0

    def test_suspended_and_pending_restaurants_stay_listed_for_their_owner(self, world):
        restaurant_id, _ = world.active_restaurant()
        world.process(SuspendRestaurant(restaurant_id=restaurant_id, reason="Review", **ADMIN))

        owned = list_owner_restaurants(Actor("owner-001", Role.RESTAURANT_OWNER))

        assert [o.restaurant.status for o in owned] == [RestaurantStatus.SUSPENDED.value]

    def test_deleted_restaurants_are_left_out(self, world):
        restaurant_id = world.register_restaurant()
        world.process(DeleteRestaurant(restaurant_id=restaurant_id, **OWNER))

        assert list_owner_restaurants(Actor("owner-001", Role.RESTAURANT_OWNER)) == []

    def test_customers_have_no_dashboard(self, world):
        with pytest.raises(Forbidden):
            list_owner_restaurants(Actor("cust-001", Role.CUSTOMER))
