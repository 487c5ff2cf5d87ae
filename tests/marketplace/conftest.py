import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Clear every store after each test."""
    from marketplace.idempotency import reset_store

    reset_store()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()
    reset_store()


OWNER_ID = "owner-001"
ADMIN_ID = "admin-001"
CUSTOMER_ID = "cust-001"


class Marketplace:
    """Drives the domain through its commands to build test fixtures."""

    def process(self, command):
        from protean import current_domain

        return current_domain.process(command, asynchronous=False)

    def register_restaurant(self, owner_id=OWNER_ID, name="Chez Amina"):
        from marketplace.restaurant.registration import RegisterRestaurant

        return self.process(
            RegisterRestaurant(
                name=name,
                address="12 Marina Road, Lagos",
                phone="+2348000000000",
                actor_id=owner_id,
                actor_role="RESTAURANT_OWNER",
            )
        )

    def request_subscription(self, restaurant_id, owner_id=OWNER_ID, monthly_amount=25000.0):
        from marketplace.subscription.creation import RequestSubscription

        return self.process(
            RequestSubscription(
                restaurant_id=restaurant_id,
                monthly_amount=monthly_amount,
                payment_method="bank_transfer",
                payment_reference="TRF-0001",
                actor_id=owner_id,
                actor_role="RESTAURANT_OWNER",
            )
        )

    def validate_payment(self, subscription_id, correlation_id=None):
        from marketplace.subscription.activation import ValidateSubscriptionPayment

        return self.process(
            ValidateSubscriptionPayment(
                subscription_id=subscription_id,
                actor_id=ADMIN_ID,
                actor_role="ADMIN",
                correlation_id=correlation_id,
            )
        )

    def active_restaurant(self, owner_id=OWNER_ID, name="Chez Amina"):
        """A restaurant with a validated subscription. Returns (restaurant_id, subscription_id)."""
        restaurant_id = self.register_restaurant(owner_id=owner_id, name=name)
        subscription_id = self.request_subscription(restaurant_id, owner_id=owner_id)
        self.validate_payment(subscription_id)
        return restaurant_id, subscription_id

    def add_product(self, restaurant_id, owner_id=OWNER_ID, name="Jollof Rice", price=2500.0, quantity=10):
        from marketplace.product.creation import AddProduct

        return self.process(
            AddProduct(
                restaurant_id=restaurant_id,
                name=name,
                price=price,
                quantity=quantity,
                actor_id=owner_id,
                actor_role="RESTAURANT_OWNER",
            )
        )

    def place_order(self, restaurant_id, lines, idempotency_key="key-001", customer_id=CUSTOMER_ID):
        """``lines`` is a list of (product_id, quantity) pairs."""
        import json

        from marketplace.order.creation import PlaceOrder

        return self.process(
            PlaceOrder(
                restaurant_id=restaurant_id,
                items=json.dumps([{"product_id": p, "quantity": q} for p, q in lines]),
                idempotency_key=idempotency_key,
                actor_id=customer_id,
                actor_role="CUSTOMER",
            )
        )

    def end_subscription_at(self, subscription_id, end_date):
        """Move a subscription's end date, as if time had passed."""
        from protean import current_domain

        from marketplace.subscription.subscription import Subscription

        repo = current_domain.repository_for(Subscription)
        subscription = repo.get(subscription_id)
        subscription.end_date = end_date
        repo.add(subscription)

    def seed_active_restaurant(self, name, end_date, owner_id=OWNER_ID):
        """Store an ACTIVE restaurant and subscription directly, skipping commands and audit.

        Returns (restaurant_id, subscription_id). Used to build large data sets cheaply.
        """
        from datetime import timedelta

        from protean import current_domain

        from marketplace.restaurant.restaurant import Restaurant, RestaurantStatus
        from marketplace.subscription.subscription import Subscription, SubscriptionStatus

        restaurant = Restaurant(
            name=name,
            address="12 Marina Road, Lagos",
            phone="+2348000000000",
            owner_id=owner_id,
            status=RestaurantStatus.ACTIVE.value,
        )
        current_domain.repository_for(Restaurant).add(restaurant)

        subscription = Subscription(
            restaurant_id=str(restaurant.id),
            monthly_amount=25000.0,
            status=SubscriptionStatus.ACTIVE.value,
            start_date=end_date - timedelta(days=30),
            end_date=end_date,
        )
        current_domain.repository_for(Subscription).add(subscription)
        return str(restaurant.id), str(subscription.id)

    def get(self, aggregate_cls, identifier):
        from protean import current_domain

        return current_domain.repository_for(aggregate_cls).get(identifier)


@pytest.fixture()
def world():
    return Marketplace()
