"""Shared BDD fixtures and step definitions for the Marketplace domain."""

import pytest
from marketplace.order.order import Order
from marketplace.restaurant.restaurant import Restaurant
from marketplace.subscription.subscription import Subscription
from pytest_bdd import given, parsers, then


@pytest.fixture()
def scenario_state():
    """Ids and results carried between steps."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an active restaurant "{name}" with a product on the menu'))
def _(world, scenario_state, name):
    restaurant_id, subscription_id = world.active_restaurant(name=name)
    scenario_state["restaurant_id"] = restaurant_id
    scenario_state["subscription_id"] = subscription_id
    scenario_state["product_id"] = world.add_product(restaurant_id)


@given("a customer has placed an order")
def _(world, scenario_state):
    scenario_state["order_id"] = world.place_order(
        scenario_state["restaurant_id"],
        [(scenario_state["product_id"], 1)],
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the subscription is "{status}"'))
def _(world, scenario_state, status):
    assert world.get(Subscription, scenario_state["subscription_id"]).status == status


@then(parsers.cfparse('the restaurant is "{status}"'))
def _(world, scenario_state, status):
    assert world.get(Restaurant, scenario_state["restaurant_id"]).status == status


@then(parsers.cfparse("the restaurant visibility is {score:d}"))
def _(world, scenario_state, score):
    assert world.get(Restaurant, scenario_state["restaurant_id"]).visibility == score


@then(parsers.cfparse('the order is "{status}"'))
def _(world, scenario_state, status):
    assert world.get(Order, scenario_state["order_id"]).status == status
