"""Tests for the Order state machine: transition closure, terminal states and reasons."""

import pytest
from marketplace.errors import InvalidTransition, MissingReason
from marketplace.order.order import TERMINAL_STATES, VALID_TRANSITIONS, Order, OrderStatus

# action name -> (invocation, target state)
ACTIONS = {
    "accept": (lambda o: o.accept(), OrderStatus.ACCEPTED),
    "reject": (lambda o: o.reject("Out of ingredients"), OrderStatus.REJECTED),
    "confirm": (lambda o: o.confirm(), OrderStatus.CONFIRMED),
    "start_preparing": (lambda o: o.start_preparing(), OrderStatus.PREPARING),
    "mark_ready": (lambda o: o.mark_ready(), OrderStatus.READY),
    "mark_delivered": (lambda o: o.mark_delivered(), OrderStatus.DELIVERED),
    "cancel": (lambda o: o.cancel(), OrderStatus.CANCELLED),
    "report": (lambda o: o.report("Cold food"), OrderStatus.REPORTED),
}

ALL_PAIRS = [(state, action) for state in OrderStatus for action in ACTIONS]


def _order(status=OrderStatus.PENDING):
    order = Order.place(
        customer_id="cust-001",
        restaurant_id="rest-001",
        items_data=[{"product_id": "prod-001", "product_name": "Jollof Rice", "quantity": 2, "unit_price": 2500.0}],
        idempotency_key="key-001",
    )
    order.status = status.value
    return order


class TestPlacement:
    def test_new_order_is_pending(self):
        assert _order().status == OrderStatus.PENDING.value

    def test_total_computed_from_items(self):
        order = Order.place(
            customer_id="cust-001",
            restaurant_id="rest-001",
            items_data=[
                {"product_id": "prod-001", "quantity": 2, "unit_price": 2500.0},
                {"product_id": "prod-002", "quantity": 1, "unit_price": 800.5},
            ],
            idempotency_key="key-002",
        )
        assert order.total_amount == 5800.5
        assert len(order.items) == 2


class TestTransitionClosure:
    @pytest.mark.parametrize("state,action", ALL_PAIRS, ids=[f"{s.value}-{a}" for s, a in ALL_PAIRS])
    def test_every_state_action_pair(self, state, action):
        invoke, target = ACTIONS[action]
        order = _order(state)

        if target in VALID_TRANSITIONS[state]:
            invoke(order)
            assert order.status == target.value
        else:
            with pytest.raises(InvalidTransition):
                invoke(order)
            assert order.status == state.value

    def test_pending_cannot_skip_to_confirmed(self):
        order = _order()
        with pytest.raises(InvalidTransition) as exc:
            order.confirm()
        assert exc.value.current_status == "PENDING"
        assert exc.value.valid_next_states == ["ACCEPTED", "REJECTED", "CANCELLED"]

    def test_error_message_lists_valid_transitions(self):
        order = _order(OrderStatus.READY)
        with pytest.raises(InvalidTransition) as exc:
            order.cancel()
        assert "READY" in exc.value.message
        assert "DELIVERED, REPORTED" in exc.value.message

    def test_transition_stamps_updated_at(self):
        order = _order()
        before = order.updated_at
        order.accept()
        assert order.updated_at >= before

    def test_delivered_order_can_still_be_reported(self):
        order = _order(OrderStatus.DELIVERED)
        order.report("Missing side dish")
        assert order.status == OrderStatus.REPORTED.value


class TestTerminalStates:
    @pytest.mark.parametrize("state", [OrderStatus.REJECTED, OrderStatus.CANCELLED, OrderStatus.REPORTED])
    def test_terminal_states_have_no_exits(self, state):
        order = _order(state)
        assert order.is_terminal()
        assert order.valid_next_states() == []

    def test_terminal_set(self):
        assert TERMINAL_STATES == {OrderStatus.REJECTED, OrderStatus.CANCELLED, OrderStatus.REPORTED}

    def test_terminal_message_says_none(self):
        order = _order(OrderStatus.CANCELLED)
        with pytest.raises(InvalidTransition) as exc:
            order.accept()
        assert exc.value.message.endswith("Valid transitions: none")


class TestReasons:
    def test_reject_requires_reason(self):
        with pytest.raises(MissingReason):
            _order().reject("")

    def test_report_rejects_whitespace_reason(self):
        with pytest.raises(MissingReason):
            _order(OrderStatus.ACCEPTED).report("   ")

    def test_reject_keeps_reason_verbatim(self):
        order = _order()
        order.reject("Kitchen closed early today")
        assert order.status == OrderStatus.REJECTED.value
        assert order.rejection_reason == "Kitchen closed early today"

    def test_wrong_state_checked_before_reason(self):
        with pytest.raises(InvalidTransition):
            _order(OrderStatus.ACCEPTED).reject("")

    def test_cancel_reason_is_optional(self):
        order = _order()
        order.cancel()
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason is None

    def test_cancel_keeps_reason(self):
        order = _order(OrderStatus.PREPARING)
        order.cancel("kitchen issue")
        assert order.cancellation_reason == "kitchen issue"
