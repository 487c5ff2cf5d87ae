"""Order aggregate root and its finite-state machine.

State Machine (9 states):
    PENDING → ACCEPTED → CONFIRMED → PREPARING → READY → DELIVERED
    PENDING → REJECTED                       (reason required)
    PENDING/ACCEPTED/CONFIRMED/PREPARING → CANCELLED   (reason optional)
    ACCEPTED/CONFIRMED/PREPARING/READY/DELIVERED → REPORTED (reason required)

REJECTED, CANCELLED and REPORTED are terminal. An order must be ACCEPTED
before it can be CONFIRMED: the restaurant acknowledges an order before
committing kitchen resources to it.

Transitions are pure state changes on the aggregate; persisting the order
and writing the audit entry are the command handler's job.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition, MissingReason


class OrderStatus(Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REPORTED = "REPORTED"


# State machine transition map
VALID_TRANSITIONS = {
    OrderStatus.PENDING: (OrderStatus.ACCEPTED, OrderStatus.REJECTED, OrderStatus.CANCELLED),
    OrderStatus.ACCEPTED: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.REPORTED),
    OrderStatus.REJECTED: (),  # Terminal
    OrderStatus.CONFIRMED: (OrderStatus.PREPARING, OrderStatus.CANCELLED, OrderStatus.REPORTED),
    OrderStatus.PREPARING: (OrderStatus.READY, OrderStatus.CANCELLED, OrderStatus.REPORTED),
    OrderStatus.READY: (OrderStatus.DELIVERED, OrderStatus.REPORTED),
    OrderStatus.DELIVERED: (OrderStatus.REPORTED,),  # Still reportable after delivery
    OrderStatus.CANCELLED: (),  # Terminal
    OrderStatus.REPORTED: (),  # Terminal
}

TERMINAL_STATES = frozenset(status for status, targets in VALID_TRANSITIONS.items() if not targets)


@marketplace.entity(part_of="Order")
class OrderItem:
    """A line item frozen at order time: the price never follows later catalogue changes."""

    product_id: Identifier(required=True)
    product_name: String(max_length=255)
    quantity: Integer(required=True, min_value=1)
    unit_price: Float(required=True, min_value=0.0)

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


@marketplace.aggregate
class Order:
    customer_id: Identifier(required=True)
    restaurant_id: Identifier(required=True)
    status: String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items: HasMany(OrderItem)
    total_amount: Float(required=True, min_value=0.0)
    notes: Text()
    idempotency_key: String(required=True, max_length=255, unique=True)
    rejection_reason: String(max_length=500)
    cancellation_reason: String(max_length=500)
    report_reason: String(max_length=500)
    created_at: DateTime(default=lambda: datetime.now(UTC))
    updated_at: DateTime(default=lambda: datetime.now(UTC))

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id, restaurant_id, items_data, idempotency_key, notes=None):
        """Create a PENDING order. The total is computed here, once, and never recalculated.

        Args:
            items_data: list of dicts with product_id, quantity, unit_price and
                optionally product_name.
        """
        now = datetime.now(UTC)
        items = [
            OrderItem(
                product_id=str(item["product_id"]),
                product_name=item.get("product_name"),
                quantity=item["quantity"],
                unit_price=item["unit_price"],
            )
            for item in items_data
        ]
        total_amount = round(sum(item.line_total for item in items), 2)

        return cls(
            customer_id=str(customer_id),
            restaurant_id=str(restaurant_id),
            status=OrderStatus.PENDING.value,
            items=items,
            total_amount=total_amount,
            notes=notes,
            idempotency_key=idempotency_key,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # State machine queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def valid_next_states(self) -> list[OrderStatus]:
        return list(VALID_TRANSITIONS[self.current_status])

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in VALID_TRANSITIONS[self.current_status]

    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATES

    def can_be_cancelled(self) -> bool:
        return self.can_transition_to(OrderStatus.CANCELLED)

    def can_be_reported(self) -> bool:
        return self.can_transition_to(OrderStatus.REPORTED)

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, action, target):
        if not self.can_transition_to(target):
            raise InvalidTransition(
                action,
                self.status,
                target.value,
                [s.value for s in self.valid_next_states()],
            )

    def _transition(self, target):
        self.status = target.value
        self.updated_at = datetime.now(UTC)

    def accept(self):
        self._assert_can_transition("accept order", OrderStatus.ACCEPTED)
        self._transition(OrderStatus.ACCEPTED)

    def reject(self, reason):
        self._assert_can_transition("reject order", OrderStatus.REJECTED)
        if not reason or not reason.strip():
            raise MissingReason("Rejection reason is required")
        self.rejection_reason = reason
        self._transition(OrderStatus.REJECTED)

    def confirm(self):
        self._assert_can_transition("confirm order", OrderStatus.CONFIRMED)
        self._transition(OrderStatus.CONFIRMED)

    def start_preparing(self):
        self._assert_can_transition("start preparing order", OrderStatus.PREPARING)
        self._transition(OrderStatus.PREPARING)

    def mark_ready(self):
        self._assert_can_transition("mark order as ready", OrderStatus.READY)
        self._transition(OrderStatus.READY)

    def mark_delivered(self):
        self._assert_can_transition("mark order as delivered", OrderStatus.DELIVERED)
        self._transition(OrderStatus.DELIVERED)

    def cancel(self, reason=None):
        self._assert_can_transition("cancel order", OrderStatus.CANCELLED)
        self.cancellation_reason = reason or None
        self._transition(OrderStatus.CANCELLED)

    def report(self, reason):
        self._assert_can_transition("report order", OrderStatus.REPORTED)
        if not reason or not reason.strip():
            raise MissingReason("Report reason is required")
        self.report_reason = reason
        self._transition(OrderStatus.REPORTED)


@marketplace.repository(part_of=Order)
class OrderRepository:
    def find_by_id(self, order_id: str) -> Order | None:
        return self._dao.query.filter(id=str(order_id)).all().first

    def find_by_idempotency_key(self, idempotency_key: str) -> Order | None:
        return self._dao.query.filter(idempotency_key=idempotency_key).all().first

    def find_by_customer(self, customer_id: str) -> list[Order]:
        orders = self._dao.query.filter(customer_id=str(customer_id)).limit(None).all().items
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def find_by_restaurant(self, restaurant_id: str, statuses=None) -> list[Order]:
        """Orders of one restaurant, newest first, optionally narrowed to some statuses."""
        criteria = {"restaurant_id": str(restaurant_id)}
        if statuses:
            criteria["status__in"] = [s.value if isinstance(s, OrderStatus) else s for s in statuses]
        orders = self._dao.query.filter(**criteria).limit(None).all().items
        return sorted(orders, key=lambda o: o.created_at, reverse=True)
