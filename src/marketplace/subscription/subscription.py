"""Subscription aggregate root, a restaurant's paid month of visibility.

State Machine:
    PENDING → ACTIVE (admin validates payment) → EXPIRED (daily sweep)
    PENDING/ACTIVE/EXPIRED → CANCELLED (owner or admin)
    EXPIRED/CANCELLED → ACTIVE (renewal through a new payment validation)

Validity is a pure function of the stored fields and the clock; it is
evaluated on every call and never cached.
"""

import math
from datetime import UTC, datetime
from enum import Enum

from dateutil.relativedelta import relativedelta
from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.errors import AlreadyActive, InvalidTransition
from marketplace.shared.clock import as_utc, utc_now

SUBSCRIPTION_PERIOD = relativedelta(months=1)
_SECONDS_PER_DAY = 24 * 60 * 60


class SubscriptionStatus(Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


_VALID_TRANSITIONS = {
    SubscriptionStatus.PENDING: {SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.ACTIVE: {SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.EXPIRED: {SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.CANCELLED: {SubscriptionStatus.ACTIVE},
}


@marketplace.aggregate
class Subscription:
    restaurant_id: Identifier(required=True)
    status: String(choices=SubscriptionStatus, default=SubscriptionStatus.PENDING.value)
    monthly_amount: Float(required=True, min_value=0.0)
    payment_method: String(max_length=50)
    payment_reference: String(max_length=255)
    start_date: DateTime()
    end_date: DateTime()
    created_at: DateTime(default=lambda: datetime.now(UTC))
    updated_at: DateTime(default=lambda: datetime.now(UTC))

    @classmethod
    def request(cls, restaurant_id, monthly_amount, payment_method=None, payment_reference=None):
        now = datetime.now(UTC)
        return cls(
            restaurant_id=str(restaurant_id),
            monthly_amount=monthly_amount,
            payment_method=payment_method,
            payment_reference=payment_reference,
            status=SubscriptionStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Derived queries
    # -------------------------------------------------------------------
    def is_valid(self, as_of: datetime | None = None) -> bool:
        if self.status != SubscriptionStatus.ACTIVE.value:
            return False
        if self.end_date is None:
            return False
        return as_utc(self.end_date) > as_utc(as_of or utc_now())

    def is_expired(self, as_of: datetime | None = None) -> bool:
        if self.end_date is None:
            return self.status == SubscriptionStatus.EXPIRED.value
        return as_utc(self.end_date) <= as_utc(as_of or utc_now())

    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE.value

    def is_pending(self) -> bool:
        return self.status == SubscriptionStatus.PENDING.value

    def days_remaining(self, as_of: datetime | None = None) -> int:
        if self.end_date is None:
            return 0
        remaining = (as_utc(self.end_date) - as_utc(as_of or utc_now())).total_seconds()
        return max(0, math.ceil(remaining / _SECONDS_PER_DAY))

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, action, target):
        current = SubscriptionStatus(self.status)
        allowed = _VALID_TRANSITIONS[current]
        if target not in allowed:
            raise InvalidTransition(
                action,
                current.value,
                target.value,
                sorted(s.value for s in allowed),
            )

    def activate(self, start_date: datetime | None = None):
        """Start a one-calendar-month period from ``start_date`` (defaults to now)."""
        if self.is_active():
            raise AlreadyActive("Subscription is already active")
        self._assert_can_transition("activate subscription", SubscriptionStatus.ACTIVE)

        start = as_utc(start_date) if start_date else utc_now()
        self.status = SubscriptionStatus.ACTIVE.value
        self.start_date = start
        self.end_date = start + SUBSCRIPTION_PERIOD
        self.updated_at = utc_now()

    def expire(self):
        self._assert_can_transition("expire subscription", SubscriptionStatus.EXPIRED)
        self.status = SubscriptionStatus.EXPIRED.value
        self.updated_at = utc_now()

    def cancel(self):
        self._assert_can_transition("cancel subscription", SubscriptionStatus.CANCELLED)
        self.status = SubscriptionStatus.CANCELLED.value
        self.updated_at = utc_now()


@marketplace.repository(part_of=Subscription)
class SubscriptionRepository:
    def find_by_id(self, subscription_id: str) -> Subscription | None:
        return self._dao.query.filter(id=str(subscription_id)).all().first

    def find_by_restaurant(self, restaurant_id: str) -> list[Subscription]:
        """All subscription records of a restaurant, most recent first."""
        subscriptions = self._dao.query.filter(restaurant_id=str(restaurant_id)).limit(None).all().items
        return sorted(subscriptions, key=lambda s: as_utc(s.created_at), reverse=True)

    def find_latest_for_restaurant(self, restaurant_id: str) -> Subscription | None:
        subscriptions = self.find_by_restaurant(restaurant_id)
        return subscriptions[0] if subscriptions else None

    def find_current_for_restaurant(self, restaurant_id: str, as_of: datetime | None = None) -> Subscription | None:
        """The most recent ACTIVE subscription that is still valid, if any."""
        as_of = as_of or utc_now()
        active = [
            s
            for s in self.find_by_restaurant(restaurant_id)
            if s.status == SubscriptionStatus.ACTIVE.value and s.is_valid(as_of)
        ]
        return active[0] if active else None

    def find_overdue(self, as_of: datetime | None = None) -> list[Subscription]:
        """ACTIVE subscriptions whose end date is at or before ``as_of``.

        The predicate is the sweep's whole selection rule: once a subscription
        is expired it drops out, so re-running only sees what is still overdue.
        """
        as_of = as_utc(as_of or utc_now())
        candidates = (
            self._dao.query.filter(status=SubscriptionStatus.ACTIVE.value, end_date__lte=as_of).limit(None).all().items
        )
        overdue = [s for s in candidates if s.end_date is not None and as_utc(s.end_date) <= as_of]
        return sorted(overdue, key=lambda s: (as_utc(s.end_date), str(s.id)))
