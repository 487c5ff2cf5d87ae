"""Restaurant aggregate root.

Visibility is derived from status and the soft-delete marker on every read
and is never persisted. Subscription validity, the other half of
customer-facing visibility, is checked by ``marketplace.restaurant.visibility``.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text

from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition

VISIBLE_SCORE = 100
HIDDEN_SCORE = 0


class RestaurantStatus(Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


@marketplace.aggregate
class Restaurant:
    name: String(required=True, max_length=255)
    description: Text()
    address: String(required=True, max_length=500)
    phone: String(required=True, max_length=30)
    status: String(choices=RestaurantStatus, default=RestaurantStatus.PENDING.value)
    owner_id: Identifier(required=True)
    suspension_reason: String(max_length=500)
    deleted_at: DateTime()
    created_at: DateTime(default=lambda: datetime.now(UTC))
    updated_at: DateTime(default=lambda: datetime.now(UTC))

    @classmethod
    def register(cls, owner_id, name, address, phone, description=None):
        now = datetime.now(UTC)
        return cls(
            owner_id=str(owner_id),
            name=name,
            address=address,
            phone=phone,
            description=description,
            status=RestaurantStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_visible(self) -> bool:
        return self.status == RestaurantStatus.ACTIVE.value and not self.is_deleted

    @property
    def visibility(self) -> int:
        return VISIBLE_SCORE if self.is_visible else HIDDEN_SCORE

    def is_active(self) -> bool:
        return self.status == RestaurantStatus.ACTIVE.value

    def is_pending(self) -> bool:
        return self.status == RestaurantStatus.PENDING.value

    def is_suspended(self) -> bool:
        return self.status == RestaurantStatus.SUSPENDED.value

    def can_receive_orders(self) -> bool:
        # Deleting a restaurant also makes it INACTIVE, so status alone decides.
        return self.is_active()

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def _touch(self):
        self.updated_at = datetime.now(UTC)

    def activate(self):
        """Expose the restaurant again after a subscription payment is validated."""
        if self.is_deleted:
            raise InvalidTransition(
                "activate restaurant",
                self.status,
                RestaurantStatus.ACTIVE.value,
                [],
            )
        self.status = RestaurantStatus.ACTIVE.value
        self.suspension_reason = None
        self._touch()

    def update_details(self, name=None, description=None, address=None, phone=None):
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description
        if address is not None:
            self.address = address
        if phone is not None:
            self.phone = phone
        self._touch()

    def suspend(self, reason=None):
        self.status = RestaurantStatus.SUSPENDED.value
        self.suspension_reason = reason
        self._touch()

    def soft_delete(self):
        self.status = RestaurantStatus.INACTIVE.value
        self.deleted_at = datetime.now(UTC)
        self._touch()

    def restore(self, has_valid_subscription: bool):
        """Undo a soft delete; only a restaurant with a valid subscription comes back ACTIVE."""
        self.deleted_at = None
        if has_valid_subscription:
            self.status = RestaurantStatus.ACTIVE.value
        else:
            self.status = RestaurantStatus.SUSPENDED.value
        self._touch()


@marketplace.repository(part_of=Restaurant)
class RestaurantRepository:
    def find_by_owner(self, owner_id: str, include_deleted: bool = False) -> list[Restaurant]:
        restaurants = self._dao.query.filter(owner_id=str(owner_id)).limit(None).all().items
        if include_deleted:
            return restaurants
        return [r for r in restaurants if not r.is_deleted]

    def find_active(self) -> list[Restaurant]:
        restaurants = self._dao.query.filter(status=RestaurantStatus.ACTIVE.value).limit(None).all().items
        return [r for r in restaurants if not r.is_deleted]

    def find_by_id(self, restaurant_id: str) -> Restaurant | None:
        return self._dao.query.filter(id=str(restaurant_id)).all().first
