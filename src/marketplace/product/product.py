"""Product aggregate root, a menu entry offered by one restaurant."""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.errors import InvalidPrice, QuantityInvariantViolation


class ProductStatus(Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    OUT_OF_STOCK = "OUT_OF_STOCK"


@marketplace.aggregate
class Product:
    restaurant_id: Identifier(required=True)
    name: String(required=True, max_length=255)
    description: Text()
    price: Float(required=True, min_value=0.0)
    quantity: Integer(default=0)
    status: String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    is_featured: Boolean(default=False)
    sort_order: Integer(default=0)
    deleted_at: DateTime()
    created_at: DateTime(default=lambda: datetime.now(UTC))
    updated_at: DateTime(default=lambda: datetime.now(UTC))

    @classmethod
    def create(cls, restaurant_id, name, price, quantity=0, description=None, is_featured=False, sort_order=0):
        if quantity < 0:
            raise QuantityInvariantViolation("Quantity cannot be negative")

        now = datetime.now(UTC)
        status = ProductStatus.ACTIVE.value if quantity > 0 else ProductStatus.OUT_OF_STOCK.value
        return cls(
            restaurant_id=str(restaurant_id),
            name=name,
            description=description,
            price=price,
            quantity=quantity,
            status=status,
            is_featured=is_featured,
            sort_order=sort_order,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_visible(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value and not self.is_deleted

    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value and not self.is_deleted

    def is_out_of_stock(self) -> bool:
        return self.status == ProductStatus.OUT_OF_STOCK.value

    def can_be_ordered(self) -> bool:
        return self.is_active() and self.quantity > 0

    def _touch(self):
        self.updated_at = datetime.now(UTC)

    def activate(self):
        self.status = ProductStatus.ACTIVE.value
        self._touch()

    def deactivate(self):
        self.status = ProductStatus.INACTIVE.value
        self._touch()

    def mark_out_of_stock(self):
        self.status = ProductStatus.OUT_OF_STOCK.value
        self._touch()

    def update_quantity(self, quantity):
        """Set the available quantity; running out flips an ACTIVE product to OUT_OF_STOCK."""
        if quantity < 0:
            raise QuantityInvariantViolation("Quantity cannot be negative")

        self.quantity = quantity
        if quantity == 0 and self.status != ProductStatus.INACTIVE.value:
            self.mark_out_of_stock()
        else:
            self._touch()

    def update_details(self, name=None, description=None, price=None, sort_order=None):
        """Apply the menu fields that were supplied; ``None`` leaves a field as it is."""
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description
        if price is not None:
            if price < 0:
                raise InvalidPrice("Price cannot be negative")
            self.price = price
        if sort_order is not None:
            self.sort_order = sort_order
        self._touch()

    def set_featured(self, is_featured):
        self.is_featured = is_featured
        self._touch()

    def soft_delete(self):
        self.deleted_at = datetime.now(UTC)
        self._touch()

    def restore(self):
        self.deleted_at = None
        self._touch()


@marketplace.repository(part_of=Product)
class ProductRepository:
    def find_by_id(self, product_id: str) -> Product | None:
        return self._dao.query.filter(id=str(product_id)).all().first

    def find_by_restaurant(self, restaurant_id: str, include_deleted: bool = False) -> list[Product]:
        products = self._dao.query.filter(restaurant_id=str(restaurant_id)).limit(None).all().items
        if not include_deleted:
            products = [p for p in products if not p.is_deleted]
        return sorted(products, key=lambda p: (p.sort_order or 0, p.name))

    def find_featured_by_restaurant(self, restaurant_id: str) -> list[Product]:
        products = (
            self._dao.query.filter(restaurant_id=str(restaurant_id), is_featured=True).limit(None).all().items
        )
        return sorted((p for p in products if not p.is_deleted), key=lambda p: (p.sort_order or 0, p.name))
