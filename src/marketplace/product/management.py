"""Product management: menu details, stock, availability, featuring, soft delete and restore."""

import structlog
from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail, snapshot
from marketplace.domain import marketplace
from marketplace.product.product import Product
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor
from marketplace.shared.lookup import get_or_not_found

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Product")
class UpdateProduct:
    """Owner edits the menu fields of a product. Omitted fields are left unchanged."""

    product_id: Identifier(required=True)
    name: String(max_length=255)
    description: Text()
    price: Float(min_value=0.0)
    sort_order: Integer()
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Product")
class UpdateProductQuantity:
    product_id: Identifier(required=True)
    quantity: Integer(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Product")
class ActivateProduct:
    product_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Product")
class DeactivateProduct:
    product_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Product")
class FeatureProduct:
    product_id: Identifier(required=True)
    is_featured: Boolean(default=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Product")
class DeleteProduct:
    product_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command(part_of="Product")
class RestoreProduct:
    product_id: Identifier(required=True)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Product)
class ManageProductHandler:
    def _change(self, command, mutate, action=AuditAction.PRODUCT_UPDATED, metadata=None):
        """Load, authorize, mutate, persist and audit one product."""
        actor = Actor.from_command(command)
        repo = current_domain.repository_for(Product)
        product = get_or_not_found(Product, command.product_id, "Product")
        restaurant = get_or_not_found(Restaurant, product.restaurant_id, "Restaurant")
        actor.require_owner_or_admin(restaurant.owner_id, "Not authorized to manage this product")

        previous_state = snapshot(product)
        mutate(product)
        repo.add(product)

        AuditTrail(command.correlation_id, actor.actor_id).record(
            action,
            product,
            previous_state=previous_state,
            metadata=metadata,
        )
        logger.info("Product updated", product_id=str(product.id), action=action.value, status=product.status)

    @handle(UpdateProduct)
    def update_product(self, command):
        changes = {
            name: getattr(command, name)
            for name in ("name", "description", "price", "sort_order")
            if getattr(command, name) is not None
        }
        self._change(
            command,
            lambda product: product.update_details(**changes),
            metadata={"updated_fields": sorted(changes)},
        )

    @handle(UpdateProductQuantity)
    def update_quantity(self, command):
        self._change(
            command,
            lambda product: product.update_quantity(command.quantity),
            metadata={"quantity": command.quantity},
        )

    @handle(ActivateProduct)
    def activate_product(self, command):
        self._change(command, Product.activate)

    @handle(DeactivateProduct)
    def deactivate_product(self, command):
        self._change(command, Product.deactivate)

    @handle(FeatureProduct)
    def feature_product(self, command):
        self._change(command, lambda product: product.set_featured(bool(command.is_featured)))

    @handle(DeleteProduct)
    def delete_product(self, command):
        self._change(command, Product.soft_delete, action=AuditAction.PRODUCT_DELETED)

    @handle(RestoreProduct)
    def restore_product(self, command):
        self._change(command, Product.restore, action=AuditAction.PRODUCT_RESTORED)
