"""Product creation — command and handler."""

import structlog
from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail
from marketplace.domain import marketplace
from marketplace.product.product import Product
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import Actor
from marketplace.shared.lookup import get_or_not_found

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Product")
class AddProduct:
    restaurant_id: Identifier(required=True)
    name: String(required=True, max_length=255)
    description: Text()
    price: Float(required=True, min_value=0.0)
    quantity: Integer(default=0)
    is_featured: Boolean(default=False)
    sort_order: Integer(default=0)
    actor_id: String(required=True, max_length=255)
    actor_role: String(required=True, max_length=20)
    correlation_id: String(max_length=64)


@marketplace.command_handler(part_of=Product)
class AddProductHandler:
    @handle(AddProduct)
    def add_product(self, command):
        actor = Actor.from_command(command)
        restaurant = get_or_not_found(Restaurant, command.restaurant_id, "Restaurant")
        actor.require_owner_or_admin(restaurant.owner_id, "Not authorized to add products to this restaurant")

        product = Product.create(
            restaurant_id=restaurant.id,
            name=command.name,
            price=command.price,
            quantity=command.quantity or 0,
            description=command.description,
            is_featured=bool(command.is_featured),
            sort_order=command.sort_order or 0,
        )
        current_domain.repository_for(Product).add(product)

        AuditTrail(command.correlation_id, actor.actor_id).record(AuditAction.PRODUCT_CREATED, product)
        logger.info("Product added", product_id=str(product.id), restaurant_id=str(restaurant.id))
        return str(product.id)
