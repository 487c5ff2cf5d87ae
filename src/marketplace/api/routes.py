"""FastAPI routes for the Marketplace domain.

Every state-changing route requires an ``Idempotency-Key`` header and runs
through the idempotency guard; read routes do not.
"""

import json

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from marketplace.api.context import (
    RequestContext,
    dump,
    idempotency_key,
    idempotent_response,
    request_context,
)
from marketplace.api.schemas import (
    AddProductRequest,
    AuditRecordResponse,
    CancelSubscriptionRequest,
    FeatureProductRequest,
    OrderIdResponse,
    OrderItemResponse,
    OrderResponse,
    OwnedRestaurantResponse,
    PlaceOrderRequest,
    ProductIdResponse,
    ProductResponse,
    ReasonRequest,
    RegisterRestaurantRequest,
    RequestSubscriptionRequest,
    RestaurantIdResponse,
    RestaurantResponse,
    StatusResponse,
    SubscriptionIdResponse,
    SuspendRestaurantRequest,
    SweepSummaryResponse,
    UpdateProductRequest,
    UpdateQuantityRequest,
    UpdateRestaurantRequest,
)
from marketplace.audit.queries import get_audit_logs
from marketplace.order.acceptance import AcceptOrder, RejectOrder
from marketplace.order.cancellation import CancelOrder
from marketplace.order.creation import PlaceOrder
from marketplace.order.fulfillment import ConfirmOrder, MarkOrderDelivered, MarkOrderReady, StartPreparingOrder
from marketplace.order.queries import (
    get_order,
    list_active_orders,
    list_customer_orders,
    list_pending_orders,
    list_restaurant_orders,
)
from marketplace.order.reporting import ReportOrder
from marketplace.product.creation import AddProduct
from marketplace.product.management import (
    ActivateProduct,
    DeactivateProduct,
    DeleteProduct,
    FeatureProduct,
    RestoreProduct,
    UpdateProduct,
    UpdateProductQuantity,
)
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
from marketplace.shared.actor import Role
from marketplace.subscription.activation import ValidateSubscriptionPayment
from marketplace.subscription.cancellation import CancelSubscription
from marketplace.subscription.creation import RequestSubscription
from marketplace.subscription.expiration import SweepTrigger, run_expiration_sweep


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _status_only(command):
    def operation():
        _process(command)
        return 200, dump(StatusResponse())

    return operation


def _restaurant_response(restaurant) -> RestaurantResponse:
    return RestaurantResponse(
        id=str(restaurant.id),
        name=restaurant.name,
        description=restaurant.description,
        address=restaurant.address,
        phone=restaurant.phone,
        status=restaurant.status,
        visibility=restaurant.visibility,
    )


def _product_response(product) -> ProductResponse:
    return ProductResponse(
        id=str(product.id),
        restaurant_id=str(product.restaurant_id),
        name=product.name,
        description=product.description,
        price=product.price,
        quantity=product.quantity,
        is_featured=bool(product.is_featured),
    )


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        id=str(order.id),
        customer_id=str(order.customer_id),
        restaurant_id=str(order.restaurant_id),
        status=order.status,
        total_amount=order.total_amount,
        notes=order.notes,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in order.items
        ],
        valid_next_states=[s.value for s in order.valid_next_states()],
        rejection_reason=order.rejection_reason,
        cancellation_reason=order.cancellation_reason,
        report_reason=order.report_reason,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# ---------------------------------------------------------------------------
# Restaurant Router
# ---------------------------------------------------------------------------
restaurant_router = APIRouter(prefix="/restaurants", tags=["restaurants"])


@restaurant_router.get("", response_model=list[RestaurantResponse])
async def list_restaurants() -> list[RestaurantResponse]:
    return [_restaurant_response(r) for r in list_visible_restaurants()]


@restaurant_router.get("/mine", response_model=list[OwnedRestaurantResponse])
async def my_restaurants(ctx: RequestContext = Depends(request_context)) -> list[OwnedRestaurantResponse]:
    return [
        OwnedRestaurantResponse(
            **_restaurant_response(owned.restaurant).model_dump(),
            subscription_status=owned.subscription_status,
            subscription_end_date=owned.subscription_end_date,
            days_remaining=owned.days_remaining,
        )
        for owned in list_owner_restaurants(ctx.actor)
    ]


@restaurant_router.get("/{restaurant_id}", response_model=RestaurantResponse)
async def get_restaurant(restaurant_id: str) -> RestaurantResponse:
    return _restaurant_response(get_visible_restaurant(restaurant_id))


@restaurant_router.get("/{restaurant_id}/products", response_model=list[ProductResponse])
async def list_restaurant_products(restaurant_id: str) -> list[ProductResponse]:
    return [_product_response(p) for p in list_visible_products(restaurant_id)]


@restaurant_router.get("/{restaurant_id}/products/featured", response_model=list[ProductResponse])
async def list_restaurant_featured_products(restaurant_id: str) -> list[ProductResponse]:
    return [_product_response(p) for p in list_featured_products(restaurant_id)]


@restaurant_router.post("", status_code=201, response_model=RestaurantIdResponse)
async def register_restaurant(
    body: RegisterRestaurantRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = RegisterRestaurant(
        name=body.name,
        description=body.description,
        address=body.address,
        phone=body.phone,
        **ctx.command_fields(),
    )

    def operation():
        return 201, dump(RestaurantIdResponse(restaurant_id=_process(command)))

    return idempotent_response(key, operation)


@restaurant_router.patch("/{restaurant_id}", response_model=StatusResponse)
async def update_restaurant(
    restaurant_id: str,
    body: UpdateRestaurantRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = UpdateRestaurant(
        restaurant_id=restaurant_id,
        **body.model_dump(exclude_none=True),
        **ctx.command_fields(),
    )
    return idempotent_response(key, _status_only(command))


@restaurant_router.post("/{restaurant_id}/suspend", response_model=StatusResponse)
async def suspend_restaurant(
    restaurant_id: str,
    body: SuspendRestaurantRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = SuspendRestaurant(restaurant_id=restaurant_id, reason=body.reason, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@restaurant_router.post("/{restaurant_id}/reinstate", response_model=StatusResponse)
async def reinstate_restaurant(
    restaurant_id: str,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = ReinstateRestaurant(restaurant_id=restaurant_id, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@restaurant_router.delete("/{restaurant_id}", response_model=StatusResponse)
async def delete_restaurant(
    restaurant_id: str,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = DeleteRestaurant(restaurant_id=restaurant_id, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@restaurant_router.post("/{restaurant_id}/restore", response_model=StatusResponse)
async def restore_restaurant(
    restaurant_id: str,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = RestoreRestaurant(restaurant_id=restaurant_id, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@restaurant_router.post("/{restaurant_id}/products", status_code=201, response_model=ProductIdResponse)
async def add_product(
    restaurant_id: str,
    body: AddProductRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = AddProduct(
        restaurant_id=restaurant_id,
        name=body.name,
        description=body.description,
        price=body.price,
        quantity=body.quantity,
        is_featured=body.is_featured,
        sort_order=body.sort_order,
        **ctx.command_fields(),
    )

    def operation():
        return 201, dump(ProductIdResponse(product_id=_process(command)))

    return idempotent_response(key, operation)


@restaurant_router.get("/{restaurant_id}/orders", response_model=list[OrderResponse])
async def restaurant_orders(
    restaurant_id: str,
    status: list[str] | None = Query(default=None),
    ctx: RequestContext = Depends(request_context),
) -> list[OrderResponse]:
    return [_order_response(o) for o in list_restaurant_orders(restaurant_id, ctx.actor, statuses=status)]


@restaurant_router.get("/{restaurant_id}/orders/pending", response_model=list[OrderResponse])
async def restaurant_pending_orders(
    restaurant_id: str,
    ctx: RequestContext = Depends(request_context),
) -> list[OrderResponse]:
    return [_order_response(o) for o in list_pending_orders(restaurant_id, ctx.actor)]


@restaurant_router.get("/{restaurant_id}/orders/active", response_model=list[OrderResponse])
async def restaurant_active_orders(
    restaurant_id: str,
    ctx: RequestContext = Depends(request_context),
) -> list[OrderResponse]:
    return [_order_response(o) for o in list_active_orders(restaurant_id, ctx.actor)]


# ---------------------------------------------------------------------------
# Subscription Router
# ---------------------------------------------------------------------------
subscription_router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@subscription_router.post("", status_code=201, response_model=SubscriptionIdResponse)
async def request_subscription(
    body: RequestSubscriptionRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = RequestSubscription(
        restaurant_id=body.restaurant_id,
        monthly_amount=body.monthly_amount,
        payment_method=body.payment_method,
        payment_reference=body.payment_reference,
        **ctx.command_fields(),
    )

    def operation():
        return 201, dump(SubscriptionIdResponse(subscription_id=_process(command)))

    return idempotent_response(key, operation)


@subscription_router.post("/{subscription_id}/validate-payment", response_model=StatusResponse)
async def validate_subscription_payment(
    subscription_id: str,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = ValidateSubscriptionPayment(subscription_id=subscription_id, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@subscription_router.post("/{subscription_id}/cancel", response_model=StatusResponse)
async def cancel_subscription(
    subscription_id: str,
    body: CancelSubscriptionRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = CancelSubscription(subscription_id=subscription_id, reason=body.reason, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    return _product_response(get_visible_product(product_id))


@product_router.patch("/{product_id}", response_model=StatusResponse)
async def update_product(
    product_id: str,
    body: UpdateProductRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = UpdateProduct(product_id=product_id, **body.model_dump(exclude_none=True), **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@product_router.put("/{product_id}/quantity", response_model=StatusResponse)
async def update_product_quantity(
    product_id: str,
    body: UpdateQuantityRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = UpdateProductQuantity(product_id=product_id, quantity=body.quantity, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@product_router.post("/{product_id}/activate", response_model=StatusResponse)
async def activate_product(
    product_id: str,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = ActivateProduct(product_id=product_id, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@product_router.post("/{product_id}/deactivate", response_model=StatusResponse)
async def deactivate_product(
    product_id: str,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = DeactivateProduct(product_id=product_id, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@product_router.post("/{product_id}/feature", response_model=StatusResponse)
async def feature_product(
    product_id: str,
    body: FeatureProductRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = FeatureProduct(product_id=product_id, is_featured=body.is_featured, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@product_router.delete("/{product_id}", response_model=StatusResponse)
async def delete_product(
    product_id: str,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = DeleteProduct(product_id=product_id, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


@product_router.post("/{product_id}/restore", response_model=StatusResponse)
async def restore_product(
    product_id: str,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = RestoreProduct(product_id=product_id, **ctx.command_fields())
    return idempotent_response(key, _status_only(command))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(
    body: PlaceOrderRequest,
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    command = PlaceOrder(
        restaurant_id=body.restaurant_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        idempotency_key=key,
        notes=body.notes,
        **ctx.command_fields(),
    )

    def operation():
        return 201, dump(OrderIdResponse(order_id=_process(command)))

    return idempotent_response(key, operation)


@order_router.get("", response_model=list[OrderResponse])
async def my_orders(ctx: RequestContext = Depends(request_context)) -> list[OrderResponse]:
    return [_order_response(o) for o in list_customer_orders(ctx.actor)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def order_detail(order_id: str, ctx: RequestContext = Depends(request_context)) -> OrderResponse:
    return _order_response(get_order(order_id, ctx.actor))


def _order_transition(path, command_cls, with_reason=False):
    """Register one order state-transition route."""

    if with_reason:

        async def endpoint(
            order_id: str,
            body: ReasonRequest,
            ctx: RequestContext = Depends(request_context),
            key: str = Depends(idempotency_key),
        ):
            command = command_cls(order_id=order_id, reason=body.reason, **ctx.command_fields())
            return idempotent_response(key, _status_only(command))

    else:

        async def endpoint(
            order_id: str,
            ctx: RequestContext = Depends(request_context),
            key: str = Depends(idempotency_key),
        ):
            command = command_cls(order_id=order_id, **ctx.command_fields())
            return idempotent_response(key, _status_only(command))

    endpoint.__name__ = f"order_{path.replace('-', '_')}"
    order_router.add_api_route(
        f"/{{order_id}}/{path}",
        endpoint,
        methods=["POST"],
        response_model=StatusResponse,
    )


_order_transition("accept", AcceptOrder)
_order_transition("reject", RejectOrder, with_reason=True)
_order_transition("confirm", ConfirmOrder)
_order_transition("start-preparing", StartPreparingOrder)
_order_transition("ready", MarkOrderReady)
_order_transition("deliver", MarkOrderDelivered)
_order_transition("cancel", CancelOrder, with_reason=True)
_order_transition("report", ReportOrder, with_reason=True)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.post("/subscriptions/expire", response_model=SweepSummaryResponse)
async def expire_subscriptions(
    ctx: RequestContext = Depends(request_context),
    key: str = Depends(idempotency_key),
):
    """Run the expiration sweep now instead of waiting for the nightly schedule."""
    ctx.actor.require_role(Role.ADMIN)

    def operation():
        summary = run_expiration_sweep(
            trigger=SweepTrigger.ADMIN,
            triggered_by=ctx.actor.actor_id,
            correlation_id=ctx.correlation_id,
        )
        return 200, dump(SweepSummaryResponse(**summary.to_dict()))

    return idempotent_response(key, operation)


@admin_router.get("/audit-logs", response_model=list[AuditRecordResponse])
async def audit_logs(
    entity_type: str,
    entity_id: str,
    ctx: RequestContext = Depends(request_context),
) -> list[AuditRecordResponse]:
    return [AuditRecordResponse(**record) for record in get_audit_logs(entity_type, entity_id, ctx.actor)]
