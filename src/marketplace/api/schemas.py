"""Pydantic request/response schemas for the Marketplace API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Restaurant
# ---------------------------------------------------------------------------
class RegisterRestaurantRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    address: str = Field(min_length=1, max_length=500)
    phone: str = Field(min_length=1, max_length=30)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Chez Amina",
                    "description": "West African home cooking",
                    "address": "12 Marina Road, Lagos",
                    "phone": "+2348000000000",
                }
            ]
        }
    }


class UpdateRestaurantRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    address: str | None = Field(default=None, min_length=1, max_length=500)
    phone: str | None = Field(default=None, min_length=1, max_length=30)


class SuspendRestaurantRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class RestaurantIdResponse(BaseModel):
    restaurant_id: str


class RestaurantResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    address: str
    phone: str
    status: str
    visibility: int



class OwnedRestaurantResponse(RestaurantResponse):
    subscription_status: str | None = None
    subscription_end_date: datetime | None = None
    days_remaining: int = 0

# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------
class RequestSubscriptionRequest(BaseModel):
    restaurant_id: str
    monthly_amount: float = Field(ge=0)
    payment_method: str | None = None
    payment_reference: str | None = None


class CancelSubscriptionRequest(BaseModel):
    reason: str | None = None


class SubscriptionIdResponse(BaseModel):
    subscription_id: str


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------
class AddProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: float = Field(ge=0)
    quantity: int = 0
    is_featured: bool = False
    sort_order: int = 0


class UpdateProductRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    sort_order: int | None = None


class UpdateQuantityRequest(BaseModel):
    # Negative values reach the domain and are rejected there.
    quantity: int


class FeatureProductRequest(BaseModel):
    is_featured: bool = True


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    id: str
    restaurant_id: str
    name: str
    description: str | None = None
    price: float
    quantity: int
    is_featured: bool


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------
class OrderLineRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)


class PlaceOrderRequest(BaseModel):
    restaurant_id: str
    items: list[OrderLineRequest] = Field(min_length=1)
    notes: str | None = None


class ReasonRequest(BaseModel):
    reason: str | None = None


class OrderIdResponse(BaseModel):
    order_id: str


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str | None = None
    quantity: int
    unit_price: float


class OrderResponse(BaseModel):
    id: str
    customer_id: str
    restaurant_id: str
    status: str
    total_amount: float
    notes: str | None = None
    items: list[OrderItemResponse]
    valid_next_states: list[str]
    rejection_reason: str | None = None
    cancellation_reason: str | None = None
    report_reason: str | None = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Admin / shared
# ---------------------------------------------------------------------------
class SweepSummaryResponse(BaseModel):
    correlation_id: str
    job_id: str
    trigger: str
    processed_count: int
    expired_count: int
    suspended_count: int
    expired_subscriptions: list[str]
    suspended_restaurants: list[str]
    errors: list[str]


class AuditRecordResponse(BaseModel):
    action: str
    entityType: str
    entityId: str
    previousState: dict | None = None
    newState: dict | None = None
    correlationId: str
    actorId: str | None = None
    timestamp: str | None = None
    metadata: dict


class StatusResponse(BaseModel):
    status: str = "ok"
