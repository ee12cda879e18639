"""Pydantic request/response schemas for the Orders API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Totals, status, version and reservation ids are
never accepted from clients.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    recipient: str | None = None
    street: str
    city: str
    state: str | None = None
    postal_code: str
    country: str


class OrderItemSchema(BaseModel):
    """An item as submitted. sku / unit_price may come from the catalogue."""

    sku: str | None = None
    product_id: str | None = None
    quantity: int = Field(ge=1)
    unit_price: float | None = Field(default=None, ge=0)
    meta: dict[str, Any] | None = None


class TotalsSchema(BaseModel):
    subtotal: float
    tax: float
    shipping: float
    discounts: float
    grand_total: float


class OrderItemResponse(BaseModel):
    id: str
    sku: str
    product_id: str | None = None
    quantity: int
    unit_price: float
    total_price: float
    meta: dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    items: list[OrderItemSchema] = []
    reference: str | None = Field(default=None, max_length=100)
    customer_id: str | None = None
    sales_channel: str | None = Field(default=None, max_length=50)
    shipping_address: AddressSchema | None = None
    billing_info: dict[str, Any] | None = None
    notes: str | None = None
    preferred_warehouse_id: str | None = Field(default=None, max_length=100)
    reserve_on_place: bool | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "reference": "WEB-1001",
                    "customer_id": "cust-001",
                    "sales_channel": "web",
                    "items": [
                        {"sku": "A", "quantity": 2, "unit_price": 10.0},
                        {"sku": "B", "quantity": 1, "unit_price": 5.0},
                    ],
                    "reserve_on_place": True,
                }
            ]
        }
    }


class PatchOrderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    shipping_address: AddressSchema | None = None
    notes: str | None = None


class AddItemsRequest(BaseModel):
    items: list[OrderItemSchema] = Field(min_length=1)


class UpdateItemRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sku: str | None = None
    product_id: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    unit_price: float | None = Field(default=None, ge=0)
    meta: dict[str, Any] | None = None


class UpdateStatusRequest(BaseModel):
    status: str
    reason: str | None = Field(default=None, max_length=500)
    warehouse_id: str | None = Field(default=None, max_length=100)
    tracking_number: str | None = Field(default=None, max_length=255)


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class OrderResponse(BaseModel):
    id: str
    reference: str | None = None
    status: str
    customer_id: str | None = None
    sales_channel: str | None = None
    items: list[OrderItemResponse] = []
    totals: TotalsSchema | None = None
    shipping_address: dict[str, Any] | None = None
    billing_info: dict[str, Any] | None = None
    notes: str | None = None
    preferred_warehouse_id: str | None = None
    warehouse_id: str | None = None
    tracking_number: str | None = None
    reservation_id: str | None = None
    version: int
    created_at: str | None = None
    updated_at: str | None = None


class PaginationSchema(BaseModel):
    page: int
    size: int
    total: int
    next_page: str | None = None


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    pagination: PaginationSchema


class AuditEntryResponse(BaseModel):
    id: str
    order_id: str
    actor: str
    action: str
    details: dict[str, Any] = {}
    timestamp: str


class AuditTrailResponse(BaseModel):
    entries: list[AuditEntryResponse]


class AnalyticsResponse(BaseModel):
    total_orders: int
    pending_orders: int
    completed_orders: int
    cancelled_orders: int
    total_revenue: float
    average_order_value: float
    completed_revenue: float


# ---------------------------------------------------------------------------
# Webhook Schemas
# ---------------------------------------------------------------------------
class CreateWebhookRequest(BaseModel):
    url: str
    events: list[str] = []
    secret: str


class WebhookResponse(BaseModel):
    id: str
    url: str
    events: list[str]
    secret: str
    created_at: str


class WebhookListResponse(BaseModel):
    webhooks: list[WebhookResponse]


class DeliveryResponse(BaseModel):
    id: str
    webhook_id: str
    event: str
    order_id: str
    payload: dict[str, Any]
    status: str
    attempts: int
    created_at: str


class DeliveryListResponse(BaseModel):
    deliveries: list[DeliveryResponse]
