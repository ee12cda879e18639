"""FastAPI routes for the Orders domain: orders and webhooks."""

import json
from datetime import datetime

from fastapi import APIRouter, Header, Query, Response
from protean.utils.globals import current_domain

from orders.api.schemas import (
    AddItemsRequest,
    AnalyticsResponse,
    AuditTrailResponse,
    CancelOrderRequest,
    CreateOrderRequest,
    CreateWebhookRequest,
    DeliveryListResponse,
    OrderListResponse,
    OrderResponse,
    PatchOrderRequest,
    UpdateItemRequest,
    UpdateStatusRequest,
    WebhookListResponse,
    WebhookResponse,
)
from orders.errors import InvalidInput
from orders.order.audit import DEFAULT_ACTOR
from orders.order.cancellation import CancelOrder
from orders.order.creation import place_order
from orders.order.deletion import DeleteOrder
from orders.order.modification import AddItems, RemoveItem, UpdateItem
from orders.order.patching import PatchOrder
from orders.order.queries import get_audit_trail, get_order, get_order_analytics, list_orders
from orders.order.transitions import UpdateStatus, parse_status
from orders.webhook.webhook import RegisterWebhook, RemoveWebhook, get_webhook, list_deliveries, list_webhooks


def _version_from_if_match(if_match: str | None) -> int | None:
    """Accept ``2``, ``"2"`` and ``W/"2"``."""
    if if_match is None:
        return None
    token = if_match.strip()
    if token.startswith("W/"):
        token = token[2:]
    try:
        return int(token.strip('"'))
    except ValueError:
        raise InvalidInput({"If-Match": ["must carry the order version"]}) from None


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(
    body: CreateOrderRequest,
    response: Response,
    idempotency_key: str | None = Header(default=None, max_length=255),
    x_actor: str | None = Header(default=None),
) -> OrderResponse:
    """Create an order. Replaying an Idempotency-Key returns the original order with 200."""
    order, existed = place_order(
        items=[item.model_dump() for item in body.items],
        idempotency_key=idempotency_key,
        reserve_on_place=body.reserve_on_place,
        actor=x_actor,
        reference=body.reference,
        customer_id=body.customer_id,
        sales_channel=body.sales_channel,
        shipping_address=body.shipping_address.model_dump() if body.shipping_address else None,
        billing_info=body.billing_info,
        notes=body.notes,
        preferred_warehouse_id=body.preferred_warehouse_id,
    )
    if existed:
        response.status_code = 200
    return OrderResponse(**order)


@order_router.get("", response_model=OrderListResponse)
async def search_orders(
    page: int = Query(default=1),
    size: int | None = Query(default=None),
    sort: str | None = Query(default=None),
    status: str | None = Query(default=None),
    customer_id: str | None = Query(default=None),
    sales_channel: str | None = Query(default=None),
    from_date: datetime | None = Query(default=None),
    to_date: datetime | None = Query(default=None),
) -> OrderListResponse:
    result = list_orders(
        page=page,
        size=size,
        sort=sort,
        status=parse_status(status).value if status else None,
        customer_id=customer_id,
        sales_channel=sales_channel,
        from_date=from_date,
        to_date=to_date,
    )
    return OrderListResponse(**result)


@order_router.get("/analytics", response_model=AnalyticsResponse)
async def order_analytics(
    from_date: datetime | None = Query(default=None),
    to_date: datetime | None = Query(default=None),
) -> AnalyticsResponse:
    return AnalyticsResponse(**get_order_analytics(from_date=from_date, to_date=to_date))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def fetch_order(order_id: str) -> OrderResponse:
    return OrderResponse(**get_order(order_id))


@order_router.patch("/{order_id}", response_model=OrderResponse)
async def patch_order(
    order_id: str,
    body: PatchOrderRequest,
    if_match: str | None = Header(default=None),
    x_actor: str | None = Header(default=None),
) -> OrderResponse:
    command = PatchOrder(
        order_id=order_id,
        changes=json.dumps(body.model_dump(exclude_unset=True)),
        expected_version=_version_from_if_match(if_match),
        actor=x_actor or DEFAULT_ACTOR,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id))


@order_router.delete("/{order_id}", status_code=204)
async def delete_order(order_id: str, x_actor: str | None = Header(default=None)) -> Response:
    current_domain.process(DeleteOrder(order_id=order_id, actor=x_actor or DEFAULT_ACTOR), asynchronous=False)
    return Response(status_code=204)


@order_router.post("/{order_id}/items", response_model=OrderResponse)
async def add_items(
    order_id: str,
    body: AddItemsRequest,
    x_actor: str | None = Header(default=None),
) -> OrderResponse:
    command = AddItems(
        order_id=order_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        actor=x_actor or DEFAULT_ACTOR,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id))


@order_router.put("/{order_id}/items/{item_id}", response_model=OrderResponse)
async def update_item(
    order_id: str,
    item_id: str,
    body: UpdateItemRequest,
    x_actor: str | None = Header(default=None),
) -> OrderResponse:
    command = UpdateItem(
        order_id=order_id,
        item_id=item_id,
        changes=json.dumps(body.model_dump(exclude_unset=True)),
        actor=x_actor or DEFAULT_ACTOR,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id))


@order_router.delete("/{order_id}/items/{item_id}", response_model=OrderResponse)
async def remove_item(order_id: str, item_id: str, x_actor: str | None = Header(default=None)) -> OrderResponse:
    command = RemoveItem(order_id=order_id, item_id=item_id, actor=x_actor or DEFAULT_ACTOR)
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id))


@order_router.post("/{order_id}/status", response_model=OrderResponse)
async def update_status(
    order_id: str,
    body: UpdateStatusRequest,
    x_actor: str | None = Header(default=None),
) -> OrderResponse:
    command = UpdateStatus(
        order_id=order_id,
        status=body.status,
        reason=body.reason,
        warehouse_id=body.warehouse_id,
        tracking_number=body.tracking_number,
        actor=x_actor or DEFAULT_ACTOR,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    x_actor: str | None = Header(default=None),
) -> OrderResponse:
    command = CancelOrder(
        order_id=order_id,
        reason=body.reason if body else None,
        actor=x_actor or DEFAULT_ACTOR,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id))


@order_router.get("/{order_id}/audit", response_model=AuditTrailResponse)
async def order_audit(order_id: str) -> AuditTrailResponse:
    return AuditTrailResponse(entries=get_audit_trail(order_id))


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("", status_code=201, response_model=WebhookResponse)
async def create_webhook(body: CreateWebhookRequest) -> WebhookResponse:
    command = RegisterWebhook(url=body.url, events=json.dumps(body.events), secret=body.secret)
    webhook_id = current_domain.process(command, asynchronous=False)
    return WebhookResponse(**get_webhook(webhook_id).to_api())


@webhook_router.get("", response_model=WebhookListResponse)
async def search_webhooks() -> WebhookListResponse:
    return WebhookListResponse(webhooks=list_webhooks())


@webhook_router.delete("/{webhook_id}", status_code=204)
async def delete_webhook(webhook_id: str) -> Response:
    current_domain.process(RemoveWebhook(webhook_id=webhook_id), asynchronous=False)
    return Response(status_code=204)


@webhook_router.get("/{webhook_id}/deliveries", response_model=DeliveryListResponse)
async def webhook_deliveries(webhook_id: str) -> DeliveryListResponse:
    return DeliveryListResponse(deliveries=list_deliveries(webhook_id))
