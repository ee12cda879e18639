"""Queues webhook deliveries for committed order events.

Runs after the order's unit of work commits (synchronously in tests, from
the outbox through the Engine in production), so a delivery is only ever
queued for a change that was actually stored.
"""

import json
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.events import (
    OrderCancelled,
    OrderDeleted,
    OrderItemsChanged,
    OrderPatched,
    OrderPlaced,
    OrderStatusChanged,
)
from orders.webhook.webhook import Webhook, WebhookDelivery

logger = structlog.get_logger(__name__)


def _payload(event) -> dict:
    data = event.to_dict()
    data.pop("_metadata", None)
    return data


def queue_deliveries(event_name, event) -> int:
    """Queue one PENDING delivery per webhook subscribed to ``event_name``."""
    webhooks = current_domain.repository_for(Webhook)._dao.query.all().items
    subscribed = [webhook for webhook in webhooks if webhook.subscribes_to(event_name)]
    if not subscribed:
        return 0

    repo = current_domain.repository_for(WebhookDelivery)
    payload = json.dumps({"event": event_name, "data": _payload(event)}, default=str)
    for webhook in subscribed:
        repo.add(
            WebhookDelivery(
                webhook_id=str(webhook.id),
                event_name=event_name,
                order_id=str(event.order_id),
                payload=payload,
                created_at=datetime.now(UTC),
            )
        )
    logger.info("webhook_deliveries_queued", webhook_event=event_name, order_id=str(event.order_id), count=len(subscribed))
    return len(subscribed)


@orders.event_handler(part_of=WebhookDelivery, stream_category="orders::order")
class WebhookDispatcher:
    """Maps order events to webhook event names."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        queue_deliveries("order.created", event)

    @handle(OrderItemsChanged)
    def on_items_changed(self, event: OrderItemsChanged) -> None:
        queue_deliveries("order.items_changed", event)

    @handle(OrderPatched)
    def on_order_patched(self, event: OrderPatched) -> None:
        queue_deliveries("order.patched", event)

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        queue_deliveries("order.status_updated", event)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        queue_deliveries("order.cancelled", event)

    @handle(OrderDeleted)
    def on_order_deleted(self, event: OrderDeleted) -> None:
        queue_deliveries("order.deleted", event)
