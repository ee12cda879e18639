"""Webhook registry: subscriptions to order events and their delivery queue.

A Webhook names a URL, the event names it wants (none = every event) and
the secret the deliverer signs payloads with. The orders service only
queues deliveries; sending them is the job of an external deliverer that
reads the PENDING queue.
"""

import json
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.errors import InvalidInput, NotFound

logger = structlog.get_logger(__name__)

ORDER_EVENT_NAMES = (
    "order.created",
    "order.items_changed",
    "order.patched",
    "order.status_updated",
    "order.cancelled",
    "order.deleted",
)


class DeliveryStatus(Enum):
    PENDING = "PENDING"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


@orders.aggregate
class Webhook:
    url = String(required=True, max_length=2048)
    events = Text()  # JSON: list of event names, empty = all
    secret = String(required=True, max_length=255)
    created_at = DateTime(required=True)

    @classmethod
    def register(cls, url, secret, events=None):
        unknown = sorted(set(events or ()) - set(ORDER_EVENT_NAMES))
        if unknown:
            raise InvalidInput({"events": [f"Unknown event {name}" for name in unknown]})
        if not url.startswith(("http://", "https://")):
            raise InvalidInput({"url": ["url must be an http(s) URL"]})
        return cls(url=url, secret=secret, events=json.dumps(list(events or [])), created_at=datetime.now(UTC))

    @property
    def event_names(self) -> list[str]:
        return json.loads(self.events) if self.events else []

    def subscribes_to(self, event_name) -> bool:
        names = self.event_names
        return not names or event_name in names

    def to_api(self):
        return {
            "id": str(self.id),
            "url": self.url,
            "events": self.event_names,
            "secret": self.secret,
            "created_at": self.created_at.isoformat(),
        }


@orders.aggregate
class WebhookDelivery:
    webhook_id = Identifier(required=True)
    event_name = String(required=True, max_length=50)
    order_id = Identifier(required=True)
    payload = Text(required=True)  # JSON: event payload
    status = String(choices=DeliveryStatus, default=DeliveryStatus.PENDING.value)
    attempts = Integer(default=0)
    created_at = DateTime(required=True)

    def to_api(self):
        return {
            "id": str(self.id),
            "webhook_id": str(self.webhook_id),
            "event": self.event_name,
            "order_id": str(self.order_id),
            "payload": json.loads(self.payload),
            "status": self.status,
            "attempts": self.attempts,
            "created_at": self.created_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@orders.command(part_of="Webhook")
class RegisterWebhook:
    url = String(required=True, max_length=2048)
    events = Text()  # JSON: list of event names
    secret = String(required=True, max_length=255)


@orders.command(part_of="Webhook")
class RemoveWebhook:
    webhook_id = Identifier(required=True)


@orders.command_handler(part_of=Webhook)
class WebhookHandler:
    @handle(RegisterWebhook)
    def register_webhook(self, command):
        events = json.loads(command.events) if command.events else []
        webhook = Webhook.register(url=command.url, secret=command.secret, events=events)
        current_domain.repository_for(Webhook).add(webhook)
        logger.info("webhook_registered", webhook_id=str(webhook.id), events=events)
        return str(webhook.id)

    @handle(RemoveWebhook)
    def remove_webhook(self, command):
        repo = current_domain.repository_for(Webhook)
        webhook = get_webhook(command.webhook_id)
        repo._dao.delete(webhook)
        logger.info("webhook_removed", webhook_id=str(command.webhook_id))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_webhook(webhook_id) -> Webhook:
    try:
        return current_domain.repository_for(Webhook).get(str(webhook_id))
    except ObjectNotFoundError:
        raise NotFound("Webhook", webhook_id) from None


def list_webhooks() -> list[dict]:
    """Registered webhooks, newest first."""
    found = current_domain.repository_for(Webhook)._dao.query.order_by("-created_at").all().items
    return [webhook.to_api() for webhook in found]


def list_deliveries(webhook_id) -> list[dict]:
    get_webhook(webhook_id)
    found = (
        current_domain.repository_for(WebhookDelivery)
        ._dao.query.filter(webhook_id=str(webhook_id))
        .order_by("created_at")
        .all()
        .items
    )
    return [delivery.to_api() for delivery in found]
