"""Application tests for the webhook registry and delivery queue."""

import json

import pytest
from orders.errors import NotFound
from orders.order.cancellation import CancelOrder
from orders.order.creation import place_order
from orders.order.deletion import DeleteOrder
from orders.order.modification import AddItems
from orders.order.patching import PatchOrder
from orders.order.queries import get_order
from orders.order.transitions import UpdateStatus
from orders.webhook.webhook import RegisterWebhook, RemoveWebhook, list_deliveries, list_webhooks
from protean import current_domain


def _register(events=None, url="https://hooks.example.com/orders"):
    command = RegisterWebhook(url=url, events=json.dumps(events or []), secret="s3cret")
    return current_domain.process(command, asynchronous=False)


class TestRegistry:
    def test_register_and_list(self):
        first = _register(["order.created"])
        second = _register()

        webhooks = list_webhooks()

        assert [w["id"] for w in webhooks] == [second, first]
        assert webhooks[1]["events"] == ["order.created"]

    def test_remove(self):
        webhook_id = _register()
        current_domain.process(RemoveWebhook(webhook_id=webhook_id), asynchronous=False)
        assert list_webhooks() == []

    def test_remove_unknown(self):
        with pytest.raises(NotFound):
            current_domain.process(RemoveWebhook(webhook_id="missing"), asynchronous=False)

    def test_deliveries_of_unknown_webhook(self):
        with pytest.raises(NotFound):
            list_deliveries("missing")


class TestDispatch:
    def test_order_created_is_queued(self, sample_items):
        webhook_id = _register(["order.created"])

        order, _ = place_order(items=sample_items)

        deliveries = list_deliveries(webhook_id)
        assert len(deliveries) == 1
        assert deliveries[0]["event"] == "order.created"
        assert deliveries[0]["status"] == "PENDING"
        assert deliveries[0]["order_id"] == order["id"]
        assert deliveries[0]["payload"]["data"]["status"] == "RESERVED"

    def test_only_subscribed_events_are_queued(self, sample_items):
        webhook_id = _register(["order.cancelled"])

        order, _ = place_order(items=sample_items, reserve_on_place=False)
        current_domain.process(
            PatchOrder(order_id=order["id"], changes=json.dumps({"notes": "x"})),
            asynchronous=False,
        )
        current_domain.process(CancelOrder(order_id=order["id"], reason="oops"), asynchronous=False)

        assert [d["event"] for d in list_deliveries(webhook_id)] == ["order.cancelled"]

    def test_catch_all_webhook_sees_every_event(self, sample_items):
        webhook_id = _register()

        order, _ = place_order(items=sample_items, reserve_on_place=False)
        current_domain.process(
            PatchOrder(order_id=order["id"], changes=json.dumps({"notes": "x"})),
            asynchronous=False,
        )

        assert [d["event"] for d in list_deliveries(webhook_id)] == ["order.created", "order.patched"]

    def test_rejected_operation_queues_nothing(self, sample_items, gateway):
        webhook_id = _register()
        gateway.configure(failing_operations=["reserve"])

        with pytest.raises(Exception):  # noqa: B017
            place_order(items=sample_items)

        assert list_deliveries(webhook_id) == []

    def test_replay_queues_nothing(self, sample_items):
        webhook_id = _register(["order.created"])
        place_order(items=sample_items, idempotency_key="K-HOOK")
        place_order(items=sample_items, idempotency_key="K-HOOK")
        assert len(list_deliveries(webhook_id)) == 1

    def test_mutations_succeed_with_webhook_registered(self, sample_items):
        webhook_id = _register()
        order, _ = place_order(items=sample_items, reserve_on_place=False)
        order_id = order["id"]

        current_domain.process(
            AddItems(order_id=order_id, items=json.dumps([{"sku": "C", "quantity": 1, "unit_price": 1.0}])),
            asynchronous=False,
        )
        current_domain.process(UpdateStatus(order_id=order_id, status="RESERVED"), asynchronous=False)
        assert get_order(order_id)["status"] == "RESERVED"
        current_domain.process(CancelOrder(order_id=order_id, reason="changed mind"), asynchronous=False)
        current_domain.process(DeleteOrder(order_id=order_id), asynchronous=False)

        assert [d["event"] for d in list_deliveries(webhook_id)] == [
            "order.created",
            "order.items_changed",
            "order.status_updated",
            "order.cancelled",
            "order.deleted",
        ]
