"""Integration tests for Webhook API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from orders.api import order_router, register_exception_handlers, webhook_router


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(webhook_router)
    register_exception_handlers(app)
    return TestClient(app)


def _register(client, events=None):
    response = client.post(
        "/webhooks",
        json={"url": "https://hooks.example.com/orders", "events": events or [], "secret": "s3cret"},
    )
    assert response.status_code == 201
    return response.json()


class TestWebhookRegistry:
    def test_register(self, client):
        body = _register(client, ["order.created", "order.cancelled"])
        assert body["id"]
        assert body["events"] == ["order.created", "order.cancelled"]

    def test_unknown_event_rejected(self, client):
        response = client.post(
            "/webhooks",
            json={"url": "https://hooks.example.com", "events": ["order.exploded"], "secret": "s"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_INPUT"

    def test_list(self, client):
        _register(client)
        _register(client)
        assert len(client.get("/webhooks").json()["webhooks"]) == 2

    def test_delete(self, client):
        webhook_id = _register(client)["id"]

        assert client.delete(f"/webhooks/{webhook_id}").status_code == 204
        assert client.get("/webhooks").json()["webhooks"] == []
        assert client.delete(f"/webhooks/{webhook_id}").status_code == 404


class TestDeliveries:
    def test_order_events_are_queued(self, client):
        webhook_id = _register(client, ["order.created", "order.status_updated"])["id"]
        order = client.post(
            "/orders",
            json={"items": [{"sku": "A", "quantity": 1, "unit_price": 10.0}], "reserve_on_place": False},
        ).json()
        client.post(f"/orders/{order['id']}/status", json={"status": "RESERVED"})

        deliveries = client.get(f"/webhooks/{webhook_id}/deliveries").json()["deliveries"]

        assert [d["event"] for d in deliveries] == ["order.created", "order.status_updated"]
        assert {d["order_id"] for d in deliveries} == {order["id"]}

    def test_unknown_webhook(self, client):
        response = client.get("/webhooks/missing/deliveries")
        assert response.status_code == 404
