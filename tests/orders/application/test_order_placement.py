"""Application tests for idempotent order placement."""

from unittest.mock import patch

import pytest
from orders.errors import InvalidInput, UpstreamUnavailable
from orders.order.audit import AuditEntry, audit_trail
from orders.order import creation
from orders.order.creation import place_order
from orders.order.idempotency import IdempotencyRecord
from orders.order.order import Order, OrderStatus
from protean import current_domain


def _count(aggregate_cls, **filters):
    return current_domain.repository_for(aggregate_cls)._dao.query.filter(**filters).all().total


class TestPlaceOrder:
    def test_reserved_on_place(self, sample_items, gateway):
        order, existed = place_order(items=sample_items, reserve_on_place=True)

        assert existed is False
        assert order["status"] == OrderStatus.RESERVED.value
        assert order["reservation_id"]
        assert order["version"] == 1
        assert order["totals"]["subtotal"] == 25.0
        assert [e.action for e in audit_trail(order["id"])] == ["created", "reserved"]
        assert [c["method"] for c in gateway.calls] == ["check_availability", "reserve"]
        assert gateway.calls[1]["order_id"] == order["id"]

    def test_pending_without_reservation(self, sample_items, gateway):
        order, _ = place_order(items=sample_items, reserve_on_place=False)

        assert order["status"] == OrderStatus.PENDING.value
        assert order["reservation_id"] is None
        assert [e.action for e in audit_trail(order["id"])] == ["created"]
        assert gateway.calls == []

    def test_reserve_on_place_defaults_to_true(self, sample_items):
        order, _ = place_order(items=sample_items)
        assert order["status"] == OrderStatus.RESERVED.value

    def test_empty_items_yield_zero_total(self):
        order, _ = place_order(items=[], reserve_on_place=False)
        assert order["items"] == []
        assert order["totals"]["grand_total"] == 0.0

    def test_free_items_yield_zero_total(self):
        order, _ = place_order(items=[{"sku": "GIFT", "quantity": 1, "unit_price": 0.0}], reserve_on_place=False)
        assert order["totals"]["subtotal"] == 0.0
        assert order["totals"]["grand_total"] == 0.0

    def test_billing_info_defaults_to_empty(self, sample_items):
        order, _ = place_order(items=sample_items, reserve_on_place=False)
        assert order["billing_info"] == {}

    def test_optional_fields_are_stored(self, sample_items, address):
        order, _ = place_order(
            items=sample_items,
            reserve_on_place=False,
            reference="WEB-1",
            customer_id="cust-1",
            sales_channel="web",
            shipping_address=address,
            billing_info={"method": "card"},
            notes="gift",
            preferred_warehouse_id="WH-EAST",
        )
        assert order["reference"] == "WEB-1"
        assert order["sales_channel"] == "web"
        assert order["shipping_address"]["city"] == "Springfield"
        assert order["billing_info"] == {"method": "card"}
        assert order["preferred_warehouse_id"] == "WH-EAST"

    def test_actor_is_recorded(self, sample_items):
        order, _ = place_order(items=sample_items, reserve_on_place=False, actor="alice")
        assert audit_trail(order["id"])[0].actor == "alice"

    def test_invalid_items_write_nothing(self, gateway):
        with pytest.raises(InvalidInput):
            place_order(items=[{"sku": "A", "quantity": 0, "unit_price": 1.0}])

        assert _count(Order) == 0
        assert _count(AuditEntry) == 0
        assert gateway.calls == []

    @pytest.mark.parametrize(
        "field, value",
        [("reference", "R" * 150), ("idempotency_key", "K" * 300), ("sales_channel", "c" * 60)],
    )
    def test_overlong_fields_hold_no_stock(self, sample_items, gateway, field, value):
        with pytest.raises(InvalidInput) as exc:
            place_order(items=sample_items, reserve_on_place=True, **{field: value})

        assert field in exc.value.details["errors"]
        assert gateway.calls == []
        assert _count(Order) == 0


class TestIdempotency:
    def test_same_key_returns_same_order(self, sample_items):
        first, first_existed = place_order(items=sample_items, idempotency_key="K1")
        second, second_existed = place_order(items=sample_items, idempotency_key="K1")

        assert first_existed is False
        assert second_existed is True
        assert second["id"] == first["id"]
        assert _count(IdempotencyRecord, key="K1") == 1
        assert _count(Order) == 1
        assert len(audit_trail(first["id"])) == 2

    def test_replay_has_no_reservation_side_effects(self, sample_items, gateway):
        place_order(items=sample_items, idempotency_key="K2")
        calls_before = len(gateway.calls)

        place_order(items=sample_items, idempotency_key="K2")

        assert len(gateway.calls) == calls_before

    def test_different_keys_create_different_orders(self, sample_items):
        first, _ = place_order(items=sample_items, idempotency_key="K3")
        second, _ = place_order(items=sample_items, idempotency_key="K4")
        assert first["id"] != second["id"]

    def test_lost_race_returns_winner(self, sample_items, gateway):
        winner, _ = place_order(items=sample_items, idempotency_key="RACE")

        # The loser's lookup runs before the winner commits
        with patch.object(creation, "find_binding", side_effect=[None, _binding("RACE")]):
            loser, existed = place_order(items=sample_items, idempotency_key="RACE")

        assert existed is True
        assert loser["id"] == winner["id"]
        assert _count(Order) == 1
        assert _count(IdempotencyRecord, key="RACE") == 1
        assert gateway.calls_for("release")[0]["order_id"] != winner["id"]


def _binding(key):
    return current_domain.repository_for(IdempotencyRecord)._dao.query.filter(key=key).all().first


class TestReservationFailures:
    def test_out_of_stock_aborts_before_write(self, sample_items, gateway):
        gateway.configure(unavailable_skus=["B"])

        with pytest.raises(InvalidInput) as exc:
            place_order(items=sample_items, idempotency_key="K-OOS")

        assert "Insufficient stock for B" in exc.value.details["errors"]["items"]
        assert _count(Order) == 0
        assert _count(IdempotencyRecord) == 0
        assert gateway.calls_for("reserve") == []

    def test_reserve_failure_is_upstream_unavailable(self, sample_items, gateway):
        gateway.configure(failing_operations=["reserve"])

        with pytest.raises(UpstreamUnavailable):
            place_order(items=sample_items)

        assert _count(Order) == 0

    def test_gateway_down(self, sample_items, gateway):
        gateway.configure(available=False)
        with pytest.raises(UpstreamUnavailable):
            place_order(items=sample_items)
        assert _count(Order) == 0

    def test_failed_commit_releases_reservation(self, sample_items, gateway):
        with patch.object(creation.Order, "place", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                place_order(items=sample_items)

        reserved = gateway.calls_for("reserve")[0]["order_id"]
        assert gateway.calls_for("release")[0]["order_id"] == reserved
        assert _count(Order) == 0


class TestCatalogueEnrichment:
    def test_fills_sku_and_price(self, catalog):
        catalog.add_product("p-1", sku="SKU-1", unit_price=12.5)

        order, _ = place_order(items=[{"product_id": "p-1", "quantity": 2}], reserve_on_place=False)

        item = order["items"][0]
        assert item["sku"] == "SKU-1"
        assert item["unit_price"] == 12.5
        assert order["totals"]["subtotal"] == 25.0

    def test_item_values_win_over_catalogue(self, catalog):
        catalog.add_product("p-1", sku="SKU-1", unit_price=12.5)
        order, _ = place_order(
            items=[{"product_id": "p-1", "sku": "CUSTOM", "quantity": 1, "unit_price": 10.0}],
            reserve_on_place=False,
        )
        assert order["items"][0]["sku"] == "CUSTOM"
        assert order["items"][0]["unit_price"] == 10.0

    def test_missing_product_rejected(self, catalog):
        with pytest.raises(InvalidInput) as exc:
            place_order(items=[{"product_id": "nope", "quantity": 1}])
        assert "items[0]" in exc.value.details["errors"]
        assert catalog.calls == ["nope"]

    def test_inactive_product_rejected(self, catalog):
        catalog.add_product("p-2", sku="OLD", unit_price=1.0, is_active=False)
        with pytest.raises(InvalidInput):
            place_order(items=[{"product_id": "p-2", "quantity": 1}])
        assert _count(Order) == 0

    def test_catalogue_outage(self, catalog):
        catalog.configure(available=False)
        with pytest.raises(UpstreamUnavailable):
            place_order(items=[{"product_id": "p-1", "quantity": 1}])

    def test_items_without_product_skip_catalogue(self, catalog, sample_items):
        place_order(items=sample_items, reserve_on_place=False)
        assert catalog.calls == []
