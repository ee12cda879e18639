"""Shared BDD fixtures and step definitions for the Orders domain."""

import pytest
from orders.errors import OrderError
from orders.order.audit import audit_trail
from orders.order.creation import place_order
from orders.order.queries import get_order
from orders.order.transitions import UpdateStatus
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def error():
    """Container for the error a When step captured."""
    return {"exc": None}


@pytest.fixture()
def attempt(error):
    """Process a command, keeping any domain error for the Then steps."""

    def _attempt(command):
        try:
            current_domain.process(command, asynchronous=False)
        except OrderError as exc:
            error["exc"] = exc

    return _attempt


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending order", target_fixture="order_id")
def pending_order(sample_items):
    order, _ = place_order(items=sample_items, reserve_on_place=False)
    return order["id"]


@given("a reserved order", target_fixture="order_id")
def reserved_order(sample_items):
    order, _ = place_order(items=sample_items, reserve_on_place=True)
    return order["id"]


@given("a completed order", target_fixture="order_id")
def completed_order(sample_items):
    order, _ = place_order(items=sample_items, reserve_on_place=True)
    for status in ("FULFILLING", "SHIPPED", "COMPLETED"):
        current_domain.process(
            UpdateStatus(order_id=order["id"], status=status, warehouse_id="WH-1", tracking_number="1Z"),
            asynchronous=False,
        )
    return order["id"]


@given(parsers.cfparse('inventory is unavailable for "{operation}"'))
def inventory_down(gateway, operation):
    gateway.configure(failing_operations=[operation])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order_id, status):
    assert get_order(order_id)["status"] == status


@then(parsers.cfparse("the order version is {version:d}"))
def order_version_is(order_id, version):
    assert get_order(order_id)["version"] == version


@then(parsers.cfparse("the order grand total is {amount:f}"))
def order_grand_total_is(order_id, amount):
    assert get_order(order_id)["totals"]["grand_total"] == pytest.approx(amount)


@then(parsers.cfparse('the action fails with "{code}"'))
def action_fails(error, code):
    assert error["exc"] is not None, "Expected the action to fail but it succeeded"
    assert error["exc"].code == code


@then(parsers.cfparse('the audit trail ends with "{action}"'))
def audit_trail_ends_with(order_id, action):
    assert audit_trail(order_id)[-1].action == action
