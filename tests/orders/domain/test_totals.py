"""Tests for the totals calculator and its policies."""

import pytest
from orders.order.totals import (
    FlatRatePolicy,
    PriceLine,
    ZeroPolicy,
    compute_totals,
    get_totals_policy,
    set_totals_policy,
)


class TestComputeTotals:
    def test_zero_policy_grand_total_equals_subtotal(self):
        totals = compute_totals([PriceLine(10.0, 2), PriceLine(5.0, 1)], ZeroPolicy())
        assert totals == {
            "subtotal": 25.0,
            "tax": 0.0,
            "shipping": 0.0,
            "discounts": 0.0,
            "grand_total": 25.0,
        }

    def test_empty_lines_yield_zero_totals(self):
        totals = compute_totals([], ZeroPolicy())
        assert totals["subtotal"] == 0
        assert totals["grand_total"] == 0

    def test_accepts_any_iterable(self):
        totals = compute_totals((PriceLine(2.5, q) for q in (1, 3)), ZeroPolicy())
        assert totals["subtotal"] == 10.0

    def test_uses_active_policy_when_none_given(self):
        set_totals_policy(FlatRatePolicy())
        totals = compute_totals([PriceLine(10.0, 1)])
        assert totals["tax"] == 1.0
        assert totals["shipping"] == 10.0


class TestFlatRatePolicy:
    def test_tax_and_shipping_below_threshold(self):
        totals = compute_totals([PriceLine(20.0, 2)], FlatRatePolicy())
        assert totals["tax"] == 4.0
        assert totals["shipping"] == 10.0
        assert totals["grand_total"] == pytest.approx(54.0)

    def test_free_shipping_above_threshold(self):
        totals = compute_totals([PriceLine(60.0, 2)], FlatRatePolicy())
        assert totals["shipping"] == 0.0
        assert totals["grand_total"] == pytest.approx(132.0)

    def test_empty_order_ships_free(self):
        totals = compute_totals([], FlatRatePolicy())
        assert totals["shipping"] == 0.0
        assert totals["grand_total"] == 0.0

    def test_custom_rates(self):
        policy = FlatRatePolicy(tax_rate=0.2, shipping_fee=4.0, free_shipping_threshold=1000.0)
        totals = compute_totals([PriceLine(10.0, 1)], policy)
        assert totals["tax"] == 2.0
        assert totals["shipping"] == 4.0


class TestActivePolicy:
    def test_defaults_to_zero_policy(self):
        assert isinstance(get_totals_policy(), ZeroPolicy)

    def test_override(self):
        policy = FlatRatePolicy()
        set_totals_policy(policy)
        assert get_totals_policy() is policy
