"""Totals calculator: line items in, order totals out.

``compute_totals`` is pure: it never touches the store and never caches.
Tax, shipping and discounts come from a pluggable ``TotalsPolicy``; the
default policy charges nothing so that grand_total == subtotal.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class PriceLine:
    unit_price: float
    quantity: int


class TotalsPolicy(ABC):
    """Jurisdiction-specific tax / shipping / discount rules."""

    @abstractmethod
    def tax(self, subtotal: float, lines: list[PriceLine]) -> float: ...

    @abstractmethod
    def shipping(self, subtotal: float, lines: list[PriceLine]) -> float: ...

    @abstractmethod
    def discounts(self, subtotal: float, lines: list[PriceLine]) -> float: ...


class ZeroPolicy(TotalsPolicy):
    def tax(self, subtotal, lines):  # noqa: ARG002
        return 0.0

    def shipping(self, subtotal, lines):  # noqa: ARG002
        return 0.0

    def discounts(self, subtotal, lines):  # noqa: ARG002
        return 0.0


class FlatRatePolicy(TotalsPolicy):
    """Flat-rate tax plus a shipping fee waived above a threshold.

    Amounts are rounded to cents. Empty orders ship for free.
    """

    def __init__(
        self,
        tax_rate: float = 0.10,
        shipping_fee: float = 10.0,
        free_shipping_threshold: float = 100.0,
    ) -> None:
        self.tax_rate = tax_rate
        self.shipping_fee = shipping_fee
        self.free_shipping_threshold = free_shipping_threshold

    def tax(self, subtotal, lines):  # noqa: ARG002
        return round(subtotal * self.tax_rate, 2)

    def shipping(self, subtotal, lines):
        if not lines or subtotal > self.free_shipping_threshold:
            return 0.0
        return round(self.shipping_fee, 2)

    def discounts(self, subtotal, lines):  # noqa: ARG002
        return 0.0


def compute_totals(lines: Iterable[PriceLine], policy: TotalsPolicy | None = None) -> dict:
    """Return ``{subtotal, tax, shipping, discounts, grand_total}`` for the lines."""
    policy = policy or get_totals_policy()
    lines = list(lines)
    subtotal = sum(line.unit_price * line.quantity for line in lines)
    tax = policy.tax(subtotal, lines)
    shipping = policy.shipping(subtotal, lines)
    discounts = policy.discounts(subtotal, lines)
    return {
        "subtotal": subtotal,
        "tax": tax,
        "shipping": shipping,
        "discounts": discounts,
        "grand_total": subtotal + tax + shipping - discounts,
    }


# ---------------------------------------------------------------------------
# Active policy
# ---------------------------------------------------------------------------
_POLICIES = {
    "zero": ZeroPolicy,
    "flat_rate": FlatRatePolicy,
}

_current_policy: TotalsPolicy | None = None


def get_totals_policy() -> TotalsPolicy:
    """Return the active totals policy, built from settings on first use."""
    global _current_policy
    if _current_policy is None:
        from orders.config import settings

        _current_policy = _POLICIES.get(settings.totals_policy, ZeroPolicy)()
    return _current_policy


def set_totals_policy(policy: TotalsPolicy) -> None:
    """Override the active policy (useful for tests)."""
    global _current_policy
    _current_policy = policy


def reset_totals_policy() -> None:
    global _current_policy
    _current_policy = None
