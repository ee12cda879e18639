"""Collaborator ports (abstract interfaces).

The order engine talks to two services it does not own: the inventory
service, which holds stock reservations, and the product catalogue, which
is consulted once when an order is placed. Adapters implement these ports
so that the fake (dev/test) and HTTP (production) versions are swappable
without touching domain or application code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class GatewayUnreachable(Exception):
    """The collaborator could not be reached or answered with a server error."""


@dataclass(frozen=True)
class StockLine:
    """One order line as the inventory service sees it."""

    sku: str
    quantity: int
    product_id: str | None = None


@dataclass(frozen=True)
class AvailabilityResult:
    all_available: bool
    unavailable_items: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class GatewayResult:
    """Outcome of a reserve / release / confirm call over a batch of lines.

    A batch succeeds only if every line succeeded; per-line failures are
    folded into ``failure_reason``.
    """

    success: bool
    failure_reason: str | None = None


@dataclass(frozen=True)
class Product:
    product_id: str
    sku: str
    name: str | None = None
    unit_price: float | None = None
    is_active: bool = True


class ReservationGateway(ABC):
    """Inventory reservation interface."""

    @abstractmethod
    def check_availability(self, lines: list[StockLine]) -> AvailabilityResult:
        """Report whether every line can be reserved right now."""
        ...

    @abstractmethod
    def reserve(self, order_id: str, lines: list[StockLine]) -> GatewayResult: ...

    @abstractmethod
    def release(self, order_id: str, lines: list[StockLine]) -> GatewayResult: ...

    @abstractmethod
    def confirm_deduction(self, order_id: str, lines: list[StockLine]) -> GatewayResult:
        """Turn the order's reservation into a permanent stock deduction."""
        ...


class ProductCatalog(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return the product, or None when the catalogue does not know it."""
        ...
