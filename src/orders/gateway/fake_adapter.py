"""Configurable fake collaborators for development and testing.

Neither fake makes external calls. Both record every call in ``calls`` so
tests can assert on what the engine asked for, and both can be told to
fail at runtime:

- ``FakeReservationGateway.configure(...)`` fails one operation, marks SKUs
  as out of stock, or takes the whole service down.
- ``FakeProductCatalog.add_product(...)`` seeds products; ``configure`` makes
  lookups raise as if the catalogue were unreachable.
"""

from orders.gateway.port import (
    AvailabilityResult,
    GatewayResult,
    GatewayUnreachable,
    Product,
    ProductCatalog,
    ReservationGateway,
    StockLine,
)


class FakeReservationGateway(ReservationGateway):
    """In-memory reservation gateway that succeeds unless told otherwise."""

    def __init__(self) -> None:
        self.available: bool = True
        self.unavailable_skus: set[str] = set()
        self.failing_operations: set[str] = set()
        self.failure_reason: str = "Inventory service error"
        self.calls: list[dict] = []

    def configure(
        self,
        available: bool = True,
        unavailable_skus=None,
        failing_operations=None,
        failure_reason: str = "Inventory service error",
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.available = available
        self.unavailable_skus = set(unavailable_skus or ())
        self.failing_operations = set(failing_operations or ())
        self.failure_reason = failure_reason

    def calls_for(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    def _record(self, method, order_id, lines):
        self.calls.append(
            {
                "method": method,
                "order_id": order_id,
                "lines": [(line.sku, line.quantity) for line in lines],
            }
        )
        if not self.available:
            raise GatewayUnreachable(self.failure_reason)

    def _outcome(self, method):
        if method in self.failing_operations:
            return GatewayResult(success=False, failure_reason=self.failure_reason)
        return GatewayResult(success=True)

    def check_availability(self, lines: list[StockLine]) -> AvailabilityResult:
        self._record("check_availability", None, lines)
        missing = tuple(line.sku for line in lines if line.sku in self.unavailable_skus)
        return AvailabilityResult(all_available=not missing, unavailable_items=missing)

    def reserve(self, order_id: str, lines: list[StockLine]) -> GatewayResult:
        self._record("reserve", order_id, lines)
        return self._outcome("reserve")

    def release(self, order_id: str, lines: list[StockLine]) -> GatewayResult:
        self._record("release", order_id, lines)
        return self._outcome("release")

    def confirm_deduction(self, order_id: str, lines: list[StockLine]) -> GatewayResult:
        self._record("confirm_deduction", order_id, lines)
        return self._outcome("confirm_deduction")


class FakeProductCatalog(ProductCatalog):
    """Dictionary-backed catalogue."""

    def __init__(self) -> None:
        self.products: dict[str, Product] = {}
        self.available: bool = True
        self.calls: list[str] = []

    def configure(self, available: bool = True) -> None:
        self.available = available

    def add_product(self, product_id, sku, unit_price, name=None, is_active=True) -> Product:
        product = Product(
            product_id=str(product_id),
            sku=sku,
            name=name,
            unit_price=unit_price,
            is_active=is_active,
        )
        self.products[product.product_id] = product
        return product

    def get_product(self, product_id: str) -> Product | None:
        self.calls.append(str(product_id))
        if not self.available:
            raise GatewayUnreachable("Product catalogue unreachable")
        return self.products.get(str(product_id))
