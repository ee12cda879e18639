"""HTTP adapters for the inventory service and the product catalogue.

The inventory service takes one call per line for reserve / release /
confirm-deduction. Lines are sent one by one and every failure is collected,
so the engine sees a single result for the whole batch and never commits a
state that implies a partially successful reservation.
"""

import requests
import structlog

from orders.gateway.port import (
    AvailabilityResult,
    GatewayResult,
    GatewayUnreachable,
    Product,
    ProductCatalog,
    ReservationGateway,
    StockLine,
)

logger = structlog.get_logger(__name__)


class HttpReservationGateway(ReservationGateway):
    def __init__(self, base_url: str, timeout: float = 5.0, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path, payload):
        try:
            response = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise GatewayUnreachable(str(exc)) from exc
        if response.status_code >= 500:
            raise GatewayUnreachable(f"{path} returned {response.status_code}")
        return response

    def check_availability(self, lines: list[StockLine]) -> AvailabilityResult:
        payload = {
            "items": [{"product_id": line.product_id, "sku": line.sku, "quantity": line.quantity} for line in lines]
        }
        response = self._post("/api/inventory/bulk-check", payload)
        if not response.ok:
            raise GatewayUnreachable(f"bulk-check returned {response.status_code}")
        body = response.json()
        return AvailabilityResult(
            all_available=bool(body.get("allAvailable")),
            unavailable_items=tuple(str(i) for i in body.get("unavailableItems") or ()),
        )

    def _per_line(self, path, order_id, lines) -> GatewayResult:
        failures = []
        for line in lines:
            response = self._post(
                path,
                {"product_id": line.product_id, "sku": line.sku, "quantity": line.quantity, "order_id": order_id},
            )
            if not response.ok:
                failures.append(f"{line.sku}: {response.status_code}")

        if failures:
            logger.error("inventory_call_failed", path=path, order_id=order_id, failures=failures)
            return GatewayResult(success=False, failure_reason="; ".join(failures))
        return GatewayResult(success=True)

    def reserve(self, order_id: str, lines: list[StockLine]) -> GatewayResult:
        return self._per_line("/api/inventory/reserve", order_id, lines)

    def release(self, order_id: str, lines: list[StockLine]) -> GatewayResult:
        return self._per_line("/api/inventory/release", order_id, lines)

    def confirm_deduction(self, order_id: str, lines: list[StockLine]) -> GatewayResult:
        return self._per_line("/api/inventory/confirm-deduction", order_id, lines)


class HttpProductCatalog(ProductCatalog):
    def __init__(self, base_url: str, timeout: float = 5.0, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_product(self, product_id: str) -> Product | None:
        try:
            response = self.session.get(f"{self.base_url}/api/products/{product_id}", timeout=self.timeout)
        except requests.RequestException as exc:
            raise GatewayUnreachable(str(exc)) from exc

        if response.status_code == 404:
            return None
        if not response.ok:
            raise GatewayUnreachable(f"product lookup returned {response.status_code}")

        body = response.json() or {}
        return Product(
            product_id=str(body.get("id", product_id)),
            sku=body.get("sku"),
            name=body.get("name"),
            unit_price=body.get("unit_price"),
            is_active=bool(body.get("is_active", True)),
        )
