"""Collaborator factory.

Provides get_/set_/reset_ functions for the reservation gateway and the
product catalogue:
- Fake adapters for development and testing (``ORDERS_GATEWAY=fake``)
- HTTP adapters for production (``ORDERS_GATEWAY=http``)
"""

from orders.config import settings
from orders.gateway.fake_adapter import FakeProductCatalog, FakeReservationGateway
from orders.gateway.http_adapter import HttpProductCatalog, HttpReservationGateway
from orders.gateway.port import ProductCatalog, ReservationGateway

_current_gateway: ReservationGateway | None = None
_current_catalog: ProductCatalog | None = None


def get_gateway() -> ReservationGateway:
    """Return the current reservation gateway, built from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        if settings.gateway == "http":
            _current_gateway = HttpReservationGateway(
                settings.inventory_service_url, timeout=settings.upstream_timeout_seconds
            )
        else:
            _current_gateway = FakeReservationGateway()
    return _current_gateway


def set_gateway(gateway: ReservationGateway) -> None:
    """Override the active reservation gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None


def get_catalog() -> ProductCatalog:
    """Return the current product catalogue, built from settings on first use."""
    global _current_catalog
    if _current_catalog is None:
        if settings.gateway == "http":
            _current_catalog = HttpProductCatalog(settings.catalog_service_url, timeout=settings.upstream_timeout_seconds)
        else:
            _current_catalog = FakeProductCatalog()
    return _current_catalog


def set_catalog(catalog: ProductCatalog) -> None:
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None
