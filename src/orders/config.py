"""Application settings for the orders service.

Framework settings (databases, brokers, event processing) live in
``domain.toml``; the knobs below are service-level and read from the
environment so that containers can override them without a config file.
"""

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    default_page_size: int = 25
    max_page_size: int = 200
    totals_policy: str = "zero"
    gateway: str = "fake"
    inventory_service_url: str = "http://inventory-service:3003"
    catalog_service_url: str = "http://product-catalog-service:3002"
    upstream_timeout_seconds: float = 5.0
    reserve_on_place_default: bool = True


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings(
        default_page_size=int(os.environ.get("ORDERS_DEFAULT_PAGE_SIZE", "25")),
        max_page_size=int(os.environ.get("ORDERS_MAX_PAGE_SIZE", "200")),
        totals_policy=os.environ.get("ORDERS_TOTALS_POLICY", "zero"),
        gateway=os.environ.get("ORDERS_GATEWAY", "fake"),
        inventory_service_url=os.environ.get("INVENTORY_SERVICE_URL", "http://inventory-service:3003"),
        catalog_service_url=os.environ.get("CATALOG_SERVICE_URL", "http://product-catalog-service:3002"),
        upstream_timeout_seconds=float(os.environ.get("UPSTREAM_TIMEOUT_SECONDS", "5")),
        reserve_on_place_default=_env_bool("ORDERS_RESERVE_ON_PLACE_DEFAULT", True),
    )


settings = load_settings()
