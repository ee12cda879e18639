"""Stock and catalogue calls made on behalf of the engine.

Everything here runs before the unit of work commits. A failure raises a
domain error so the caller aborts with no write; the only exception is
``release_after_failed_commit``, which compensates for a reservation whose
order could not be stored and must not hide the original error.
"""

import structlog

from orders.errors import InvalidInput, UpstreamUnavailable
from orders.gateway import get_catalog, get_gateway
from orders.gateway.port import GatewayUnreachable, StockLine

logger = structlog.get_logger(__name__)

INVENTORY = "inventory"
CATALOGUE = "catalogue"


def stock_lines(items) -> list[StockLine]:
    """Build gateway lines from order items or from validated line dicts."""
    lines = []
    for item in items:
        if isinstance(item, dict):
            sku, quantity, product_id = item["sku"], item["quantity"], item.get("product_id")
        else:
            sku, quantity, product_id = item.sku, item.quantity, item.product_id
        lines.append(StockLine(sku=sku, quantity=quantity, product_id=str(product_id) if product_id else None))
    return lines


def _call(operation, order_id, lines):
    gateway = get_gateway()
    try:
        result = getattr(gateway, operation)(order_id, lines)
    except GatewayUnreachable as exc:
        logger.error("inventory_unreachable", operation=operation, order_id=order_id, reason=str(exc))
        raise UpstreamUnavailable(INVENTORY, str(exc)) from exc
    if not result.success:
        logger.error("inventory_call_rejected", operation=operation, order_id=order_id, reason=result.failure_reason)
        raise UpstreamUnavailable(INVENTORY, result.failure_reason)


def reserve_stock(order_id, lines: list[StockLine]) -> None:
    """Check availability, then reserve every line for the order."""
    try:
        availability = get_gateway().check_availability(lines)
    except GatewayUnreachable as exc:
        logger.error("inventory_unreachable", operation="check_availability", order_id=order_id, reason=str(exc))
        raise UpstreamUnavailable(INVENTORY, str(exc)) from exc
    if not availability.all_available:
        logger.warning("stock_unavailable", order_id=order_id, skus=list(availability.unavailable_items))
        raise InvalidInput({"items": [f"Insufficient stock for {sku}" for sku in availability.unavailable_items]})

    _call("reserve", order_id, lines)
    logger.info("stock_reserved", order_id=order_id, line_count=len(lines))


def release_stock(order_id, lines: list[StockLine]) -> None:
    _call("release", order_id, lines)
    logger.info("stock_released", order_id=order_id, line_count=len(lines))


def confirm_deduction(order_id, lines: list[StockLine]) -> None:
    _call("confirm_deduction", order_id, lines)
    logger.info("stock_deducted", order_id=order_id, line_count=len(lines))


def release_after_failed_commit(order_id, lines: list[StockLine]) -> None:
    try:
        release_stock(order_id, lines)
    except UpstreamUnavailable as exc:
        # Left for the inventory service's own reservation expiry
        logger.error("compensating_release_failed", order_id=order_id, reason=exc.details.get("reason"))


def enrich_items(items) -> list[dict]:
    """Fill sku / unit_price from the catalogue for items that name a product.

    A product that is missing or inactive rejects the whole list. Items
    without a product_id pass through untouched.
    """
    catalog = get_catalog()
    enriched = []
    errors = {}
    for index, item in enumerate(items or []):
        item = dict(item)
        product_id = item.get("product_id")
        if product_id:
            try:
                product = catalog.get_product(str(product_id))
            except GatewayUnreachable as exc:
                logger.error("catalogue_unreachable", product_id=str(product_id), reason=str(exc))
                raise UpstreamUnavailable(CATALOGUE, str(exc)) from exc

            if product is None:
                errors[f"items[{index}]"] = [f"Product {product_id} not found"]
            elif not product.is_active:
                errors[f"items[{index}]"] = [f"Product {product_id} is not available for sale"]
            else:
                if not item.get("sku"):
                    item["sku"] = product.sku
                if item.get("unit_price") is None:
                    item["unit_price"] = product.unit_price
        enriched.append(item)

    if errors:
        raise InvalidInput(errors)
    return enriched
