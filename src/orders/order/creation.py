"""Order placement: idempotent creation.

``place_order`` is the entry point. It does the work that must happen
outside the unit of work (idempotency lookup, catalogue enrichment,
validation, stock reservation) and then hands a fully prepared
``PlaceOrder`` command to the handler, which stores the order, its items,
its audit entries and its idempotency binding in one transaction.

Two requests racing with the same idempotency key can both miss the
lookup; the unique key on ``IdempotencyRecord`` lets only one of them
commit, and the loser returns the winner's order.
"""

import json
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from orders.config import settings
from orders.domain import orders
from orders.errors import IdempotencyKeyTaken, InvalidInput
from orders.order.audit import DEFAULT_ACTOR, AuditLog
from orders.order.idempotency import bind_key, find_binding
from orders.order.order import Order, validate_item_lines
from orders.order.queries import get_order
from orders.order.stock import enrich_items, release_after_failed_commit, reserve_stock, stock_lines

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class PlaceOrder:
    order_id = Identifier(required=True)
    items = Text()  # JSON: list of validated line dicts
    idempotency_key = String(max_length=255)
    reservation_id = String(max_length=64)
    reference = String(max_length=100)
    customer_id = Identifier()
    sales_channel = String(max_length=50)
    shipping_address = Text()  # JSON: address dict
    billing_info = Text()  # JSON: billing dict
    notes = Text()
    preferred_warehouse_id = String(max_length=100)
    actor = String(max_length=255, default=DEFAULT_ACTOR)


@orders.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = json.loads(command.items) if command.items else []

        if command.idempotency_key:
            bind_key(command.idempotency_key, command.order_id)

        order = Order.place(
            lines,
            order_id=str(command.order_id),
            reservation_id=command.reservation_id,
            reference=command.reference,
            customer_id=command.customer_id,
            sales_channel=command.sales_channel,
            shipping_address=json.loads(command.shipping_address) if command.shipping_address else None,
            billing_info=json.loads(command.billing_info) if command.billing_info else None,
            notes=command.notes,
            preferred_warehouse_id=command.preferred_warehouse_id,
        )
        current_domain.repository_for(Order).add(order)

        audit = AuditLog(order.id, command.actor)
        audit.record(
            "created",
            status=order.status,
            item_count=len(lines),
            grand_total=order.grand_total,
        )
        if order.reservation_id:
            audit.record("reserved", reservation_id=order.reservation_id)

        return str(order.id)


def place_order(
    items=None,
    idempotency_key=None,
    reserve_on_place=None,
    actor=None,
    reference=None,
    customer_id=None,
    sales_channel=None,
    shipping_address=None,
    billing_info=None,
    notes=None,
    preferred_warehouse_id=None,
):
    """Create an order, or return the one already bound to ``idempotency_key``.

    Returns ``(order, existed)`` where ``order`` is the API representation.
    With ``reserve_on_place`` (default from settings) the stock is reserved
    before anything is written; if storing the order then fails, the
    reservation is released again.
    """
    if reserve_on_place is None:
        reserve_on_place = settings.reserve_on_place_default

    existing = find_binding(idempotency_key)
    if existing is not None:
        logger.info("order_replayed", order_id=str(existing.order_id), idempotency_key=idempotency_key)
        return get_order(existing.order_id), True

    lines = validate_item_lines(enrich_items(items))
    order_id = str(uuid4())
    reservation_id = str(uuid4()) if reserve_on_place else None

    # Field validation happens here, before any stock is held
    try:
        command = PlaceOrder(
            order_id=order_id,
            items=json.dumps(lines),
            idempotency_key=idempotency_key,
            reservation_id=reservation_id,
            reference=reference,
            customer_id=customer_id,
            sales_channel=sales_channel,
            shipping_address=json.dumps(shipping_address) if shipping_address else None,
            billing_info=json.dumps(billing_info) if billing_info else None,
            notes=notes,
            preferred_warehouse_id=preferred_warehouse_id,
            actor=actor or DEFAULT_ACTOR,
        )
    except ValidationError as exc:
        raise InvalidInput(exc.messages) from exc

    reserved_lines = stock_lines(lines)
    if reserve_on_place:
        reserve_stock(order_id, reserved_lines)

    try:
        current_domain.process(command, asynchronous=False)
    except IdempotencyKeyTaken:
        if reservation_id:
            release_after_failed_commit(order_id, reserved_lines)
        winner = find_binding(idempotency_key)
        logger.info("idempotency_race_lost", idempotency_key=idempotency_key, order_id=str(winner.order_id))
        return get_order(winner.order_id), True
    except Exception:
        if reservation_id:
            release_after_failed_commit(order_id, reserved_lines)
        raise

    logger.info("order_placed", order_id=order_id, reserved=bool(reservation_id), item_count=len(lines))
    return get_order(order_id), False
