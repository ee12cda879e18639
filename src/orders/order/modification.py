"""Item mutation: add, update and remove items on a DRAFT or PENDING order.

Each handler changes the items, recomputes totals, bumps the version and
appends one audit entry inside a single unit of work, so stale totals are
never observable.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.errors import InvalidInput
from orders.order.audit import DEFAULT_ACTOR, AuditLog
from orders.order.order import Order, validate_item_lines

logger = structlog.get_logger(__name__)

UPDATABLE_ITEM_FIELDS = ("sku", "product_id", "quantity", "unit_price", "meta")


@orders.command(part_of="Order")
class AddItems:
    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    actor = String(max_length=255, default=DEFAULT_ACTOR)


@orders.command(part_of="Order")
class UpdateItem:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    changes = Text(required=True)  # JSON: only the fields being changed
    actor = String(max_length=255, default=DEFAULT_ACTOR)


@orders.command(part_of="Order")
class RemoveItem:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    actor = String(max_length=255, default=DEFAULT_ACTOR)


@orders.command_handler(part_of=Order)
class ItemHandler:
    @handle(AddItems)
    def add_items(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_live(command.order_id)

        lines = validate_item_lines(json.loads(command.items))
        added = order.add_lines(lines)
        repo.add(order)

        AuditLog(order.id, command.actor).record(
            "items_added",
            item_count=len(added),
            item_ids=[str(item.id) for item in added],
            grand_total=order.grand_total,
        )
        logger.info("items_added", order_id=str(order.id), item_count=len(added), version=order.version)
        return str(order.id)

    @handle(UpdateItem)
    def update_item(self, command):
        changes = json.loads(command.changes)
        unknown = sorted(set(changes) - set(UPDATABLE_ITEM_FIELDS))
        if unknown:
            raise InvalidInput({field: ["cannot be updated"] for field in unknown})

        repo = current_domain.repository_for(Order)
        order = repo.get_live(command.order_id)
        item = order.update_line(command.item_id, **changes)
        repo.add(order)

        AuditLog(order.id, command.actor).record(
            "item_updated",
            item_id=str(item.id),
            changes=changes,
            grand_total=order.grand_total,
        )
        logger.info("item_updated", order_id=str(order.id), item_id=str(item.id), version=order.version)
        return str(order.id)

    @handle(RemoveItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_live(command.order_id)
        order.remove_line(command.item_id)
        repo.add(order)

        AuditLog(order.id, command.actor).record(
            "item_removed",
            item_id=str(command.item_id),
            grand_total=order.grand_total,
        )
        logger.info("item_removed", order_id=str(order.id), item_id=str(command.item_id), version=order.version)
        return str(order.id)
