"""Soft delete: command and handler.

The row stays, flagged ``deleted``; reads stop returning it. Its audit
trail is kept.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.audit import DEFAULT_ACTOR, AuditLog
from orders.order.order import Order

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)
    actor = String(max_length=255, default=DEFAULT_ACTOR)


@orders.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_live(command.order_id)
        order.mark_deleted()
        repo.add(order)

        AuditLog(order.id, command.actor).record("deleted", status=order.status)
        logger.info("order_deleted", order_id=str(order.id), version=order.version)
        return str(order.id)
