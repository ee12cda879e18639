"""Order cancellation: command and handler.

Cancel is legal from any non-terminal state, including the ones whose plain
status update table does not list CANCELLED. A held reservation is released
before the cancellation is written.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.errors import AlreadyTerminal
from orders.order.audit import DEFAULT_ACTOR, AuditLog
from orders.order.order import Order
from orders.order.stock import release_stock, stock_lines

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    actor = String(max_length=255, default=DEFAULT_ACTOR)


@orders.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_live(command.order_id)

        held_reservation = order.reservation_id
        try:
            previous = order.cancel(reason=command.reason)
        except AlreadyTerminal:
            logger.warning("cancel_rejected", order_id=str(order.id), status=order.status)
            raise

        if held_reservation:
            release_stock(str(order.id), stock_lines(order.sorted_items()))
        repo.add(order)

        AuditLog(order.id, command.actor).record(
            "cancelled",
            **{"from": previous.value},
            reason=command.reason,
            released_reservation_id=held_reservation,
        )
        logger.info("order_cancelled", order_id=str(order.id), previous_status=previous.value, version=order.version)
        return str(order.id)
