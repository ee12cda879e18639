"""Status updates through the state machine.

The aggregate decides whether the move is legal. The handler then makes the
inventory call the move implies, before anything is written:

    → RESERVED   reserve stock (unless the order already holds a reservation)
    → SHIPPED    confirm the stock deduction
    → CANCELLED  release the reservation, if one is held

A gateway failure aborts the update with no state change.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.errors import InvalidInput
from orders.order.audit import DEFAULT_ACTOR, AuditLog
from orders.order.order import Order, OrderStatus
from orders.order.stock import (
    confirm_deduction,
    release_after_failed_commit,
    release_stock,
    reserve_stock,
    stock_lines,
)

logger = structlog.get_logger(__name__)


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(str(value).upper())
    except ValueError:
        raise InvalidInput({"status": [f"Unknown status {value!r}"]}) from None


@orders.command(part_of="Order")
class UpdateStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    reason = String(max_length=500)
    warehouse_id = String(max_length=100)
    tracking_number = String(max_length=255)
    actor = String(max_length=255, default=DEFAULT_ACTOR)


@orders.command_handler(part_of=Order)
class UpdateStatusHandler:
    @handle(UpdateStatus)
    def update_status(self, command):
        target = parse_status(command.status)
        repo = current_domain.repository_for(Order)
        order = repo.get_live(command.order_id)

        held_reservation = order.reservation_id
        lines = stock_lines(order.sorted_items())
        previous = order.transition_to(
            target,
            reason=command.reason,
            warehouse_id=command.warehouse_id,
            tracking_number=command.tracking_number,
        )

        reserved_now = deducted_now = False
        if target == OrderStatus.RESERVED and not held_reservation:
            reserve_stock(str(order.id), lines)
            reserved_now = True
        elif target == OrderStatus.SHIPPED:
            confirm_deduction(str(order.id), lines)
            deducted_now = True
        elif target == OrderStatus.CANCELLED and held_reservation:
            release_stock(str(order.id), lines)

        try:
            repo.add(order)
            AuditLog(order.id, command.actor).record(
                "status_changed",
                **{"from": previous.value, "to": target.value},
                reason=command.reason,
                warehouse_id=command.warehouse_id,
                tracking_number=command.tracking_number,
            )
        except Exception:
            if reserved_now:
                release_after_failed_commit(str(order.id), lines)
            if deducted_now:
                # No inverse call exists; inventory must be reconciled by hand
                logger.error(
                    "deduction_not_recorded",
                    order_id=str(order.id),
                    reservation_id=held_reservation,
                    skus=[line.sku for line in lines],
                )
            raise

        logger.info(
            "order_status_changed",
            order_id=str(order.id),
            previous_status=previous.value,
            status=order.status,
            version=order.version,
        )
        return str(order.id)
