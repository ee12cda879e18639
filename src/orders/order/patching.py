"""Order patch with optimistic concurrency.

The caller's expected version is compared against the stored version
before anything is written; a mismatch fails with VersionConflict and the
order is left untouched.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.errors import InvalidInput, VersionConflict
from orders.order.audit import DEFAULT_ACTOR, AuditLog
from orders.order.order import Order

logger = structlog.get_logger(__name__)

PATCHABLE_FIELDS = ("shipping_address", "notes")


@orders.command(part_of="Order")
class PatchOrder:
    order_id = Identifier(required=True)
    changes = Text(required=True)  # JSON: sparse dict of PATCHABLE_FIELDS
    expected_version = Integer()
    actor = String(max_length=255, default=DEFAULT_ACTOR)


@orders.command_handler(part_of=Order)
class PatchOrderHandler:
    @handle(PatchOrder)
    def patch_order(self, command):
        changes = json.loads(command.changes)
        rejected = sorted(set(changes) - set(PATCHABLE_FIELDS))
        if rejected:
            raise InvalidInput({field: ["cannot be patched"] for field in rejected})

        repo = current_domain.repository_for(Order)
        order = repo.get_live(command.order_id)
        try:
            patched = order.patch(expected_version=command.expected_version, **changes)
        except VersionConflict:
            logger.warning(
                "patch_rejected",
                order_id=str(order.id),
                expected_version=command.expected_version,
                current_version=order.version,
            )
            raise
        repo.add(order)

        AuditLog(order.id, command.actor).record(
            "patched",
            fields=patched,
            expected_version=command.expected_version,
            version=order.version,
        )
        logger.info("order_patched", order_id=str(order.id), fields=patched, version=order.version)
        return str(order.id)
