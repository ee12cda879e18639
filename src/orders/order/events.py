"""Domain events for the Order aggregate.

Events are committed together with the state change that raised them and
consumed after commit (webhook delivery queue). They are notifications
for the outside world; the audit trail is written separately, inside the
same transaction as the mutation.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from orders.domain import orders


@orders.event(part_of="Order")
class OrderPlaced:
    """A new order was committed, either PENDING or already RESERVED."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String()
    customer_id = Identifier()
    sales_channel = String()
    status = String(required=True)
    reservation_id = String()
    item_count = Integer(default=0)
    grand_total = Float(required=True)
    order_version = Integer(required=True)
    placed_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderItemsChanged:
    """Items were added, updated or removed and totals recomputed."""

    __version__ = 1

    order_id = Identifier(required=True)
    change = String(required=True)  # items_added | item_updated | item_removed
    item_ids = Text()  # JSON: list of affected item ids
    grand_total = Float(required=True)
    order_version = Integer(required=True)
    changed_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderPatched:
    __version__ = 1

    order_id = Identifier(required=True)
    patched_fields = Text()  # JSON: list of patched field names
    order_version = Integer(required=True)
    patched_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderStatusChanged:
    """The order moved through the state machine via a status update."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    reason = String(max_length=500)
    warehouse_id = String()
    tracking_number = String()
    reservation_id = String()
    order_version = Integer(required=True)
    changed_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(max_length=500)
    order_version = Integer(required=True)
    cancelled_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderDeleted:
    __version__ = 1

    order_id = Identifier(required=True)
    order_version = Integer(required=True)
    deleted_at = DateTime(required=True)
