"""Order aggregate: the core of the orders domain.

The Order is a plain (state-stored) aggregate: every successful mutation
bumps ``version`` by exactly one, which is the token clients use for
optimistic concurrency. The aggregate is the only place that knows the
business rules: the status state machine, the per-status entry guards and
side effects, and the "items only change before reservation" rule.

State Machine (7 states):
    DRAFT → PENDING → RESERVED → FULFILLING → SHIPPED → COMPLETED
    CANCELLED (from DRAFT, PENDING, RESERVED, FULFILLING)
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.fields import (
    Boolean,
    DateTime,
    Dict,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from orders.domain import orders
from orders.errors import (
    AlreadyTerminal,
    InvalidInput,
    InvalidTransition,
    NotFound,
    NotModifiable,
    PreconditionFailed,
    VersionConflict,
)
from orders.order.events import (
    OrderCancelled,
    OrderDeleted,
    OrderItemsChanged,
    OrderPatched,
    OrderPlaced,
    OrderStatusChanged,
)
from orders.order.totals import PriceLine, TotalsPolicy, compute_totals

# Sentinel for distinguishing "not provided" from None in partial updates
_UNSET = object()


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    RESERVED = "RESERVED"
    FULFILLING = "FULFILLING"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

# Items (and therefore totals) are frozen once stock is reserved
MODIFIABLE_STATES = frozenset({OrderStatus.DRAFT, OrderStatus.PENDING})

# State machine transition map for plain status updates
VALID_TRANSITIONS = {
    OrderStatus.DRAFT: frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED}),
    OrderStatus.PENDING: frozenset({OrderStatus.RESERVED, OrderStatus.CANCELLED}),
    OrderStatus.RESERVED: frozenset({OrderStatus.FULFILLING, OrderStatus.CANCELLED}),
    OrderStatus.FULFILLING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),  # Terminal
    OrderStatus.CANCELLED: frozenset(),  # Terminal
}

# Entry guards: target status -> transition argument that must be present
ENTRY_REQUIREMENTS = {
    OrderStatus.FULFILLING: "warehouse_id",
    OrderStatus.SHIPPED: "tracking_number",
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@orders.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships to. Replaced wholesale when patched."""

    recipient = String(max_length=255)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@orders.value_object(part_of="Order")
class OrderTotals:
    """Computed money summary. Never accepted from clients.

    Built on read from the order's totals fields.
    """

    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    discounts = Float(default=0.0)
    grand_total = Float(default=0.0)

    def to_api(self):
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping": self.shipping,
            "discounts": self.discounts,
            "grand_total": self.grand_total,
        }


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@orders.entity(part_of="Order")
class OrderItem:
    """A line on an order.

    ``total_price`` is always ``quantity * unit_price``; it is derived by the
    aggregate on every write and has no setter of its own. ``line_no`` keeps
    insertion order, which is the order items are returned in.
    """

    line_no = Integer(required=True, min_value=1)
    sku = String(required=True, max_length=64)
    product_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(default=0.0)
    meta = Dict()

    def to_api(self):
        return {
            "id": str(self.id),
            "sku": self.sku,
            "product_id": str(self.product_id) if self.product_id else None,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "meta": self.meta or {},
        }


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------
def validate_item_lines(items) -> list[dict]:
    """Normalize raw item dicts, rejecting bad quantities and prices.

    Every problem across the whole list is collected so that the caller sees
    all of them at once; nothing is written when any item is invalid.
    """
    errors = {}
    lines = []
    for index, item in enumerate(items or []):
        problems = []
        sku = item.get("sku")
        quantity = item.get("quantity")
        unit_price = item.get("unit_price")
        if not sku:
            problems.append("sku is required")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            problems.append("quantity must be a positive integer")
        if isinstance(unit_price, bool) or not isinstance(unit_price, int | float) or unit_price < 0:
            problems.append("unit_price must be a non-negative number")
        if problems:
            errors[f"items[{index}]"] = problems
            continue
        lines.append(
            {
                "sku": sku,
                "product_id": item.get("product_id"),
                "quantity": quantity,
                "unit_price": float(unit_price),
                "meta": item.get("meta") or {},
            }
        )
    if errors:
        raise InvalidInput(errors)
    return lines


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@orders.aggregate
class Order:
    reference = String(max_length=100)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    customer_id = Identifier()
    sales_channel = String(max_length=50)
    items = HasMany(OrderItem)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    discounts = Float(default=0.0)
    grand_total = Float(default=0.0)
    shipping_address = ValueObject(ShippingAddress)
    billing_info = Dict()
    notes = Text()
    preferred_warehouse_id = String(max_length=100)
    warehouse_id = String(max_length=100)
    tracking_number = String(max_length=255)
    reservation_id = String(max_length=64)
    version = Integer(default=1, min_value=1)
    deleted = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        lines,
        order_id=None,
        reservation_id=None,
        reference=None,
        customer_id=None,
        sales_channel=None,
        shipping_address=None,
        billing_info=None,
        notes=None,
        preferred_warehouse_id=None,
        policy: TotalsPolicy | None = None,
    ):
        """Build a new order from validated lines.

        The order starts RESERVED when the caller already holds a reservation
        for it, PENDING otherwise. Totals are computed here; they are never
        taken from the caller.

        Args:
            lines: Dicts with sku, product_id, quantity, unit_price, meta
                   (see ``validate_item_lines``).
            order_id: Pre-generated identity, so that the reservation can be
                      taken against the id before the order is stored.
            reservation_id: Id of a reservation taken for this order.
        """
        now = datetime.now(UTC)
        status = OrderStatus.RESERVED if reservation_id else OrderStatus.PENDING

        fields = {
            "reference": reference,
            "status": status.value,
            "customer_id": customer_id,
            "sales_channel": sales_channel,
            "shipping_address": ShippingAddress(**shipping_address) if shipping_address else None,
            "billing_info": billing_info or {},
            "notes": notes,
            "preferred_warehouse_id": preferred_warehouse_id,
            "reservation_id": reservation_id,
            "version": 1,
            "deleted": False,
            "created_at": now,
            "updated_at": now,
        }
        if order_id:
            fields["id"] = order_id
        order = cls(**fields)

        for line_no, line in enumerate(lines, start=1):
            order.add_items(order._build_item(line_no, line))
        order._recompute_totals(policy)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                reference=reference,
                customer_id=customer_id,
                sales_channel=sales_channel,
                status=order.status,
                reservation_id=reservation_id,
                item_count=len(lines),
                grand_total=order.grand_total,
                order_version=order.version,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_terminal(self):
        return OrderStatus(self.status) in TERMINAL_STATES

    def sorted_items(self):
        return sorted(self.items or [], key=lambda item: item.line_no)

    def price_lines(self):
        return [PriceLine(unit_price=item.unit_price, quantity=item.quantity) for item in self.items or []]

    def find_item(self, item_id):
        item = next((i for i in self.items or [] if str(i.id) == str(item_id)), None)
        if item is None:
            raise NotFound("Item", item_id)
        return item

    def _build_item(self, line_no, line):
        return OrderItem(
            line_no=line_no,
            sku=line["sku"],
            product_id=line.get("product_id"),
            quantity=line["quantity"],
            unit_price=line["unit_price"],
            total_price=line["quantity"] * line["unit_price"],
            meta=line.get("meta") or {},
        )

    @property
    def totals(self) -> OrderTotals:
        return OrderTotals(
            subtotal=self.subtotal,
            tax=self.tax,
            shipping=self.shipping,
            discounts=self.discounts,
            grand_total=self.grand_total,
        )

    def _recompute_totals(self, policy=None):
        for name, value in compute_totals(self.price_lines(), policy).items():
            setattr(self, name, value)

    def _touch(self):
        """Record a successful mutation: exactly one version step."""
        self.version = self.version + 1
        self.updated_at = datetime.now(UTC)
        return self.updated_at

    def _assert_modifiable(self):
        current = OrderStatus(self.status)
        if current not in MODIFIABLE_STATES:
            raise NotModifiable(current.value, [s.value for s in MODIFIABLE_STATES])

    def _items_changed(self, change, item_ids, policy):
        self._recompute_totals(policy)
        now = self._touch()
        self.raise_(
            OrderItemsChanged(
                order_id=str(self.id),
                change=change,
                item_ids=json.dumps([str(i) for i in item_ids]),
                grand_total=self.grand_total,
                order_version=self.version,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Item mutation (DRAFT / PENDING only)
    # -------------------------------------------------------------------
    def add_lines(self, lines, policy=None):
        """Append items and recompute totals. Returns the new items."""
        self._assert_modifiable()
        next_line_no = max((i.line_no for i in self.items or []), default=0) + 1
        added = []
        for offset, line in enumerate(lines):
            item = self._build_item(next_line_no + offset, line)
            self.add_items(item)
            added.append(item)
        self._items_changed("items_added", [i.id for i in added], policy)
        return added

    def update_line(
        self,
        item_id,
        sku=_UNSET,
        product_id=_UNSET,
        quantity=_UNSET,
        unit_price=_UNSET,
        meta=_UNSET,
        policy=None,
    ):
        """Change the supplied fields of one item; total_price follows."""
        self._assert_modifiable()
        item = self.find_item(item_id)

        errors = []
        if quantity is not _UNSET and (isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0):
            errors.append("quantity must be a positive integer")
        if unit_price is not _UNSET and (
            isinstance(unit_price, bool) or not isinstance(unit_price, int | float) or unit_price < 0
        ):
            errors.append("unit_price must be a non-negative number")
        if sku is not _UNSET and not sku:
            errors.append("sku cannot be blank")
        if errors:
            raise InvalidInput({"item": errors})

        if sku is not _UNSET:
            item.sku = sku
        if product_id is not _UNSET:
            item.product_id = product_id
        if quantity is not _UNSET:
            item.quantity = quantity
        if unit_price is not _UNSET:
            item.unit_price = float(unit_price)
        if meta is not _UNSET:
            item.meta = meta or {}
        item.total_price = item.quantity * item.unit_price

        self._items_changed("item_updated", [item.id], policy)
        return item

    def remove_line(self, item_id, policy=None):
        self._assert_modifiable()
        item = self.find_item(item_id)
        self.remove_items(item)
        self._items_changed("item_removed", [item_id], policy)

    # -------------------------------------------------------------------
    # Patch (optimistic concurrency)
    # -------------------------------------------------------------------
    def patch(self, expected_version=None, shipping_address=_UNSET, notes=_UNSET):
        """Apply a sparse update after checking the caller's version token.

        Returns the names of the fields that were supplied.
        """
        if expected_version is not None and expected_version != self.version:
            raise VersionConflict(expected_version, self.version)

        patched = []
        if shipping_address is not _UNSET:
            self.shipping_address = ShippingAddress(**shipping_address) if shipping_address else None
            patched.append("shipping_address")
        if notes is not _UNSET:
            self.notes = notes
            patched.append("notes")

        now = self._touch()
        self.raise_(
            OrderPatched(
                order_id=str(self.id),
                patched_fields=json.dumps(patched),
                order_version=self.version,
                patched_at=now,
            )
        )
        return patched

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def transition_to(self, target, reason=None, warehouse_id=None, tracking_number=None):
        """Move to ``target`` if the transition table allows it.

        Returns the previous status. Guards run after the table check, so an
        illegal pair is always reported as InvalidTransition even when the
        guard field is also missing.
        """
        current = OrderStatus(self.status)
        allowed = VALID_TRANSITIONS[current]
        if target not in allowed:
            raise InvalidTransition(current.value, target.value, [s.value for s in allowed])

        supplied = {"warehouse_id": warehouse_id, "tracking_number": tracking_number}
        required = ENTRY_REQUIREMENTS.get(target)
        if required and not supplied[required]:
            raise PreconditionFailed(required, target.value)

        self.status = target.value
        _ENTRY_EFFECTS.get(target, _no_effect)(self, supplied)
        now = self._touch()

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                status=target.value,
                reason=reason,
                warehouse_id=warehouse_id,
                tracking_number=tracking_number,
                reservation_id=self.reservation_id,
                order_version=self.version,
                changed_at=now,
            )
        )
        return current

    def cancel(self, reason=None):
        """Cancel from any non-terminal state. Returns the previous status."""
        current = OrderStatus(self.status)
        if current in TERMINAL_STATES:
            raise AlreadyTerminal(current.value)

        self.status = OrderStatus.CANCELLED.value
        self.reservation_id = None
        now = self._touch()

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                order_version=self.version,
                cancelled_at=now,
            )
        )
        return current

    # -------------------------------------------------------------------
    # Soft delete
    # -------------------------------------------------------------------
    def mark_deleted(self):
        self.deleted = True
        now = self._touch()
        self.raise_(
            OrderDeleted(
                order_id=str(self.id),
                order_version=self.version,
                deleted_at=now,
            )
        )


# ---------------------------------------------------------------------------
# Per-target entry effects
# ---------------------------------------------------------------------------
def _no_effect(order, supplied):  # noqa: ARG001
    pass


def _ensure_reservation(order, supplied):  # noqa: ARG001
    if not order.reservation_id:
        order.reservation_id = str(uuid4())


def _record_warehouse(order, supplied):
    order.warehouse_id = supplied["warehouse_id"]


def _record_tracking(order, supplied):
    order.tracking_number = supplied["tracking_number"]


def _clear_reservation(order, supplied):  # noqa: ARG001
    order.reservation_id = None


_ENTRY_EFFECTS = {
    OrderStatus.RESERVED: _ensure_reservation,
    OrderStatus.FULFILLING: _record_warehouse,
    OrderStatus.SHIPPED: _record_tracking,
    OrderStatus.CANCELLED: _clear_reservation,
}
