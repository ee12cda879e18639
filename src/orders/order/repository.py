"""Repository for the Order aggregate.

Soft-deleted orders are invisible to every read here: loading one by id
reports NotFound and listings skip it.
"""

from datetime import UTC

from protean.exceptions import ExpectedVersionError, ObjectNotFoundError

from orders.config import settings
from orders.domain import orders
from orders.errors import InvalidInput, NotFound, VersionConflict
from orders.order.order import Order

SORTABLE_FIELDS = ("created_at", "updated_at", "status", "reference")

# Page size used when walking a whole result set
_BATCH_SIZE = 500


def clamp_page(page, size):
    """Normalize paging inputs: page >= 1, 1 <= size <= max_page_size."""
    page = max(int(page or 1), 1)
    size = settings.default_page_size if size is None else int(size)
    return page, min(max(size, 1), settings.max_page_size)


def parse_sort(sort):
    """Turn ``field:dir`` into a protean ordering key.

    No sort means newest first. A field without a direction sorts ascending.
    Unknown fields fall back to ``created_at`` in the requested direction.
    """
    field, _, direction = (sort or "created_at:desc").partition(":")
    direction = direction or "asc"
    if field not in SORTABLE_FIELDS:
        field = "created_at"
    return field if direction.lower() == "asc" else f"-{field}"


def as_utc(value):
    """Treat naive datetimes as UTC so range bounds compare with stored stamps."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@orders.repository(part_of=Order)
class OrderRepository:
    def add(self, order):
        try:
            return super().add(order)
        except ExpectedVersionError as exc:
            stored = self._dao.query.filter(id=str(order.id)).all().first
            current = stored.version if stored else None
            raise VersionConflict(order.version - 1, current) from exc

    def get_live(self, order_id) -> Order:
        """Load an order that exists and has not been soft-deleted."""
        try:
            order = self.get(str(order_id))
        except ObjectNotFoundError:
            raise NotFound("Order", order_id) from None
        if order.deleted:
            raise NotFound("Order", order_id)
        return order

    def live_query(self, status=None, customer_id=None, sales_channel=None, from_date=None, to_date=None):
        criteria = {"deleted": False}
        if status:
            criteria["status"] = status
        if customer_id:
            criteria["customer_id"] = str(customer_id)
        if sales_channel:
            criteria["sales_channel"] = sales_channel
        from_date, to_date = as_utc(from_date), as_utc(to_date)
        if from_date and to_date and from_date > to_date:
            raise InvalidInput({"from_date": ["from_date must not be after to_date"]})
        if from_date:
            criteria["created_at__gte"] = from_date
        if to_date:
            criteria["created_at__lte"] = to_date
        return self._dao.query.filter(**criteria)

    def find_page(self, page=1, size=None, sort=None, **filters):
        """Return ``(orders, total, page, size)`` for one page of live orders."""
        page, size = clamp_page(page, size)
        results = self.live_query(**filters).order_by(parse_sort(sort)).offset((page - 1) * size).limit(size).all()
        return results.items, results.total, page, size

    def find_all_live(self, **filters) -> list[Order]:
        """Every live order matching the filters, oldest first."""
        query = self.live_query(**filters).order_by("created_at")
        found = []
        offset = 0
        while True:
            batch = query.offset(offset).limit(_BATCH_SIZE).all()
            found.extend(batch.items)
            offset += _BATCH_SIZE
            if offset >= batch.total or not batch.items:
                return found
