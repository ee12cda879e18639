"""Idempotency keys for order placement.

A key is bound to at most one order, forever. The binding is written in the
same unit of work as the order it names, so a key never points at an order
that was not stored. The unique constraint on ``key`` is what settles a race
between two placements carrying the same key.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.errors import IdempotencyKeyTaken


@orders.aggregate
class IdempotencyRecord:
    key = String(required=True, max_length=255, unique=True)
    order_id = Identifier(required=True)
    created_at = DateTime(required=True)


def find_binding(key) -> IdempotencyRecord | None:
    if not key:
        return None
    repo = current_domain.repository_for(IdempotencyRecord)
    return repo._dao.query.filter(key=key).all().first


def bind_key(key, order_id) -> IdempotencyRecord:
    """Bind ``key`` to ``order_id``, or raise IdempotencyKeyTaken."""
    if find_binding(key) is not None:
        raise IdempotencyKeyTaken(key)

    record = IdempotencyRecord(key=key, order_id=str(order_id), created_at=datetime.now(UTC))
    try:
        current_domain.repository_for(IdempotencyRecord).add(record)
    except ValidationError as exc:
        if "key" in exc.messages:
            raise IdempotencyKeyTaken(key) from exc
        raise
    return record
