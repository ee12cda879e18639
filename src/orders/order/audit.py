"""Append-only audit trail for orders.

One AuditEntry is written per successful mutation, inside the same unit of
work as the mutation itself. Entries are never updated or deleted, and they
survive a soft delete of their order.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Dict, Identifier, Integer, String
from protean.utils.globals import current_domain

from orders.domain import orders

DEFAULT_ACTOR = "system"


@orders.aggregate
class AuditEntry:
    order_id = Identifier(required=True)
    sequence = Integer(required=True, min_value=1)
    actor = String(required=True, max_length=255, default=DEFAULT_ACTOR)
    action = String(required=True, max_length=50)
    details = Dict()
    timestamp = DateTime(required=True)

    def to_api(self):
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "actor": self.actor,
            "action": self.action,
            "details": self.details or {},
            "timestamp": self.timestamp.isoformat(),
        }


class AuditLog:
    """Writes entries for one order, numbering them in call order.

    ``sequence`` breaks ties between entries that share a timestamp, so a
    create followed immediately by its reservation entry reads back in the
    order it was written.
    """

    def __init__(self, order_id, actor=None):
        self.order_id = str(order_id)
        self.actor = actor or DEFAULT_ACTOR
        self._repo = current_domain.repository_for(AuditEntry)
        self._next = None

    def record(self, action, **details):
        if self._next is None:
            existing = self._repo._dao.query.filter(order_id=self.order_id).all()
            self._next = existing.total + 1
        entry = AuditEntry(
            order_id=self.order_id,
            sequence=self._next,
            actor=self.actor,
            action=action,
            details=details,
            timestamp=datetime.now(UTC),
        )
        self._repo.add(entry)
        self._next += 1
        return entry


def audit_trail(order_id) -> list[AuditEntry]:
    """Every entry for the order, oldest first."""
    results = current_domain.repository_for(AuditEntry)._dao.query.filter(order_id=str(order_id)).all()
    return sorted(results.items, key=lambda e: (e.timestamp, e.sequence))
