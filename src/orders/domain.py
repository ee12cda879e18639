"""Orders bounded context: order lifecycle engine.

Owns the Order aggregate (status state machine, items and totals), the
append-only audit trail, the idempotency registry for order placement and
the webhook registry that downstream deliverers read from.
"""

import structlog
from protean.domain import Domain

orders = Domain(name="orders")

logger = structlog.get_logger(__name__)
