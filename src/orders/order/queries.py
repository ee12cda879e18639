"""Read side of the orders context.

Reads go straight to the Order store through ``OrderRepository``, whose
query helper is the single place that hides soft-deleted orders.
"""

from protean.utils.globals import current_domain

from orders.order.audit import audit_trail
from orders.order.order import TERMINAL_STATES, Order, OrderStatus


def _iso(value):
    return value.isoformat() if value else None


def to_api_order(order: Order) -> dict:
    """The order as callers see it, items in insertion order."""
    return {
        "id": str(order.id),
        "reference": order.reference,
        "status": order.status,
        "customer_id": str(order.customer_id) if order.customer_id else None,
        "sales_channel": order.sales_channel,
        "items": [item.to_api() for item in order.sorted_items()],
        "totals": order.totals.to_api(),
        "shipping_address": order.shipping_address.to_dict() if order.shipping_address else None,
        "billing_info": order.billing_info,
        "notes": order.notes,
        "preferred_warehouse_id": order.preferred_warehouse_id,
        "warehouse_id": order.warehouse_id,
        "tracking_number": order.tracking_number,
        "reservation_id": order.reservation_id,
        "version": order.version,
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }


def load_order(order_id) -> Order:
    return current_domain.repository_for(Order).get_live(order_id)


def get_order(order_id) -> dict:
    return to_api_order(load_order(order_id))


def list_orders(page=1, size=None, sort=None, **filters) -> dict:
    """One page of live orders plus pagination metadata.

    ``next_page`` is the next page number as a string, or None on the last page.
    """
    found, total, page, size = current_domain.repository_for(Order).find_page(
        page=page, size=size, sort=sort, **filters
    )
    return {
        "items": [to_api_order(order) for order in found],
        "pagination": {
            "page": page,
            "size": size,
            "total": total,
            "next_page": str(page + 1) if page * size < total else None,
        },
    }


def get_audit_trail(order_id) -> list[dict]:
    # Deleted orders keep their entries, but they are not served here
    load_order(order_id)
    return [entry.to_api() for entry in audit_trail(order_id)]


def get_order_analytics(from_date=None, to_date=None) -> dict:
    """Counts and revenue over live orders created within the optional range.

    Revenue counts every order that was not cancelled; completed_revenue
    only the COMPLETED ones.
    """
    found = current_domain.repository_for(Order).find_all_live(from_date=from_date, to_date=to_date)

    terminal = {status.value for status in TERMINAL_STATES}
    counted = [o for o in found if o.status != OrderStatus.CANCELLED.value]
    revenue = sum(o.grand_total for o in counted)
    completed_revenue = sum(o.grand_total for o in counted if o.status == OrderStatus.COMPLETED.value)

    return {
        "total_orders": len(found),
        "pending_orders": sum(1 for o in found if o.status not in terminal),
        "completed_orders": sum(1 for o in found if o.status == OrderStatus.COMPLETED.value),
        "cancelled_orders": len(found) - len(counted),
        "total_revenue": round(revenue, 2),
        "average_order_value": round(revenue / len(counted), 2) if counted else 0.0,
        "completed_revenue": round(completed_revenue, 2),
    }
