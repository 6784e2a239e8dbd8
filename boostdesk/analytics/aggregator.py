from __future__ import annotations

from collections import Counter
from typing import Any, Mapping, Sequence

from ..orders.models import ORDER_STATUSES, Order
from .store import ORDER_CREATED, ORDER_STATUS_UPDATED, ORDERS_READ_DEGRADED


def compute_order_stats(
    recent_events: Sequence[dict[str, Any]],
    event_counts: Mapping[str, int],
    orders: Sequence[Order],
) -> dict[str, Any]:
    # Known statuses always appear, even at zero
    by_status: dict[str, int] = {s: 0 for s in ORDER_STATUSES}
    for o in orders:
        by_status[o.status] = by_status.get(o.status, 0) + 1

    provider_counter: Counter[str] = Counter(o.recommended_provider for o in orders)
    top_providers = [{"name": n, "count": c} for n, c in provider_counter.most_common()]

    last_degraded = next(
        (e for e in reversed(recent_events) if e["type"] == ORDERS_READ_DEGRADED), None
    )

    return {
        "total_orders": len(orders),
        "by_status": by_status,
        "by_provider": top_providers,
        "events": {
            "created": event_counts.get(ORDER_CREATED, 0),
            "status_updates": event_counts.get(ORDER_STATUS_UPDATED, 0),
            "degraded_reads": event_counts.get(ORDERS_READ_DEGRADED, 0),
        },
        "last_degraded_read": last_degraded["error"] if last_degraded else None,
    }
