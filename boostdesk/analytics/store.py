from __future__ import annotations

import threading
import time
from collections import Counter, deque
from typing import Any

from ..config import DEFAULT_APP_CONFIG

ORDER_CREATED = "order_created"
ORDER_STATUS_UPDATED = "order_status_updated"
ORDERS_READ_DEGRADED = "orders_read_degraded"

# Recent events are capped; the per-type counts cover the whole process lifetime.
_events: deque[dict[str, Any]] = deque(maxlen=DEFAULT_APP_CONFIG.event_log_size)
_counts: Counter[str] = Counter()
_lock = threading.Lock()


def record_event(event_type: str, data: dict[str, Any]) -> None:
    event = {"type": event_type, "timestamp": time.time(), **data}
    with _lock:
        _events.append(event)
        _counts[event_type] += 1


def get_events() -> list[dict[str, Any]]:
    """Most recent events, oldest first."""
    with _lock:
        return list(_events)


def get_event_counts() -> dict[str, int]:
    with _lock:
        return dict(_counts)


def resize_event_log(maxlen: int) -> None:
    """Change the cap, keeping the newest events that still fit."""
    global _events
    with _lock:
        _events = deque(_events, maxlen=maxlen)


def clear_events() -> None:
    with _lock:
        _events.clear()
        _counts.clear()
