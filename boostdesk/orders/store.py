from __future__ import annotations

import itertools
import json
import logging
import os
import tempfile
import threading
import time
from contextlib import suppress
from pathlib import Path
from typing import Any, Mapping, Sequence

from pydantic import ValidationError as SchemaError

from ..analytics.store import (
    ORDER_CREATED,
    ORDER_STATUS_UPDATED,
    ORDERS_READ_DEGRADED,
    record_event,
)
from ..errors import NotFoundError, PersistenceError, ReadError, ValidationError
from ..recommendations.engine import recommend
from ..recommendations.models import Provider
from .models import DEFAULT_STATUS, ENVELOPE_KEYS, Order, OrderRequest

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"
_MAX_ID_ATTEMPTS = 1000

# Shared by every store in the process so two stores on one directory still
# hand out distinct ids within the same millisecond.
_sequence = itertools.count()


class OrderStore:
    """
    File-backed order records, one ``<id>.json`` per order.

    Writes go to a temp file in the same directory and are moved into place
    with ``os.replace``, so readers never see a half-written record.
    ``create`` and ``update_status`` are serialized by a per-store lock;
    ``list_orders`` runs unlocked.
    """

    def __init__(
        self,
        orders_dir: Path | str,
        roster: Sequence[Provider] | None = None,
        skip_corrupt_records: bool = False,
    ) -> None:
        self.orders_dir = Path(orders_dir)
        self.orders_dir.mkdir(parents=True, exist_ok=True)
        self.roster = roster
        self.skip_corrupt_records = skip_corrupt_records
        self._lock = threading.Lock()

    def _path_for(self, order_id: str) -> Path:
        return self.orders_dir / f"{order_id}{RECORD_SUFFIX}"

    def _next_id(self, now_ms: int) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            order_id = f"ORD{now_ms}{next(_sequence) % 1000:03d}"
            if not self._path_for(order_id).exists():
                return order_id
        raise PersistenceError(f"no free order id left for timestamp {now_ms}")

    def _write(self, order: Order) -> None:
        path = self._path_for(order.id)
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.orders_dir, prefix=f".{order.id}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(order.to_record(), f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                with suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"cannot write order {order.id}: {exc}") from exc

    def _read_record(self, path: Path) -> Order:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return Order.model_validate(data)
        except (OSError, ValueError) as exc:
            # ValueError covers bad JSON, bad UTF-8 and pydantic schema errors
            raise ReadError(f"cannot read order record {path.name}: {exc}") from exc

    def _read_all(self) -> list[Order]:
        try:
            with os.scandir(self.orders_dir) as it:
                names = sorted(
                    e.name for e in it if e.name.endswith(RECORD_SUFFIX) and e.is_file()
                )
        except OSError as exc:
            raise ReadError(f"cannot list {self.orders_dir}: {exc}") from exc

        orders: list[Order] = []
        for name in names:
            try:
                orders.append(self._read_record(self.orders_dir / name))
            except ReadError:
                if not self.skip_corrupt_records:
                    raise
                logger.warning("Skipping unreadable order record %s", name, exc_info=True)
        return orders

    def create(self, payload: Mapping[str, Any]) -> Order:
        """Recommend a provider for ``payload`` and persist it as a new pending order."""
        try:
            request = OrderRequest.model_validate(payload)
        except SchemaError as exc:
            raise ValidationError(f"invalid order payload: {exc}") from exc

        provider = recommend(request, self.roster)
        caller_fields = {k: v for k, v in request.sent_fields().items() if k not in ENVELOPE_KEYS}

        with self._lock:
            now_ms = int(time.time() * 1000)
            order = Order.model_validate({
                **caller_fields,
                "id": self._next_id(now_ms),
                "timestamp": now_ms,
                "status": DEFAULT_STATUS,
                "recommendedProvider": provider.name,
            })
            self._write(order)

        logger.info("Created order %s, recommended provider %s", order.id, provider.name)
        record_event(ORDER_CREATED, {"order_id": order.id, "provider": provider.name})
        return order

    def list_orders(self) -> list[Order]:
        """
        Return every stored order, newest first.

        Any read failure (unreadable directory, or an unparsable record unless
        ``skip_corrupt_records`` is set) is logged, counted as an
        ``orders_read_degraded`` event, and yields an empty list.
        """
        try:
            orders = self._read_all()
        except ReadError as exc:
            logger.error("Reading orders failed, returning an empty list", exc_info=True)
            record_event(ORDERS_READ_DEGRADED, {"error": str(exc)})
            return []
        # Stable: equal timestamps keep filename order
        return sorted(orders, key=lambda o: o.timestamp, reverse=True)

    def update_status(self, order_id: str, status: str | None) -> Order:
        if not status:
            raise ValidationError("order status is required")

        with self._lock:
            current = next((o for o in self.list_orders() if o.id == order_id), None)
            if current is None:
                raise NotFoundError(f"order {order_id} not found")
            updated = current.model_copy(update={"status": status})
            self._write(updated)

        logger.info("Order %s status %s -> %s", order_id, current.status, status)
        record_event(
            ORDER_STATUS_UPDATED,
            {"order_id": order_id, "from": current.status, "to": status},
        )
        return updated
