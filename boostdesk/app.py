from __future__ import annotations

import logging
import mimetypes
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse

from .analytics.aggregator import compute_order_stats
from .analytics.store import get_event_counts, get_events, resize_event_log
from .config import DEFAULT_APP_CONFIG
from .errors import OrderDeskError
from .logging_config import setup_logging
from .orders.models import StatusUpdate
from .orders.store import OrderStore
from .recommendations.roster import get_roster

logger = logging.getLogger(__name__)

_config = DEFAULT_APP_CONFIG
_store: OrderStore | None = None


def get_order_store() -> OrderStore:
    """Return the process-wide store, creating the orders directory on first call."""
    global _store
    if _store is None:
        _store = OrderStore(
            _config.orders_dir,
            roster=get_roster(_config.roster_path),
            skip_corrupt_records=_config.skip_corrupt_records,
        )
    return _store


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(_config.log_level)
    resize_event_log(_config.event_log_size)
    # Fail at startup, not on the first order, if the roster is broken.
    roster = get_roster(_config.roster_path)
    store = get_order_store()
    logger.info("Roster has %d providers; orders stored in %s", len(roster), store.orders_dir)
    yield


app = FastAPI(title="Boost Order Desk", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_config.cors_allow_origins),
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def _failure(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "message": message})


@app.exception_handler(RequestValidationError)
async def invalid_request_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Rejected request body for %s %s", request.method, request.url.path)
    return _failure(f"Invalid request body: {exc.errors()}")


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/submit-order")
def submit_order(
    payload: Any = Body(...),
    store: OrderStore = Depends(get_order_store),
):
    try:
        order = store.create(payload)
    except OrderDeskError as exc:
        logger.warning("Order submission failed: %s", exc)
        return _failure(f"Order submission failed: {exc}")
    return {"success": True, "message": "Order submitted", "order": order.to_record()}


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.get("/admin/orders")
def admin_orders(store: OrderStore = Depends(get_order_store)):
    # Read failures already degrade to [] inside the store
    try:
        records = [o.to_record() for o in store.list_orders()]
    except (TypeError, ValueError) as exc:
        logger.exception("Serializing orders failed")
        return _failure(f"Failed to load orders: {exc}")
    return {"success": True, "orders": records}


@app.put("/admin/orders/{order_id}")
def admin_update_order(
    order_id: str,
    body: StatusUpdate,
    store: OrderStore = Depends(get_order_store),
):
    try:
        order = store.update_status(order_id, body.status)
    except OrderDeskError as exc:
        logger.warning("Status update for %s failed: %s", order_id, exc)
        return _failure(f"Order status update failed: {exc}")
    return {"success": True, "message": "Order status updated", "order": order.to_record()}


@app.get("/admin/stats")
def admin_stats(store: OrderStore = Depends(get_order_store)) -> dict:
    stats = compute_order_stats(get_events(), get_event_counts(), store.list_orders())
    return {"success": True, "stats": stats}


# ── Static pages ─────────────────────────────────────────────────────────


def _not_found(static_dir: Path):
    page = static_dir / "404.html"
    if page.is_file():
        return FileResponse(str(page), status_code=404, media_type="text/html")
    return HTMLResponse("<h1>404 Not Found</h1>", status_code=404)


def _resolve_static(static_dir: Path, resource_path: str) -> Path | None:
    root = static_dir.resolve()
    candidate = (root / (resource_path or "index.html")).resolve()
    if not candidate.is_relative_to(root) or not candidate.is_file():
        return None
    return candidate


@app.get("/{resource_path:path}", include_in_schema=False)
def static_resource(resource_path: str):
    static_dir = _config.static_dir
    path = _resolve_static(static_dir, resource_path)
    if path is None:
        return _not_found(static_dir)
    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return FileResponse(str(path), media_type=media_type)
