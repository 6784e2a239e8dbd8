from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from boostdesk.analytics.store import clear_events
from boostdesk.app import app, get_order_store
from boostdesk.orders.store import OrderStore
from boostdesk.recommendations.roster import load_roster


@pytest.fixture(autouse=True)
def _reset_events():
    clear_events()
    yield
    clear_events()


@pytest.fixture
def roster():
    return load_roster()


@pytest.fixture
def store(tmp_path, roster):
    return OrderStore(tmp_path / "orders", roster=roster)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_order_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
