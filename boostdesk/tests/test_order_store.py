from __future__ import annotations

import itertools
import json
import logging
import re
import shutil
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from boostdesk.analytics.store import ORDERS_READ_DEGRADED, get_events
from boostdesk.errors import NotFoundError, PersistenceError, ValidationError
from boostdesk.orders.models import AUTO_MATCH_LABEL
from boostdesk.orders.store import OrderStore

GOLD_TO_PLAT = {"currentLevel": "黄金", "targetLevel": "铂金", "serviceType": "rank-up"}


def _write_record(store: OrderStore, order_id: str, timestamp: int, **fields) -> None:
    record = {
        "id": order_id,
        "timestamp": timestamp,
        "status": "pending",
        "recommendedProvider": "鹰眼",
        **fields,
    }
    path = store.orders_dir / f"{order_id}.json"
    path.write_text(json.dumps(record, ensure_ascii=False), encoding="utf-8")


def test_store_creates_missing_directory(tmp_path):
    target = tmp_path / "a" / "b" / "orders"
    OrderStore(target)
    assert target.is_dir()


def test_create_builds_pending_order_with_recommendation(store):
    order = store.create(GOLD_TO_PLAT)

    assert re.fullmatch(r"ORD\d{13}\d{3}", order.id)
    assert order.status == "pending"
    assert order.recommended_provider == "神医"
    assert order.current_level == "黄金"
    assert order.target_level == "铂金"
    assert order.service_type == "rank-up"
    assert order.id.startswith(f"ORD{order.timestamp}")


def test_create_persists_camel_case_record(store):
    order = store.create({**GOLD_TO_PLAT, "contact": "qq:10001"})

    path = store.orders_dir / f"{order.id}.json"
    record = json.loads(path.read_text(encoding="utf-8"))
    assert record == {
        "id": order.id,
        "timestamp": order.timestamp,
        "status": "pending",
        "recommendedProvider": "神医",
        "currentLevel": "黄金",
        "targetLevel": "铂金",
        "serviceType": "rank-up",
        "contact": "qq:10001",
    }


def test_create_leaves_no_temp_files(store):
    store.create(GOLD_TO_PLAT)
    names = [p.name for p in store.orders_dir.iterdir()]
    assert len(names) == 1
    assert names[0].endswith(".json")


def test_envelope_fields_win_over_caller_fields(store):
    order = store.create({
        **GOLD_TO_PLAT,
        "id": "HACKED",
        "timestamp": 1,
        "status": "completed",
        "recommendedProvider": "me",
        "recommended_provider": "me too",
    })

    assert order.id.startswith("ORD")
    assert order.timestamp > 1
    assert order.status == "pending"
    assert order.recommended_provider == "神医"
    assert "recommended_provider" not in order.to_record()


def test_extra_fields_kept_in_order(store):
    order = store.create({**GOLD_TO_PLAT, "contact": "wx:abc", "heroes": ["Jett", "Sage"]})
    assert order.model_extra == {"contact": "wx:abc", "heroes": ["Jett", "Sage"]}


def test_ids_unique_within_a_run(store):
    ids = {store.create(GOLD_TO_PLAT).id for _ in range(50)}
    assert len(ids) == 50


def test_id_skips_existing_record(store):
    with patch("boostdesk.orders.store._sequence", itertools.count(0)), \
            patch("boostdesk.orders.store.time.time", return_value=1700000000.0):
        _write_record(store, "ORD1700000000000000", 1700000000000)
        order = store.create(GOLD_TO_PLAT)
    assert order.id == "ORD1700000000000001"


@pytest.mark.parametrize("payload", [["not", "an", "object"], "text"])
def test_create_rejects_malformed_payload(store, payload):
    with pytest.raises(ValidationError):
        store.create(payload)
    assert list(store.orders_dir.iterdir()) == []


def test_create_accepts_non_string_fields_and_falls_back(store):
    order = store.create({"currentLevel": 3, "targetLevel": 4, "serviceType": 1})

    assert order.recommended_provider == "闪电侠"
    record = json.loads((store.orders_dir / f"{order.id}.json").read_text(encoding="utf-8"))
    assert record["currentLevel"] == 3
    assert record["targetLevel"] == 4
    assert record["serviceType"] == 1


def test_create_stores_only_fields_the_caller_sent(store):
    order = store.create({"contact": "x"})

    record = json.loads((store.orders_dir / f"{order.id}.json").read_text(encoding="utf-8"))
    assert set(record) == {"id", "timestamp", "status", "recommendedProvider", "contact"}
    [listed] = store.list_orders()
    assert listed.to_record() == record


def test_create_write_failure_raises_persistence_error(store):
    with patch("boostdesk.orders.store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(PersistenceError, match="disk full"):
            store.create(GOLD_TO_PLAT)
    assert list(store.orders_dir.iterdir()) == []


def test_create_then_list_includes_order(store):
    order = store.create(GOLD_TO_PLAT)
    assert [o.id for o in store.list_orders()] == [order.id]


def test_list_empty_directory(store):
    assert store.list_orders() == []


def test_list_sorted_newest_first(store):
    _write_record(store, "ORD2", 2000)
    _write_record(store, "ORD3", 3000)
    _write_record(store, "ORD1", 1000)

    orders = store.list_orders()
    assert [o.id for o in orders] == ["ORD3", "ORD2", "ORD1"]
    assert all(a.timestamp >= b.timestamp for a, b in zip(orders, orders[1:]))


def test_list_timestamp_ties_keep_filename_order(store):
    _write_record(store, "ORDb", 5000)
    _write_record(store, "ORDa", 5000)
    _write_record(store, "ORDc", 9000)
    assert [o.id for o in store.list_orders()] == ["ORDc", "ORDa", "ORDb"]


def test_list_ignores_non_record_files(store):
    _write_record(store, "ORD1", 1000)
    (store.orders_dir / "notes.txt").write_text("hello", encoding="utf-8")
    (store.orders_dir / ".ORD2.abc.tmp").write_text("{", encoding="utf-8")
    assert [o.id for o in store.list_orders()] == ["ORD1"]


def test_legacy_record_without_provider_reads_as_auto_match(store):
    path = store.orders_dir / "ORD1.json"
    path.write_text(json.dumps({"id": "ORD1", "timestamp": 1, "status": "pending"}), encoding="utf-8")
    [order] = store.list_orders()
    assert order.recommended_provider == AUTO_MATCH_LABEL


def test_corrupt_record_degrades_whole_list(store, caplog):
    _write_record(store, "ORD1", 1000)
    (store.orders_dir / "ORD2.json").write_text("{broken", encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="boostdesk.orders.store"):
        assert store.list_orders() == []

    assert "Reading orders failed" in caplog.text
    degraded = [e for e in get_events() if e["type"] == ORDERS_READ_DEGRADED]
    assert len(degraded) == 1
    assert "ORD2.json" in degraded[0]["error"]


def test_corrupt_record_skipped_when_configured(tmp_path, roster):
    store = OrderStore(tmp_path / "orders", roster=roster, skip_corrupt_records=True)
    _write_record(store, "ORD1", 1000)
    (store.orders_dir / "ORD2.json").write_text("{broken", encoding="utf-8")

    assert [o.id for o in store.list_orders()] == ["ORD1"]
    assert not any(e["type"] == ORDERS_READ_DEGRADED for e in get_events())


def test_unreadable_directory_degrades_to_empty_list(store):
    shutil.rmtree(store.orders_dir)
    assert store.list_orders() == []
    assert get_events()[-1]["type"] == ORDERS_READ_DEGRADED


def test_update_status_rewrites_record(store):
    created = store.create({**GOLD_TO_PLAT, "contact": "qq:1"})
    other = store.create({"currentLevel": "钻石", "targetLevel": "大师"})

    updated = store.update_status(created.id, "completed")
    assert updated.status == "completed"

    by_id = {o.id: o for o in store.list_orders()}
    assert by_id[created.id].to_record() == {**created.to_record(), "status": "completed"}
    assert by_id[created.id].model_extra == {"contact": "qq:1"}
    assert by_id[other.id].to_record() == other.to_record()


def test_update_status_accepts_statuses_outside_ui_set(store):
    created = store.create(GOLD_TO_PLAT)
    assert store.update_status(created.id, "on_hold").status == "on_hold"


def test_update_status_unknown_id(store):
    store.create(GOLD_TO_PLAT)
    with pytest.raises(NotFoundError):
        store.update_status("ORD0000", "completed")
    assert not (store.orders_dir / "ORD0000.json").exists()
    assert len(list(store.orders_dir.iterdir())) == 1


@pytest.mark.parametrize("status", [None, ""])
def test_update_status_requires_status(store, status):
    created = store.create(GOLD_TO_PLAT)
    with pytest.raises(ValidationError):
        store.update_status(created.id, status)


def test_update_status_write_failure_keeps_previous_record(store):
    created = store.create(GOLD_TO_PLAT)
    with patch("boostdesk.orders.store.os.replace", side_effect=OSError("read-only")):
        with pytest.raises(PersistenceError):
            store.update_status(created.id, "completed")
    [order] = store.list_orders()
    assert order.status == "pending"


def test_concurrent_creates_and_updates(store):
    with ThreadPoolExecutor(max_workers=8) as pool:
        created = list(pool.map(lambda _: store.create(GOLD_TO_PLAT), range(40)))

    ids = [o.id for o in created]
    assert len(set(ids)) == 40
    for order_id in ids:
        record = json.loads((store.orders_dir / f"{order_id}.json").read_text(encoding="utf-8"))
        assert record["id"] == order_id

    completed = ids[::2]
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda oid: store.update_status(oid, "completed"), completed))

    listed = {o.id: o.status for o in store.list_orders()}
    assert set(listed) == set(ids)
    assert all(listed[oid] == "completed" for oid in completed)
    assert all(listed[oid] == "pending" for oid in ids[1::2])
    assert [p.name for p in store.orders_dir.iterdir() if p.suffix != ".json"] == []
