# tests/test_results.py

from __future__ import annotations

from sub_api.core.models import ResultStatus, TaskResult
from sub_api.core.results import ResultStore


def test_rerun_overwrites_single_entry() -> None:
    store = ResultStore()
    store.put(1, "T", TaskResult.failure("boom", 10))
    store.put(1, "T", TaskResult.success("ok", 20))

    assert len(store) == 1
    r = store.get(1, "T")
    assert r is not None and r.ok and r.text == "ok"


def test_snapshot_matches_persisted_schema() -> None:
    store = ResultStore()
    store.put(3, "A", TaskResult.success("HELLO", 1000))
    store.put(3, "B", TaskResult.failure("Request failed (500): x", 2000))

    assert store.to_dict() == {
        "3": {
            "A": {"result": "HELLO", "timestamp": 1000},
            "B": {"error": "Request failed (500): x", "timestamp": 2000},
        }
    }

    again = ResultStore.from_dict(store.to_dict())
    assert again.get(3, "B") == TaskResult(ResultStatus.FAILURE, 2000, error_message="Request failed (500): x")


def test_from_dict_skips_malformed_entries() -> None:
    store = ResultStore.from_dict(
        {
            "1": {"A": {"result": "x", "timestamp": 5}, "B": {"timestamp": 5}, "C": "junk"},
            "not-a-number": {"A": {"result": "y", "timestamp": 1}},
            "2": [],
        }
    )
    assert store.turn_indices() == [1]
    assert set(store.for_turn(1)) == {"A"}
    assert ResultStore.from_dict(None).to_dict() == {}


def test_drop_turn_and_drop_task() -> None:
    store = ResultStore()
    store.put(1, "A", TaskResult.success("a"))
    store.put(1, "B", TaskResult.success("b"))
    store.put(2, "A", TaskResult.success("a2"))

    store.drop_task("A")
    assert store.turn_indices() == [1]
    assert set(store.for_turn(1)) == {"B"}

    store.drop_turn(1)
    assert store.to_dict() == {}
