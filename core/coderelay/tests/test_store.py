"""
Tests for the pending recommendation store and request ids.
"""

import re

import pytest

from coderelay.engine.store import RecommendationStore, new_request_id, request_timestamp
from coderelay.tools.base import Recommendation

BASE_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000


def rec(path, code="print(1)"):
    return Recommendation(file_path=path, code=code, language="python")


@pytest.fixture
def store():
    return RecommendationStore()


class TestRequestIds:

    def test_format(self):
        request_id = new_request_id()
        assert re.match(r"^req_\d+_[a-z0-9]{9}$", request_id)

    def test_embeds_timestamp(self):
        assert request_timestamp(new_request_id(BASE_MS)) == BASE_MS

    def test_ids_are_unique(self):
        ids = {new_request_id(BASE_MS) for _ in range(50)}
        assert len(ids) == 50

    @pytest.mark.parametrize("request_id", ["custom", "req_abc_def", ""])
    def test_foreign_ids_have_no_timestamp(self, request_id):
        assert request_timestamp(request_id) is None


class TestStoreEntries:

    def test_put_and_get(self, store):
        store.put("req_1_a", [rec("a.py"), rec("b.py")])

        assert [r.file_path for r in store.get("req_1_a")] == ["a.py", "b.py"]
        assert "req_1_a" in store
        assert len(store) == 1

    def test_get_does_not_consume(self, store):
        store.put("req_1_a", [rec("a.py")])
        store.get("req_1_a")
        assert store.get("req_1_a") is not None

    def test_get_unknown_is_none(self, store):
        assert store.get("req_1_missing") is None

    def test_put_keeps_first_of_duplicate_paths(self, store):
        store.put("req_1_a", [rec("a.py", "first"), rec("a.py", "second")])
        assert [r.code for r in store.get("req_1_a")] == ["first"]

    def test_put_empty_creates_no_entry(self, store):
        store.put("req_1_a", [])
        assert "req_1_a" not in store

    def test_put_replaces_wholesale(self, store):
        store.put("req_1_a", [rec("a.py")])
        store.put("req_1_a", [rec("b.py")])
        assert [r.file_path for r in store.get("req_1_a")] == ["b.py"]

    def test_returned_list_is_a_copy(self, store):
        store.put("req_1_a", [rec("a.py")])
        store.get("req_1_a").clear()
        assert len(store.get("req_1_a")) == 1

    def test_find(self, store):
        store.put("req_1_a", [rec("a.py"), rec("b.py")])
        assert store.find("req_1_a", "b.py").file_path == "b.py"
        assert store.find("req_1_a", "c.py") is None
        assert store.find("req_1_zzz", "a.py") is None


class TestStoreRemoval:

    def test_remove_one(self, store):
        store.put("req_1_a", [rec("a.py"), rec("b.py")])

        assert store.remove_one("req_1_a", "a.py")
        assert [r.file_path for r in store.get("req_1_a")] == ["b.py"]

    def test_removing_last_drops_entry(self, store):
        store.put("req_1_a", [rec("a.py")])

        assert store.remove_one("req_1_a", "a.py")
        assert "req_1_a" not in store
        assert store.pending() == {}

    def test_remove_one_unknown(self, store):
        store.put("req_1_a", [rec("a.py")])
        assert not store.remove_one("req_1_a", "b.py")
        assert not store.remove_one("req_1_b", "a.py")

    def test_clear(self, store):
        store.put("req_1_a", [rec("a.py")])
        assert store.clear("req_1_a")
        assert not store.clear("req_1_a")

    def test_clear_all(self, store):
        store.put("req_1_a", [rec("a.py")])
        store.put("req_2_b", [rec("b.py")])
        assert store.clear_all() == 2
        assert len(store) == 0


class TestStoreExpiry:

    def test_entry_older_than_thirty_minutes_is_evicted(self, store):
        request_id = new_request_id(BASE_MS)
        store.put(request_id, [rec("a.py")])

        evicted = store.sweep(now=BASE_MS + 31 * MINUTE_MS)

        assert evicted == [request_id]
        assert request_id not in store

    def test_recent_entry_survives(self, store):
        request_id = new_request_id(BASE_MS)
        store.put(request_id, [rec("a.py")])

        assert store.sweep(now=BASE_MS + 29 * MINUTE_MS) == []
        assert request_id in store

    def test_sweep_is_selective(self, store):
        old_id = new_request_id(BASE_MS)
        new_id = new_request_id(BASE_MS + 20 * MINUTE_MS)
        store.put(old_id, [rec("a.py")])
        store.put(new_id, [rec("b.py")])

        store.sweep(now=BASE_MS + 35 * MINUTE_MS)

        assert list(store.pending()) == [new_id]

    def test_ids_without_timestamp_never_expire(self, store):
        store.put("custom", [rec("a.py")])
        assert store.sweep(now=BASE_MS * 2) == []
        assert "custom" in store

    def test_custom_max_age(self, store):
        request_id = new_request_id(BASE_MS)
        store.put(request_id, [rec("a.py")])
        assert store.sweep(now=BASE_MS + 2 * MINUTE_MS, max_age_seconds=60) == [request_id]
