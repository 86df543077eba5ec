"""
Document store contract: single writes, sentinels, atomic batches, counters
and collection feeds.
"""

import pytest

from academy.errors import BatchTooLarge, DocumentNotFound, StoreError
from academy.store import MAX_BATCH_WRITES, apply_query, increment, server_timestamp


class TestSingleWrites:
    def test_add_then_get_returns_data_with_id(self, store):
        doc_id = store.add("courses", {"name": "CLAT Preparation", "fee": 25000})

        doc = store.get("courses", doc_id)
        assert doc == {"id": doc_id, "name": "CLAT Preparation", "fee": 25000}

    def test_get_missing_returns_none(self, store):
        assert store.get("courses", "nope") is None

    def test_update_merges_fields(self, store):
        doc_id = store.add("courses", {"name": "A", "fee": 10})
        store.update("courses", doc_id, {"fee": 20})

        assert store.get("courses", doc_id) == {"id": doc_id, "name": "A", "fee": 20}

    def test_update_missing_document_raises(self, store):
        with pytest.raises(DocumentNotFound):
            store.update("courses", "missing", {"fee": 1})

    def test_set_replaces_unless_merge(self, store):
        store.set("inventory", "m1", {"title": "Notes", "totalStock": 5})
        store.set("inventory", "m1", {"title": "Notes v2"})
        assert store.get("inventory", "m1") == {"id": "m1", "title": "Notes v2"}

        store.set("inventory", "m1", {"totalStock": 3}, merge=True)
        assert store.get("inventory", "m1") == {"id": "m1", "title": "Notes v2", "totalStock": 3}

    def test_delete_is_idempotent(self, store):
        doc_id = store.add("courses", {"name": "A"})
        store.delete("courses", doc_id)
        store.delete("courses", doc_id)
        assert store.get("courses", doc_id) is None

    def test_unstorable_value_raises_store_error(self, store):
        with pytest.raises(StoreError):
            store.add("courses", {"name": object()})


class TestSentinels:
    def test_server_timestamp_is_resolved(self, store):
        doc_id = store.add("enquiries", {"name": "Priya", "enquiryDate": server_timestamp()})

        value = store.get("enquiries", doc_id)["enquiryDate"]
        assert isinstance(value, str)
        assert value[:4].isdigit() and "T" in value

    def test_increment_adds_to_existing_value(self, store):
        store.set("inventory", "m1", {"totalStock": 10, "availableStock": 8})
        store.update("inventory", "m1", {"totalStock": increment(5), "availableStock": increment(5)})

        doc = store.get("inventory", "m1")
        assert doc["totalStock"] == 15
        assert doc["availableStock"] == 13

    def test_increment_on_missing_field_starts_from_zero(self, store):
        store.set("inventory", "m1", {"title": "Notes"})
        store.set("inventory", "m1", {"totalStock": increment(4)}, merge=True)

        assert store.get("inventory", "m1")["totalStock"] == 4


class TestBatches:
    def test_batch_applies_all_writes(self, store):
        with store.batch() as batch:
            batch.set("materials", "m1", {"name": "Notes A", "price": 150})
            batch.set("inventory", "m1", {"title": "Notes A", "totalStock": 1})

        assert store.get("materials", "m1")["name"] == "Notes A"
        assert store.get("inventory", "m1")["title"] == "Notes A"

    def test_failed_write_rolls_back_whole_batch(self, store):
        batch = store.batch()
        batch.set("materials", "m1", {"name": "Notes A"})
        batch.update("inventory", "does-not-exist", {"title": "Notes A"})

        with pytest.raises(DocumentNotFound):
            batch.commit()

        assert store.get("materials", "m1") is None

    def test_exception_inside_context_discards_batch(self, store):
        with pytest.raises(RuntimeError):
            with store.batch() as batch:
                batch.set("materials", "m1", {"name": "Notes A"})
                raise RuntimeError("abort")

        assert store.get("materials", "m1") is None

    def test_batch_limit(self, store):
        batch = store.batch()
        for i in range(MAX_BATCH_WRITES + 1):
            batch.set("courses", f"c{i}", {"name": str(i)})

        with pytest.raises(BatchTooLarge):
            batch.commit()
        assert store.count("courses") == 0

    def test_batch_cannot_commit_twice(self, store):
        batch = store.batch()
        batch.set("courses", "c1", {"name": "A"})
        batch.commit()
        with pytest.raises(StoreError):
            batch.commit()


class TestQueries:
    def test_where_and_order(self, store):
        store.add("students", {"fullName": "B", "enrollmentYear": 2024})
        store.add("students", {"fullName": "A", "enrollmentYear": 2024})
        store.add("students", {"fullName": "C", "enrollmentYear": 2023})

        rows = store.query("students", [("enrollmentYear", "==", 2024)], order_by="fullName")
        assert [r["fullName"] for r in rows] == ["A", "B"]

    def test_missing_field_never_matches(self):
        docs = [{"id": "1", "status": "Pending"}, {"id": "2"}]
        assert [d["id"] for d in apply_query(docs, [("status", "!=", "Enrolled")])] == ["1"]

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValueError):
            apply_query([{"a": 1}], [("a", "~", 1)])

    def test_query_returns_copies(self, store):
        store.add("courses", {"name": "A", "tags": ["x"]})
        rows = store.query("courses")
        rows[0]["tags"].append("y")

        assert store.query("courses")[0]["tags"] == ["x"]

    def test_clear_removes_only_named_collections(self, store):
        store.add("courses", {"name": "A"})
        store.add("sales", {"customerName": "B"})
        store.clear("sales")

        assert store.count("courses") == 1
        assert store.count("sales") == 0


class TestSequences:
    def test_counter_starts_at_one(self, store):
        assert store.next_sequence("roll:x:2024") == 1
        assert store.next_sequence("roll:x:2024") == 2

    def test_seed_used_only_for_new_counter(self, store):
        assert store.next_sequence("roll:y:2024", seed=lambda: 3) == 4
        assert store.next_sequence("roll:y:2024", seed=lambda: 100) == 5

    def test_reset_counters_by_prefix(self, store):
        store.next_sequence("roll:a")
        store.next_sequence("other")
        store.reset_counters("roll:")

        assert store.next_sequence("roll:a") == 1
        assert store.next_sequence("other") == 2


class TestFeeds:
    def test_feed_is_shared_per_collection(self, store):
        assert store.feed("students") is store.feed("students")

    def test_subscribe_delivers_current_snapshot_immediately(self, store):
        store.add("courses", {"name": "A"})
        seen = []

        store.subscribe("courses", seen.append)

        assert len(seen) == 1
        assert [c["name"] for c in seen[0]] == ["A"]

    def test_listeners_see_committed_writes(self, store):
        seen = []
        store.subscribe("courses", seen.append, order_by="name")

        store.add("courses", {"name": "B"})
        with store.batch() as batch:
            batch.set("courses", "c1", {"name": "A"})
            batch.set("courses", "c2", {"name": "C"})

        assert [c["name"] for c in seen[-1]] == ["A", "B", "C"]
        # One delivery per commit, never a half-applied batch.
        assert [len(s) for s in seen] == [0, 1, 3]

    def test_filtered_listener(self, store):
        seen = []
        store.subscribe("enquiries", seen.append, where=[("status", "==", "Pending")])

        store.add("enquiries", {"name": "A", "status": "Pending"})
        store.add("enquiries", {"name": "B", "status": "Enrolled"})

        assert [e["name"] for e in seen[-1]] == ["A"]

    def test_unsubscribe_stops_delivery(self, store):
        seen = []
        sub = store.subscribe("courses", seen.append)
        assert store.feed("courses").listener_count == 1

        sub.unsubscribe()
        sub.unsubscribe()
        store.add("courses", {"name": "A"})

        assert len(seen) == 1
        assert store.feed("courses").listener_count == 0

    def test_failing_listener_does_not_break_writes(self, store):
        def boom(docs):
            if docs:
                raise RuntimeError("listener bug")

        seen = []
        store.subscribe("courses", boom)
        store.subscribe("courses", seen.append)

        store.add("courses", {"name": "A"})

        assert store.count("courses") == 1
        assert len(seen[-1]) == 1

    def test_snapshot_reflects_writes(self, store):
        feed = store.feed("courses")
        assert feed.snapshot() == []

        store.add("courses", {"name": "A"})
        assert [c["name"] for c in feed.snapshot()] == ["A"]
