"""
Unit tests for storage layer.

Tests the key/value stores, local fallback, record serialization and
bulk reset.
"""

import json
import os
import tempfile
from unittest.mock import Mock

import pytest

from prd_forge.core.token_counter import TokenUsage
from prd_forge.storage.models import GenerationRecord, SessionRecord, decode_record
from prd_forge.storage.repository import (
    FallbackKeyValueStore,
    InMemoryKeyValueStore,
    SqliteKeyValueStore,
    StorageError,
    StoredValue,
    get_store,
    load_values,
    reset_all_data,
)


class TestSqliteKeyValueStore:
    """Test the SQLite-backed store."""
    
    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        self.store = SqliteKeyValueStore(self.db_path)
    
    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)
    
    def test_get_missing_key_returns_none(self):
        assert self.store.get("session:nope") is None
    
    def test_set_and_get(self):
        self.store.set("session:a", '{"sessionId": "a"}')
        assert self.store.get("session:a") == StoredValue(key="session:a", value='{"sessionId": "a"}')
    
    def test_set_overwrites(self):
        self.store.set("k", "1")
        self.store.set("k", "2")
        assert self.store.get("k").value == "2"
        assert self.store.list("k") == ["k"]
    
    def test_list_by_prefix_in_insertion_order(self):
        self.store.set("generation:2", "{}")
        self.store.set("session:1", "{}")
        self.store.set("generation:1", "{}")
        assert self.store.list("generation:") == ["generation:2", "generation:1"]
        assert self.store.list("session:") == ["session:1"]
    
    def test_list_treats_wildcards_literally(self):
        """Underscore and percent in a prefix are not LIKE wildcards."""
        self.store.set("a_b", "{}")
        self.store.set("axb", "{}")
        self.store.set("100%", "{}")
        assert self.store.list("a_") == ["a_b"]
        assert self.store.list("100%") == ["100%"]
    
    def test_delete(self):
        self.store.set("k", "v")
        self.store.delete("k")
        self.store.delete("missing")
        assert self.store.get("k") is None
    
    def test_data_persists_across_instances(self):
        self.store.set("k", "v")
        assert SqliteKeyValueStore(self.db_path).get("k").value == "v"
    
    def test_unusable_path_raises_storage_error(self):
        store = SqliteKeyValueStore(os.path.join(self.temp_dir, "missing", "dir", "x.db"))
        with pytest.raises(StorageError):
            store.set("k", "v")


class TestInMemoryKeyValueStore:
    """Test the dictionary-backed store."""
    
    def test_basic_operations(self):
        store = InMemoryKeyValueStore({"session:1": "{}"})
        store.set("generation:1", "{}")
        assert store.list("session:") == ["session:1"]
        assert store.list() == ["session:1", "generation:1"]
        store.delete("session:1")
        assert store.get("session:1") is None


class TestFallbackKeyValueStore:
    """Test falling back to the local store."""
    
    def test_uses_primary_when_healthy(self):
        primary = InMemoryKeyValueStore()
        fallback = InMemoryKeyValueStore()
        store = FallbackKeyValueStore(primary, fallback)
        store.set("k", "v")
        assert primary.get("k").value == "v"
        assert fallback.get("k") is None
        assert store.using_fallback is False
    
    def test_switches_to_fallback_on_storage_error(self):
        primary = Mock()
        primary.set.side_effect = StorageError("disk full")
        fallback = InMemoryKeyValueStore()
        store = FallbackKeyValueStore(primary, fallback)
        
        store.set("k", "v")
        assert store.using_fallback is True
        assert fallback.get("k").value == "v"
        
        # Later calls skip the primary entirely
        assert store.get("k").value == "v"
        primary.get.assert_not_called()
    
    def test_other_errors_propagate(self):
        primary = Mock()
        primary.get.side_effect = RuntimeError("bug")
        store = FallbackKeyValueStore(primary, InMemoryKeyValueStore())
        with pytest.raises(RuntimeError):
            store.get("k")


class TestHelpers:
    """Test bulk helpers."""
    
    def test_load_values(self):
        store = InMemoryKeyValueStore({"session:1": "a", "session:2": "b", "generation:1": "c"})
        assert load_values(store, "session:") == ["a", "b"]
    
    def test_reset_all_data_only_removes_records(self):
        store = InMemoryKeyValueStore({
            "session:1": "{}",
            "generation:1": "{}",
            "generation:2": "{}",
            "sessionId": "session_1",
        })
        assert reset_all_data(store) == 3
        assert store.list() == ["sessionId"]
    
    def test_get_store_is_cached_per_path(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path_a = os.path.join(temp_dir, "a.db")
            path_b = os.path.join(temp_dir, "b.db")
            assert get_store(path_a) is get_store(path_a)
            assert get_store(path_a) is not get_store(path_b)


class TestRecordSerialization:
    """Test JSON encoding of records."""
    
    def test_session_record_uses_camel_case(self):
        record = SessionRecord(
            session_id="session_1",
            timestamp="2024-01-01T12:00:00+00:00",
            referrer="linkedin.com",
            user_agent="prd-forge/0.1.0",
            screen_size="120x40"
        )
        data = json.loads(record.to_json())
        assert data["sessionId"] == "session_1"
        assert data["screenSize"] == "120x40"
        assert record.key == "session:session_1"
        assert SessionRecord.from_dict(data) == record
    
    def test_missing_referrer_reads_as_direct(self):
        assert SessionRecord.from_dict({"sessionId": "s"}).referrer == "Direct"
    
    def test_rich_generation_record(self):
        record = GenerationRecord(
            id="gen_1",
            session_id="session_1",
            type="prd",
            template="comprehensive",
            timestamp="2024-01-01T12:00:00+00:00",
            business_goal="revenue",
            input_length=10,
            output_length=20,
            usage=TokenUsage(input_tokens=100, output_tokens=200),
            cost=0.0033,
            model="claude-3-5-sonnet-20241022",
            validation_score=1
        )
        data = json.loads(record.to_json())
        assert data["usage"] == {"input_tokens": 100, "output_tokens": 200}
        assert data["validationScore"] == 1
        assert data["businessGoal"] == "revenue"
        assert GenerationRecord.from_dict(data) == record
    
    def test_legacy_generation_record(self):
        """Records without usage or cost still load."""
        record = GenerationRecord.from_dict({
            "id": "gen_1",
            "sessionId": "s",
            "type": "user_story",
            "template": "scrum",
            "inputLength": 40,
            "outputLength": 400,
            "timestamp": "2024-01-01T12:00:00.000Z",
        })
        assert record.usage is None
        assert record.cost is None
        assert record.success is True
        assert record.input_length == 40
    
    def test_success_defaults_true_unless_false(self):
        assert GenerationRecord.from_dict({"success": None}).success is True
        assert GenerationRecord.from_dict({"success": False}).success is False
    
    def test_decode_record_rejects_non_objects(self):
        with pytest.raises(ValueError):
            decode_record("[1, 2]")
        with pytest.raises(ValueError):
            decode_record("not json")


class TestLocalFallbackPersistence:
    """Test that records written to the local fallback survive restarts."""
    
    def setup_method(self):
        """Set up test environment."""
        from prd_forge.storage import repository
        self.repository = repository
        self.temp_dir = tempfile.mkdtemp()
        # A directory cannot be opened as a SQLite database
        self.broken_path = os.path.join(self.temp_dir, "shared")
        os.mkdir(self.broken_path)
        self.local_path = os.path.join(self.temp_dir, "local.db")
    
    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        self.repository._stores.clear()
        shutil.rmtree(self.temp_dir, ignore_errors=True)
    
    def _new_process(self, local_path=None):
        """Build the objects one CLI invocation builds, with a fresh store cache."""
        from prd_forge.core.limits import FreeTierGate
        from prd_forge.core.recorder import AnalyticsRecorder, UsageCounter
        from prd_forge.core.session import SessionContext
        
        local_path = local_path or self.local_path
        self.repository._stores.clear()
        store = get_store(self.broken_path, fallback_path=local_path)
        context = SessionContext(SqliteKeyValueStore(self.local_path))
        counter = UsageCounter(store, context)
        return store, AnalyticsRecorder(store, context), counter, FreeTierGate(counter=counter)
    
    def test_counts_survive_restarts(self):
        """Test the free tier still closes when the shared store is down."""
        from prd_forge.core.recorder import GenerationData
        
        decisions = []
        for _ in range(7):
            store, recorder, counter, gate = self._new_process()
            decision = gate.check("user_story")
            decisions.append(decision.allowed)
            if decision.allowed:
                recorder.record_generation(GenerationData(type="user_story", template="scrum"))
        
        assert decisions == [True] * 5 + [False] * 2
        assert store.using_fallback is True
        assert counter.count_by_type("user_story").count == 5
    
    def test_unusable_fallback_fails_closed(self):
        """Test a count error refuses generation when both stores fail."""
        store, _, _, gate = self._new_process(local_path=self.broken_path)
        
        decision = gate.check("prd")
        
        assert decision.allowed is False
        assert "could not be verified" in decision.message
    
    def test_get_store_without_fallback_path_uses_memory(self):
        store = get_store(self.broken_path)
        assert isinstance(store.fallback, InMemoryKeyValueStore)
    
    def test_get_store_is_cached_per_path_pair(self):
        assert get_store(self.broken_path, self.local_path) is get_store(self.broken_path, self.local_path)
        assert get_store(self.broken_path, self.local_path) is not get_store(self.broken_path)
