"""
Unit tests for the device-local store (local-only mode and device pointers).

Run with: python -m pytest tests/test_local_store.py -v
"""

import asyncio
import json
import sys
from datetime import date
from pathlib import Path

import pytest
from pydantic import ValidationError

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.models import Session
from src.services.clock import FixedClock
from src.services.local_store import (
    FAMILY_ID_KEY,
    MIGRATION_BATCH_KEY,
    PROFILES_KEY,
    SESSIONS_KEY,
    DeviceState,
    JsonFileKeyValueStore,
    LocalSpellingStore,
    MemoryKeyValueStore,
)


def make_session() -> Session:
    return Session(words=["cat"], typed_words=["cat"])


class TestKeyValueStores:

    def test_memory_store_returns_copies(self):
        kv = MemoryKeyValueStore({"k": [1, 2]})
        value = kv.get("k")
        value.append(3)
        assert kv.get("k") == [1, 2]

    def test_json_file_persists_between_instances(self, tmp_path):
        path = tmp_path / "device.json"
        JsonFileKeyValueStore(str(path)).set("spelling-collector-pin", "1234")

        reopened = JsonFileKeyValueStore(str(path))
        assert reopened.get("spelling-collector-pin") == "1234"

        reopened.remove("spelling-collector-pin")
        assert JsonFileKeyValueStore(str(path)).get("spelling-collector-pin") is None

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "device.json"
        path.write_text("{not json", encoding="utf-8")

        kv = JsonFileKeyValueStore(str(path))
        assert kv.get(SESSIONS_KEY) is None

        kv.set(SESSIONS_KEY, [])
        assert json.loads(path.read_text(encoding="utf-8")) == {SESSIONS_KEY: []}


class TestDeviceState:

    def setup_method(self):
        self.kv = MemoryKeyValueStore()
        self.device = DeviceState(self.kv)

    def test_family_pointer(self):
        assert self.device.family_id is None
        self.device.set_family_id("family-1")
        assert self.kv.get(FAMILY_ID_KEY) == "family-1"
        self.device.set_family_id(None)
        assert self.device.family_id is None

    def test_migration_batch_id_is_stable(self):
        first = self.device.migration_batch_id()
        assert first == self.device.migration_batch_id()
        assert DeviceState(self.kv).migration_batch_id() == first
        assert self.kv.get(MIGRATION_BATCH_KEY) == first

    def test_migration_flag(self):
        assert not self.device.has_migrated()
        self.device.mark_migrated()
        assert self.device.has_migrated()

    def test_welcome_flag(self):
        assert not self.device.has_seen_welcome()
        self.device.dismiss_welcome()
        assert self.device.has_seen_welcome()


class TestLocalSpellingStore:

    def setup_method(self):
        self.kv = MemoryKeyValueStore()
        self.clock = FixedClock(date(2026, 3, 10))
        self.local = LocalSpellingStore(self.kv, clock=self.clock)

    def test_has_data(self):
        assert not self.local.has_data()
        self.local.device.dismiss_welcome()
        self.local.device.set_family_id("family-1")
        assert not self.local.has_data()

        self.local.set_pin("1234")
        assert self.local.has_data()

    def test_each_kind_of_data_counts(self):
        for populate in (
            lambda s: s.create_word_list("Week 1", ["cat"]),
            lambda s: s.create_profile("Ava"),
            lambda s: asyncio.run(s.record_session(make_session(), None)),
        ):
            local = LocalSpellingStore(MemoryKeyValueStore(), clock=self.clock)
            populate(local)
            assert local.has_data()

    def test_word_list_crud(self):
        word_list = self.local.create_word_list("Week 1", ["cat", " dog "], {"dog": "A dog."})
        assert self.local.load_word_lists()[0].words == ["cat", "dog"]

        updated = self.local.update_word_list(word_list.id, {"words": ["cat"]})
        assert updated.sentences == {}
        assert self.local.load_word_lists()[0].words == ["cat"]
        assert self.local.update_word_list("missing", {"name": "x"}) is None

        self.local.delete_word_list(word_list.id)
        assert self.local.load_word_lists() == []

    def test_anonymous_session_has_no_streak(self):
        assert asyncio.run(self.local.record_session(make_session(), None)) is None
        assert self.local.raw_streaks() == {}
        assert self.local.load_sessions()[0].profile_id is None

    def test_profile_session_counts_streak(self):
        ava = self.local.create_profile("Ava")
        assert asyncio.run(self.local.record_session(make_session(), ava.id)) == 1
        assert asyncio.run(self.local.record_session(make_session(), ava.id)) == 1
        self.clock.advance(days=1)
        assert asyncio.run(self.local.record_session(make_session(), ava.id)) == 2
        assert asyncio.run(self.local.get_streak(ava.id)) == 2

    def test_sessions_filtered_by_profile(self):
        asyncio.run(self.local.record_session(make_session(), "a"))
        asyncio.run(self.local.record_session(make_session(), "b"))
        assert len(self.local.load_sessions()) == 2
        assert len(self.local.load_sessions(profile_id="a")) == 1

    def test_legacy_sessions_without_ids(self):
        self.kv.set(SESSIONS_KEY, [
            {"words": ["cat"], "typedWords": ["kat"], "completedAt": "2026-01-05T09:00:00"},
            {"words": ["cat"], "typedWords": []},  # malformed, skipped
        ])
        sessions = self.local.load_sessions()
        assert [s.id for s in sessions] == ["local-0"]
        assert sessions[0].typed_words == ["kat"]

    def test_strict_load_raises_on_malformed_records(self):
        self.kv.set(SESSIONS_KEY, [{"words": ["cat"], "typedWords": []}])
        with pytest.raises(ValidationError):
            self.local.load_sessions(strict=True)
        assert self.local.load_sessions() == []

    def test_names_beyond_input_limits_still_load(self):
        self.kv.set(PROFILES_KEY, [{"id": "A", "name": "x" * 80}])
        assert [p.id for p in self.local.load_profiles(strict=True)] == ["A"]

    def test_plaintext_pin(self):
        assert self.local.verify_pin("anything")
        self.local.set_pin("12")
        assert self.local.verify_pin("12")
        assert not self.local.verify_pin("13")
        self.local.set_pin(None)
        assert self.local.get_pin() is None

    def test_delete_active_profile_clears_pointer(self):
        ava = self.local.create_profile("Ava")
        self.local.device.set_active_profile(ava)

        self.local.delete_profile(ava.id)

        assert self.local.device.active_profile is None
        assert self.local.get_profile(ava.id) is None
