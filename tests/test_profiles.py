"""
Unit tests for ProfileStore and WordListStore.

Run with: python -m pytest tests/test_profiles.py -v
"""

import asyncio
import sys
from datetime import date
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.services import paths
from src.services.clock import FixedClock
from src.services.errors import InvalidInputError
from src.services.local_store import DeviceState, MemoryKeyValueStore
from src.services.profile_service import ProfileStore
from src.services.store import InMemoryDocumentStore
from src.services.word_list_service import WordListStore

FAMILY = "family-1"


class TestProfileStore:

    def setup_method(self):
        self.store = InMemoryDocumentStore()
        self.clock = FixedClock(date(2026, 3, 10))
        self.device = DeviceState(MemoryKeyValueStore())
        self.profiles = ProfileStore(self.store, FAMILY, device=self.device, clock=self.clock)

    def test_create_and_list_oldest_first(self):
        for name in ["Zoe", "Ava", "Ben"]:
            asyncio.run(self.profiles.create(name))
            self.clock.advance(minutes=5)

        listed = asyncio.run(self.profiles.list())
        assert [p.name for p in listed] == ["Zoe", "Ava", "Ben"]
        assert all(p.id for p in listed)

    def test_name_is_trimmed(self):
        profile = asyncio.run(self.profiles.create("  Ava  "))
        assert profile.name == "Ava"
        assert asyncio.run(self.profiles.get(profile.id)).name == "Ava"

    @pytest.mark.parametrize("bad", ["", "   ", "x" * 51])
    def test_invalid_names(self, bad):
        with pytest.raises(InvalidInputError):
            asyncio.run(self.profiles.create(bad))
        assert asyncio.run(self.profiles.list()) == []

    def test_delete_active_profile_clears_pointer(self):
        ava = asyncio.run(self.profiles.create("Ava"))
        self.device.set_active_profile(ava)

        asyncio.run(self.profiles.delete(ava.id))

        assert self.device.active_profile is None
        assert asyncio.run(self.profiles.get(ava.id)) is None

    def test_delete_other_profile_keeps_pointer(self):
        ava = asyncio.run(self.profiles.create("Ava"))
        ben = asyncio.run(self.profiles.create("Ben"))
        self.device.set_active_profile(ava)

        asyncio.run(self.profiles.delete(ben.id))

        assert self.device.active_profile_id == ava.id
        assert [p.name for p in asyncio.run(self.profiles.list())] == ["Ava"]

    def test_profiles_scoped_to_family(self):
        asyncio.run(self.profiles.create("Ava"))
        other = ProfileStore(self.store, "family-2", clock=self.clock)
        assert asyncio.run(other.list()) == []


class TestWordListStore:

    def setup_method(self):
        self.store = InMemoryDocumentStore()
        self.clock = FixedClock(date(2026, 3, 10))
        self.lists = WordListStore(self.store, FAMILY, clock=self.clock)

    def test_create_cleans_words_and_sentences(self):
        word_list = asyncio.run(self.lists.create(
            " Week 3 ",
            [" because ", "", "friend", "   "],
            {"friend": " My friend reads. ", "castle": "Not on the list."},
        ))

        assert word_list.name == "Week 3"
        assert word_list.words == ["because", "friend"]
        assert word_list.sentences == {"friend": "My friend reads."}

        stored = asyncio.run(self.store.get(paths.word_list(FAMILY, word_list.id)))
        assert stored["words"] == ["because", "friend"]
        assert "id" not in stored

    def test_duplicates_are_kept(self):
        word_list = asyncio.run(self.lists.create("Doubles", ["see", "see"]))
        assert word_list.words == ["see", "see"]

    def test_empty_list_rejected(self):
        with pytest.raises(InvalidInputError):
            asyncio.run(self.lists.create("Empty", [" ", ""]))

    def test_load_newest_first(self):
        for name in ["first", "second", "third"]:
            asyncio.run(self.lists.create(name, ["cat"]))
            self.clock.advance(minutes=1)
        assert [wl.name for wl in asyncio.run(self.lists.load())] == ["third", "second", "first"]

    def test_update_drops_sentences_for_removed_words(self):
        word_list = asyncio.run(self.lists.create("Week 3", ["cat", "dog"], {"cat": "A cat.", "dog": "A dog."}))

        updated = asyncio.run(self.lists.update(word_list.id, {"words": ["dog", "bird"]}))

        assert updated.words == ["dog", "bird"]
        assert updated.sentences == {"dog": "A dog."}
        reloaded = asyncio.run(self.lists.get(word_list.id))
        assert reloaded.sentences == {"dog": "A dog."}
        assert reloaded.name == "Week 3"

    def test_update_name_only(self):
        word_list = asyncio.run(self.lists.create("Week 3", ["cat"]))
        updated = asyncio.run(self.lists.update(word_list.id, {"name": "Week 4"}))
        assert updated.name == "Week 4"
        assert updated.words == ["cat"]

    def test_update_missing_list(self):
        assert asyncio.run(self.lists.update("missing", {"name": "x"})) is None

    def test_delete(self):
        word_list = asyncio.run(self.lists.create("Week 3", ["cat"]))
        asyncio.run(self.lists.delete(word_list.id))
        assert asyncio.run(self.lists.load()) == []
