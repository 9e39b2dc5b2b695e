"""
Unit tests for the Firebase document store adapter.

The firebase_admin database reference is replaced by a MagicMock, so these
tests check key encoding and the mapping onto Reference calls only.

Run with: python -m pytest tests/test_firebase_store.py -v
"""

import asyncio
import sys
from pathlib import Path
from unittest import mock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.services.errors import StoreUnavailableError
from src.services.firebase import (
    FirebaseStore,
    decode_firebase_data,
    decode_firebase_key,
    encode_firebase_data,
    encode_firebase_key,
)


class TestKeyEncoding:

    def test_forbidden_characters_are_escaped(self):
        encoded = encode_firebase_key("Mr. #1 [a/b] $5")
        for ch in ".#[]/$":
            assert ch not in encoded
        assert decode_firebase_key(encoded) == "Mr. #1 [a/b] $5"

    def test_literal_percent_survives(self):
        assert decode_firebase_key(encode_firebase_key("100%2E")) == "100%2E"

    def test_nested_data(self):
        data = {"sentences": {"Mr.": "Mr. Fox is here."}, "words": ["Mr.", "St."], "": "dropped"}
        encoded = encode_firebase_data(data)
        assert encoded == {"sentences": {"Mr%2E": "Mr. Fox is here."}, "words": ["Mr.", "St."]}
        assert decode_firebase_data(encoded) == {"sentences": {"Mr.": "Mr. Fox is here."}, "words": ["Mr.", "St."]}


class TestFirebaseStore:

    def setup_method(self):
        self.store = FirebaseStore(database_url="https://example.firebaseio.com")
        self.store._initialized = True
        self.store.db = mock.MagicMock()
        self.ref = self.store.db.child.return_value

    def teardown_method(self):
        self.store.shutdown()

    def test_get_decodes_keys(self):
        self.ref.get.return_value = {"sentences": {"Mr%2E": "Hello Mr. Fox."}}

        data = asyncio.run(self.store.get("family_data/f1/wordLists/l1"))

        self.store.db.child.assert_called_with("family_data/f1/wordLists/l1")
        assert data == {"sentences": {"Mr.": "Hello Mr. Fox."}}

    def test_get_missing(self):
        self.ref.get.return_value = None
        assert asyncio.run(self.store.get("families/none")) is None

    def test_set_encodes_keys(self):
        asyncio.run(self.store.set("/family_data/f1/wordLists/l1/", {"sentences": {"Mr.": "Hi."}}))

        self.store.db.child.assert_called_with("family_data/f1/wordLists/l1")
        self.ref.set.assert_called_once_with({"sentences": {"Mr%2E": "Hi."}})

    def test_push_returns_generated_key(self):
        self.ref.push.return_value = mock.Mock(key="-Nabc123")
        assert asyncio.run(self.store.push("family_data/f1/sessions", {"words": []})) == "-Nabc123"

    def test_find_uses_child_query(self):
        query = self.ref.order_by_child.return_value.equal_to.return_value
        query.get.return_value = {"f1": {"joinCode": "Q7K2M9"}}

        result = asyncio.run(self.store.find("families", "joinCode", "Q7K2M9"))

        self.ref.order_by_child.assert_called_once_with("joinCode")
        self.ref.order_by_child.return_value.equal_to.assert_called_once_with("Q7K2M9")
        assert result == {"f1": {"joinCode": "Q7K2M9"}}

    def test_transaction_runs_function_on_current_value(self):
        def fake_transaction(fn):
            return fn({"count": 2, "lastDate": "2026-03-09"})

        self.ref.transaction.side_effect = fake_transaction

        committed = asyncio.run(self.store.transaction(
            "family_data/f1/streaks/p1",
            lambda current: {"count": current["count"] + 1, "lastDate": "2026-03-10"},
        ))
        assert committed == {"count": 3, "lastDate": "2026-03-10"}

    def test_sdk_errors_become_store_unavailable(self):
        self.ref.get.side_effect = ValueError("Invalid path")
        with pytest.raises(StoreUnavailableError):
            asyncio.run(self.store.get("families/x"))

    def test_use_before_initialize(self):
        store = FirebaseStore(database_url="https://example.firebaseio.com")
        try:
            with pytest.raises(StoreUnavailableError):
                asyncio.run(store.get("families/x"))
        finally:
            store.shutdown()

    def test_storage_logging(self):
        app_logger = mock.Mock()
        self.store.logger = app_logger
        self.ref.get.return_value = {"joinCode": "Q7K2M9"}

        asyncio.run(self.store.get("families/f1"))
        asyncio.run(self.store.delete("families/f1"))

        assert app_logger.storage_read.call_args.kwargs["path"] == "families/f1"
        assert app_logger.storage_operation.call_args.kwargs["operation"] == "delete"
