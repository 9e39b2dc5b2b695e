"""
Unit tests for the parent PIN gate.

Run with: python -m pytest tests/test_access_gate.py -v
"""

import asyncio
import sys
from datetime import date
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.services.access_gate import AccessGate, GateState
from src.services.clock import FixedClock
from src.services.errors import IncorrectPinError
from src.services.family_service import FamilyAccountService
from src.services.store import InMemoryDocumentStore


class TestAccessGate:

    def setup_method(self):
        self.families = FamilyAccountService(InMemoryDocumentStore(), clock=FixedClock(date(2026, 3, 10)))
        self.family_id, _ = asyncio.run(self.families.create_family())
        self.gate = AccessGate(self.families, self.family_id)
        self.calls = []

    async def _action(self):
        self.calls.append("ran")
        return "done"

    def _lock(self, pin="2468"):
        asyncio.run(self.families.set_pin(self.family_id, pin))

    def test_no_pin_runs_immediately(self):
        assert asyncio.run(self.gate.state()) == GateState.UNLOCKED
        assert asyncio.run(self.gate.require(self._action)) == "done"
        assert self.calls == ["ran"]
        assert not self.gate.has_pending

    def test_pin_defers_action(self):
        self._lock()
        assert asyncio.run(self.gate.state()) == GateState.LOCKED

        assert asyncio.run(self.gate.require(self._action)) is None
        assert self.calls == []
        assert self.gate.has_pending

    def test_wrong_pin_never_runs_action(self):
        self._lock()
        asyncio.run(self.gate.require(self._action))

        with pytest.raises(IncorrectPinError):
            asyncio.run(self.gate.submit_pin("1111"))
        assert self.calls == []
        assert asyncio.run(self.gate.state()) == GateState.LOCKED
        assert self.gate.has_pending

    def test_correct_pin_runs_pending_action_once(self):
        self._lock()
        asyncio.run(self.gate.require(self._action))

        assert asyncio.run(self.gate.submit_pin("2468")) == "done"
        assert self.calls == ["ran"]
        assert not self.gate.has_pending
        assert asyncio.run(self.gate.state()) == GateState.UNLOCKED

    def test_unlocked_stays_unlocked_for_the_session(self):
        self._lock()
        asyncio.run(self.gate.submit_pin("2468"))

        asyncio.run(self.gate.require(self._action))
        asyncio.run(self.gate.require(self._action))
        assert self.calls == ["ran", "ran"]

    def test_retry_after_wrong_pin(self):
        self._lock()
        asyncio.run(self.gate.require(self._action))
        with pytest.raises(IncorrectPinError):
            asyncio.run(self.gate.submit_pin("0000"))

        assert asyncio.run(self.gate.submit_pin("2468")) == "done"
        assert self.calls == ["ran"]

    def test_new_request_replaces_pending_one(self):
        self._lock()
        other = []

        async def _other():
            other.append("ran")

        asyncio.run(self.gate.require(self._action))
        asyncio.run(self.gate.require(_other))
        asyncio.run(self.gate.submit_pin("2468"))

        assert self.calls == []
        assert other == ["ran"]

    def test_cancel_drops_pending(self):
        self._lock()
        asyncio.run(self.gate.require(self._action))
        self.gate.cancel()

        assert asyncio.run(self.gate.submit_pin("2468")) is None
        assert self.calls == []

    def test_gate_is_per_device(self):
        self._lock()
        asyncio.run(self.gate.submit_pin("2468"))

        other_device = AccessGate(self.families, self.family_id)
        assert asyncio.run(other_device.state()) == GateState.LOCKED

    def test_pin_set_elsewhere_locks_gate(self):
        assert asyncio.run(self.gate.state()) == GateState.UNLOCKED
        self._lock()
        assert asyncio.run(self.gate.state()) == GateState.LOCKED

    def test_change_pin_without_existing_pin(self):
        assert asyncio.run(self.gate.change_pin("1357")) is True
        assert asyncio.run(self.families.verify_pin(self.family_id, "1357"))
        assert asyncio.run(self.gate.state()) == GateState.UNLOCKED

    def test_change_pin_needs_current_pin(self):
        self._lock("2468")
        assert asyncio.run(self.gate.change_pin("1357")) is None
        assert asyncio.run(self.families.verify_pin(self.family_id, "2468"))

        assert asyncio.run(self.gate.submit_pin("2468")) is True
        assert asyncio.run(self.families.verify_pin(self.family_id, "1357"))
