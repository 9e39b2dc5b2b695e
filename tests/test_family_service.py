"""
Unit tests for FamilyAccountService - families, join codes, PIN and contact emails.

Runs against the in-memory document store; the mailer is a mock.

Run with: python -m pytest tests/test_family_service.py -v
"""

import asyncio
import logging
import random
import sys
from datetime import date
from pathlib import Path
from unittest import mock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config.limits import MAX_FAMILY_EMAILS
from src.services import paths
from src.services.clock import FixedClock
from src.services.errors import InvalidInputError, MailDeliveryError
from src.services.family_service import FamilyAccountService
from src.services.store import InMemoryDocumentStore


class TestCreateAndJoin:
    """Join-code round trip and not-found handling"""

    def setup_method(self):
        self.store = InMemoryDocumentStore()
        self.clock = FixedClock(date(2026, 3, 10))
        self.service = FamilyAccountService(self.store, clock=self.clock, rng=random.Random(3))

    def test_create_family_without_pin(self):
        family_id, join_code = asyncio.run(self.service.create_family())

        family = asyncio.run(self.service.get_family(family_id))
        assert family.id == family_id
        assert family.join_code == join_code
        assert not family.has_pin
        assert family.contact_emails == []
        assert family.created_at == self.clock.now()

    def test_join_round_trip(self):
        family_id, join_code = asyncio.run(self.service.create_family())
        assert asyncio.run(self.service.join_family(join_code)) == family_id

    def test_join_ignores_case_and_whitespace(self):
        family_id, join_code = asyncio.run(self.service.create_family())
        assert asyncio.run(self.service.join_family(f"  {join_code.lower()} ")) == family_id

    def test_join_unknown_code_returns_none(self):
        with mock.patch("src.services.family_service.generate_join_code", return_value="YYYYYY"):
            asyncio.run(self.service.create_family())
        assert asyncio.run(self.service.join_family("ZZZZZZ")) is None

    def test_join_code_with_unused_characters_is_not_found(self):
        asyncio.run(self.service.create_family())
        assert asyncio.run(self.service.join_family("Q7K2M0")) is None
        assert asyncio.run(self.service.join_family("q7k2m1")) is None

    def test_join_malformed_code_is_validation_error(self):
        with pytest.raises(InvalidInputError):
            asyncio.run(self.service.join_family("AB"))

    def test_get_missing_family_returns_none(self):
        assert asyncio.run(self.service.get_family("nope")) is None

    def test_create_with_email_adds_contact(self):
        family_id, _ = asyncio.run(self.service.create_family("  parent@gmail.com "))
        assert asyncio.run(self.service.get_family_emails(family_id)) == ["parent@gmail.com"]

    def test_invalid_email_rejected_before_any_write(self):
        with pytest.raises(InvalidInputError):
            asyncio.run(self.service.create_family("not-an-email"))
        assert asyncio.run(self.store.list(paths.FAMILIES)) == {}

    def test_taken_code_is_redrawn(self):
        with mock.patch(
            "src.services.family_service.generate_join_code",
            side_effect=["AAAAAA", "AAAAAA", "BBBBBB"],
        ):
            _, first = asyncio.run(self.service.create_family())
            _, second = asyncio.run(self.service.create_family())

        assert first == "AAAAAA"
        assert second == "BBBBBB"

    def test_shared_code_resolves_to_oldest_family(self):
        asyncio.run(self.store.set(paths.family("newer"), {
            "joinCode": "CCCCCC", "emails": [], "createdAt": "2026-02-01T10:00:00",
        }))
        asyncio.run(self.store.set(paths.family("older"), {
            "joinCode": "CCCCCC", "emails": [], "createdAt": "2026-01-01T10:00:00",
        }))
        assert asyncio.run(self.service.join_family("cccccc")) == "older"

    def test_shared_code_compares_actual_creation_times(self):
        # 11:00+05:00 is 06:00 UTC, earlier than 10:00 UTC
        asyncio.run(self.store.set(paths.family("utc"), {
            "joinCode": "DDDDDD", "emails": [], "createdAt": "2026-01-01T10:00:00Z",
        }))
        asyncio.run(self.store.set(paths.family("plus-five"), {
            "joinCode": "DDDDDD", "emails": [], "createdAt": "2026-01-01T11:00:00+05:00",
        }))
        asyncio.run(self.store.set(paths.family("undated"), {"joinCode": "DDDDDD", "emails": []}))
        assert asyncio.run(self.service.join_family("DDDDDD")) == "plus-five"

    def test_public_view_has_no_pin_material(self):
        family_id, join_code = asyncio.run(self.service.create_family())
        asyncio.run(self.service.set_pin(family_id, "2468"))

        view = asyncio.run(self.service.get_family(family_id)).public_view()
        assert view["joinCode"] == join_code
        assert view["hasPin"] is True
        assert not {"pin", "pinHash", "pinSalt"} & set(view)


class TestPin:
    """Salted PIN storage and the legacy plaintext upgrade"""

    def setup_method(self):
        self.store = InMemoryDocumentStore()
        self.service = FamilyAccountService(self.store, clock=FixedClock(date(2026, 3, 10)))
        self.family_id, _ = asyncio.run(self.service.create_family())

    def _record(self):
        return asyncio.run(self.store.get(paths.family(self.family_id)))

    def test_no_pin_verifies_anything(self):
        assert not asyncio.run(self.service.has_pin(self.family_id))
        assert asyncio.run(self.service.verify_pin(self.family_id, ""))

    def test_pin_is_stored_hashed(self):
        assert asyncio.run(self.service.set_pin(self.family_id, "1234"))

        record = self._record()
        assert "pin" not in record
        assert record["pinHash"] != "1234"
        assert record["pinSalt"]
        assert asyncio.run(self.service.verify_pin(self.family_id, "1234"))
        assert not asyncio.run(self.service.verify_pin(self.family_id, "4321"))

    def test_same_pin_gets_different_salts(self):
        other_id, _ = asyncio.run(self.service.create_family())
        asyncio.run(self.service.set_pin(self.family_id, "1234"))
        asyncio.run(self.service.set_pin(other_id, "1234"))

        other = asyncio.run(self.store.get(paths.family(other_id)))
        assert other["pinSalt"] != self._record()["pinSalt"]
        assert other["pinHash"] != self._record()["pinHash"]

    def test_legacy_plaintext_pin_upgraded_on_success(self):
        asyncio.run(self.store.update(paths.family(self.family_id), {"pin": "5555"}))
        assert asyncio.run(self.service.has_pin(self.family_id))

        assert not asyncio.run(self.service.verify_pin(self.family_id, "1111"))
        assert self._record()["pin"] == "5555"

        assert asyncio.run(self.service.verify_pin(self.family_id, "5555"))
        record = self._record()
        assert "pin" not in record
        assert record["pinHash"]
        assert asyncio.run(self.service.verify_pin(self.family_id, "5555"))

    @pytest.mark.parametrize("bad", ["", "12", "12ab", "1234567890123"])
    def test_malformed_pin_rejected(self, bad):
        with pytest.raises(InvalidInputError):
            asyncio.run(self.service.set_pin(self.family_id, bad))
        assert not asyncio.run(self.service.has_pin(self.family_id))

    def test_unchecked_format_still_needs_a_value(self):
        assert asyncio.run(self.service.set_pin(self.family_id, "12", enforce_format=False))
        assert asyncio.run(self.service.verify_pin(self.family_id, "12"))
        with pytest.raises(InvalidInputError):
            asyncio.run(self.service.set_pin(self.family_id, "  ", enforce_format=False))

    def test_clear_pin(self):
        asyncio.run(self.service.set_pin(self.family_id, "1234"))
        assert asyncio.run(self.service.clear_pin(self.family_id))
        assert not asyncio.run(self.service.has_pin(self.family_id))

    def test_set_pin_on_missing_family(self):
        assert asyncio.run(self.service.set_pin("missing", "1234")) is False
        assert asyncio.run(self.store.get(paths.family("missing"))) is None


class TestContactEmails:

    def setup_method(self):
        self.store = InMemoryDocumentStore()
        self.service = FamilyAccountService(self.store, clock=FixedClock(date(2026, 3, 10)))
        self.family_id, _ = asyncio.run(self.service.create_family("mum@gmail.com"))

    def test_add_is_a_set_union(self):
        asyncio.run(self.service.add_family_email(self.family_id, "dad@gmail.com"))
        asyncio.run(self.service.add_family_email(self.family_id, "dad@gmail.com"))
        assert asyncio.run(self.service.get_family_emails(self.family_id)) == ["mum@gmail.com", "dad@gmail.com"]

    def test_remove(self):
        asyncio.run(self.service.remove_family_email(self.family_id, "mum@gmail.com"))
        assert asyncio.run(self.service.get_family_emails(self.family_id)) == []

    def test_legacy_single_email_field(self):
        asyncio.run(self.store.update(paths.family(self.family_id), {"emails": None, "email": "old@gmail.com"}))
        assert asyncio.run(self.service.get_family_emails(self.family_id)) == ["old@gmail.com"]

        asyncio.run(self.service.add_family_email(self.family_id, "new@gmail.com"))
        assert asyncio.run(self.service.get_family_emails(self.family_id)) == ["old@gmail.com", "new@gmail.com"]

    def test_limit(self):
        for i in range(MAX_FAMILY_EMAILS - 1):
            asyncio.run(self.service.add_family_email(self.family_id, f"p{i}@gmail.com"))
        with pytest.raises(InvalidInputError):
            asyncio.run(self.service.add_family_email(self.family_id, "onemore@gmail.com"))

    def test_invalid_address(self):
        with pytest.raises(InvalidInputError):
            asyncio.run(self.service.add_family_email(self.family_id, "nope"))

    def test_missing_family(self):
        assert asyncio.run(self.service.get_family_emails("missing")) == []
        assert asyncio.run(self.service.add_family_email("missing", "a@gmail.com")) is False
        assert asyncio.run(self.service.get_email_delivery_status("missing")) is None


class TestJoinCodeEmail:
    """Delivery bookkeeping around the mail service"""

    def setup_method(self):
        self.store = InMemoryDocumentStore()
        self.clock = FixedClock(date(2026, 3, 10))
        self.mailer = mock.Mock()
        self.mailer.send_join_code = mock.AsyncMock(return_value={"success": True})
        self.service = FamilyAccountService(self.store, mailer=self.mailer, clock=self.clock)

    def test_create_sends_join_code(self):
        family_id, join_code = asyncio.run(self.service.create_family("parent@gmail.com"))

        self.mailer.send_join_code.assert_awaited_once_with(
            email="parent@gmail.com", join_code=join_code, family_id=family_id
        )
        status = asyncio.run(self.service.get_email_delivery_status(family_id))
        assert status["status"] == "success"
        assert status["lastSentAt"] == self.clock.now().isoformat()
        assert status["error"] is None

    def test_create_without_email_sends_nothing(self):
        asyncio.run(self.service.create_family())
        self.mailer.send_join_code.assert_not_awaited()

    def test_failed_email_never_fails_creation(self):
        self.mailer.send_join_code.side_effect = MailDeliveryError("smtp down")

        family_id, _ = asyncio.run(self.service.create_family("parent@gmail.com"))

        family = asyncio.run(self.service.get_family(family_id))
        assert family is not None
        assert family.email_delivery_status == "failed"
        assert family.email_error == "smtp down"

    def test_failed_email_is_logged(self, caplog):
        self.mailer.send_join_code.side_effect = MailDeliveryError("smtp down")

        with caplog.at_level(logging.INFO, logger="src.services.family_service"):
            family_id, _ = asyncio.run(self.service.create_family("parent@gmail.com"))

        assert any(
            r.levelno == logging.INFO and family_id in r.getMessage() and "smtp down" in r.getMessage()
            for r in caplog.records
        )

    def test_resend_records_success_and_clears_error(self):
        self.mailer.send_join_code.side_effect = MailDeliveryError("smtp down")
        family_id, join_code = asyncio.run(self.service.create_family("parent@gmail.com"))
        self.mailer.send_join_code.side_effect = None

        result = asyncio.run(self.service.resend_join_code(family_id, "other@gmail.com"))

        assert result == {"success": True, "email": "other@gmail.com"}
        self.mailer.send_join_code.assert_awaited_with(
            email="other@gmail.com", join_code=join_code, family_id=family_id
        )
        family = asyncio.run(self.service.get_family(family_id))
        assert family.email_delivery_status == "success"
        assert family.email_error is None

    def test_resend_failure_is_recorded_then_raised(self):
        family_id, _ = asyncio.run(self.service.create_family())
        self.mailer.send_join_code.side_effect = MailDeliveryError("quota")

        with pytest.raises(MailDeliveryError):
            asyncio.run(self.service.resend_join_code(family_id, "parent@gmail.com"))
        assert asyncio.run(self.service.get_family(family_id)).email_error == "quota"

    def test_resend_to_missing_family(self):
        assert asyncio.run(self.service.resend_join_code("missing", "parent@gmail.com")) is None
        self.mailer.send_join_code.assert_not_awaited()

    def test_resend_validates_email(self):
        family_id, _ = asyncio.run(self.service.create_family())
        with pytest.raises(InvalidInputError):
            asyncio.run(self.service.resend_join_code(family_id, "no-at-sign"))

    def test_resend_without_mailer(self):
        service = FamilyAccountService(self.store, clock=self.clock)
        family_id, _ = asyncio.run(service.create_family())
        with pytest.raises(MailDeliveryError):
            asyncio.run(service.resend_join_code(family_id, "parent@gmail.com"))
