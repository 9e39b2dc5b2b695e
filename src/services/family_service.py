"""
Family accounts

Creating a family, finding one by join code, the parent PIN, and the contact
addresses the join code gets emailed to.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging
import random
import uuid

from src.config.limits import JOIN_CODE_ATTEMPTS, MAX_FAMILY_EMAILS
from src.models import Family
from src.services import paths
from src.services.clock import Clock
from src.services.errors import InvalidInputError, MailDeliveryError
from src.services.join_code import generate_join_code, is_well_formed
from src.services.pin import check_pin, hash_pin
from src.services.store import DocumentStore
from src.services.validation_service import validate_email, validate_join_code, validate_pin

logger = logging.getLogger(__name__)


def _created_timestamp(record: Dict[str, Any]) -> float:
    """createdAt as a POSIX timestamp; records without a readable one sort last."""
    try:
        value = str(record["createdAt"])
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return datetime.fromisoformat(value).timestamp()
    except (KeyError, ValueError):
        return float("inf")


class FamilyAccountService:
    """Owns the family records and the join-code namespace."""

    def __init__(self, store: DocumentStore, mailer=None, clock: Optional[Clock] = None,
                 app_logger=None, rng: Optional[random.Random] = None):
        """
        Args:
            store: Shared document store
            mailer: Optional MailService for join-code emails
            clock: Clock for timestamps
            app_logger: Optional SpellingLogger for terminal events
            rng: Random source for join codes (tests pass a seeded Random)
        """
        self.store = store
        self.mailer = mailer
        self.clock = clock or Clock()
        self.app_logger = app_logger
        self.rng = rng

    # ========================================================================
    # Create / join / get
    # ========================================================================

    async def create_family(self, email: Optional[str] = None) -> Tuple[str, str]:
        """
        Create a family with no PIN and return (family_id, join_code).

        When an email is given the join code is mailed to it. A failed email
        is recorded on the family and never fails creation.
        """
        email = validate_email(email) if email and email.strip() else None

        family_id = str(uuid.uuid4())
        join_code = await self._allocate_join_code()

        family = Family(
            id=family_id,
            join_code=join_code,
            emails=[email] if email else [],
            created_at=self.clock.now(),
        )
        await self.store.set(paths.family(family_id), family.to_record())

        if self.app_logger:
            self.app_logger.family_created(family_id, join_code, with_email=bool(email))

        if email and self.mailer:
            try:
                await self._deliver(family_id, email, join_code)
            except MailDeliveryError as e:
                # Recorded on the family by _deliver; the family itself is fine
                logger.info(f"Family {family_id} created without the join code email: {e}")

        return family_id, join_code

    async def _allocate_join_code(self) -> str:
        for _ in range(JOIN_CODE_ATTEMPTS):
            code = generate_join_code(self.rng)
            if not await self.store.find(paths.FAMILIES, "joinCode", code):
                return code
            logger.warning(f"Join code {code} already in use, drawing another")
        logger.warning(f"No free join code after {JOIN_CODE_ATTEMPTS} draws; reusing {code}")
        return code

    async def join_family(self, code: str) -> Optional[str]:
        """
        Family id for a join code, or None if no family uses it.

        Matching ignores case and surrounding whitespace. If two families
        ever share a code, the oldest one wins.
        """
        normalized = validate_join_code(code)
        if not is_well_formed(normalized):
            # Never drawn, so no family can have it
            return None
        matches = await self.store.find(paths.FAMILIES, "joinCode", normalized)
        if not matches:
            return None

        if len(matches) > 1:
            logger.warning(f"Join code {normalized} matches {len(matches)} families; using the oldest")
        family_id = min(matches, key=lambda key: (_created_timestamp(matches[key]), key))

        if self.app_logger:
            self.app_logger.family_joined(family_id)
        return family_id

    async def get_family(self, family_id: str) -> Optional[Family]:
        """The family record, or None if it does not exist."""
        data = await self.store.get(paths.family(family_id))
        if not data:
            return None
        return Family.from_record(family_id, data)

    async def _modify(self, family_id: str, change) -> bool:
        """Apply change(record_dict) to an existing family atomically. False if missing."""
        found = {"value": False}

        def _apply(current: Optional[Dict[str, Any]]):
            if current is None:
                found["value"] = False
                return None
            found["value"] = True
            updated = dict(current)
            change(updated)
            return updated

        await self.store.transaction(paths.family(family_id), _apply)
        return found["value"]

    # ========================================================================
    # PIN
    # ========================================================================

    async def has_pin(self, family_id: str) -> bool:
        family = await self.get_family(family_id)
        return bool(family and family.has_pin)

    async def set_pin(self, family_id: str, pin: str, enforce_format: bool = True) -> bool:
        """
        Store a salted hash of the PIN. False if the family does not exist.

        enforce_format=False accepts any non-empty PIN (device-local PINs were
        never validated and are imported as they are).
        """
        pin = validate_pin(pin) if enforce_format else (pin or "").strip()
        if not pin:
            raise InvalidInputError("PIN cannot be empty")
        pin_hash, salt = hash_pin(pin)

        def _change(record: Dict[str, Any]):
            record["pinHash"] = pin_hash
            record["pinSalt"] = salt
            record.pop("pin", None)

        return await self._modify(family_id, _change)

    async def clear_pin(self, family_id: str) -> bool:
        """Remove the PIN so admin actions are no longer gated."""
        def _change(record: Dict[str, Any]):
            for key in ("pin", "pinHash", "pinSalt"):
                record.pop(key, None)

        return await self._modify(family_id, _change)

    async def verify_pin(self, family_id: str, candidate: str) -> bool:
        """
        True if no PIN is set or the candidate matches.

        A legacy plaintext PIN is compared directly and then replaced by a hash.
        """
        family = await self.get_family(family_id)
        if not family or not family.has_pin:
            return True

        candidate = (candidate or "").strip()
        if family.pin_hash and family.pin_salt:
            return check_pin(candidate, family.pin_hash, family.pin_salt)

        if family.pin != candidate:
            return False
        pin_hash, salt = hash_pin(candidate)

        def _upgrade(record: Dict[str, Any]):
            record["pinHash"] = pin_hash
            record["pinSalt"] = salt
            record.pop("pin", None)

        await self._modify(family_id, _upgrade)
        return True

    # ========================================================================
    # Contact emails
    # ========================================================================

    async def get_family_emails(self, family_id: str) -> List[str]:
        family = await self.get_family(family_id)
        return family.contact_emails if family else []

    async def add_family_email(self, family_id: str, email: str) -> bool:
        """Add an address (no duplicates). False if the family does not exist."""
        email = validate_email(email)
        current = await self.get_family_emails(family_id)
        if email not in current and len(current) >= MAX_FAMILY_EMAILS:
            raise InvalidInputError(f"A family can have at most {MAX_FAMILY_EMAILS} email addresses")

        def _change(record: Dict[str, Any]):
            emails = list(record.get("emails") or ([record["email"]] if record.get("email") else []))
            if email not in emails:
                emails.append(email)
            record["emails"] = emails

        return await self._modify(family_id, _change)

    async def remove_family_email(self, family_id: str, email: str) -> bool:
        """Remove an address. False if the family does not exist."""
        email = (email or "").strip()

        def _change(record: Dict[str, Any]):
            emails = list(record.get("emails") or ([record["email"]] if record.get("email") else []))
            record["emails"] = [e for e in emails if e != email]
            if record.get("email") == email:
                record.pop("email")

        return await self._modify(family_id, _change)

    async def get_email_delivery_status(self, family_id: str) -> Optional[Dict[str, Any]]:
        family = await self.get_family(family_id)
        if not family:
            return None
        return {
            "emails": family.contact_emails,
            "status": family.email_delivery_status,
            "lastSentAt": family.email_last_sent_at.isoformat() if family.email_last_sent_at else None,
            "error": family.email_error,
        }

    async def resend_join_code(self, family_id: str, email: str) -> Optional[Dict[str, Any]]:
        """
        Send the join code again, to an existing or a new address.

        Returns None if the family does not exist. Raises MailDeliveryError
        (after recording the failure) if the email could not be sent.
        """
        email = validate_email(email)
        if not self.mailer:
            raise MailDeliveryError("No mail service configured")

        family = await self.get_family(family_id)
        if not family:
            return None

        await self._deliver(family_id, email, family.join_code)
        return {"success": True, "email": email}

    async def _deliver(self, family_id: str, email: str, join_code: str) -> None:
        try:
            await self.mailer.send_join_code(email=email, join_code=join_code, family_id=family_id)
        except MailDeliveryError as e:
            logger.error(f"Join code email for family {family_id} failed: {e}")
            await self._record_delivery(family_id, "failed", str(e))
            raise
        await self._record_delivery(family_id, "success")

    async def _record_delivery(self, family_id: str, status: str, error: Optional[str] = None) -> None:
        sent_at = self.clock.now()

        def _change(record: Dict[str, Any]):
            record["emailDeliveryStatus"] = status
            record["emailLastSentAt"] = sent_at.isoformat()
            if error:
                record["emailError"] = error
            else:
                record.pop("emailError", None)

        await self._modify(family_id, _change)
