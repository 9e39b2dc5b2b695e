"""
Family Account Models for Spelling Word Collector

This module implements the family-sync hierarchy:
- Family: the synced group of devices, found by its join code
- Profile: a named child inside a family (sessions and streaks hang off it)
- StreakRecord: consecutive-practice-day counter, one per (family, profile)

Records are persisted with camelCase field names (joinCode, createdAt, ...)
so devices already syncing against the store keep reading them. The document
key is the id and is never written inside the record itself.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import date, datetime


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class StoredRecord(BaseModel):
    """Base for anything kept as a document in the family store."""

    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )

    id: Optional[str] = Field(default=None, description="Document key (not stored in the record)")

    def to_record(self) -> Dict[str, Any]:
        """Serialize for the document store (camelCase, JSON-safe, no id)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})

    @classmethod
    def from_record(cls, key: str, data: Dict[str, Any]):
        """Build from a stored document and its key."""
        return cls.model_validate({**data, "id": key})


class MigrationMarker(BaseModel):
    """Where a migrated record came from (device batch + local id)."""

    model_config = ConfigDict(alias_generator=_to_camel, populate_by_name=True)

    batch_id: str
    source_id: str


# ============================================================================
# Family Model
# ============================================================================

class Family(StoredRecord):
    """
    Family - the account every synced device points at.

    The PIN is optional. When present it is kept as a salted hash
    (pin_hash + pin_salt). Older records may still carry a plaintext `pin`,
    which is accepted once and then replaced by a hash.
    """
    join_code: str = Field(..., description="6-character code used to join from another device")

    # Parent gate
    pin_hash: Optional[str] = None
    pin_salt: Optional[str] = None
    pin: Optional[str] = Field(default=None, description="Legacy plaintext PIN")

    # Contact addresses for the join-code email
    email: Optional[str] = Field(default=None, description="Legacy single contact address")
    emails: List[str] = Field(default_factory=list)

    # Join-code email bookkeeping
    email_delivery_status: Optional[str] = None  # "success" | "failed"
    email_last_sent_at: Optional[datetime] = None
    email_error: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def has_pin(self) -> bool:
        return bool(self.pin_hash or self.pin)

    @property
    def contact_emails(self) -> List[str]:
        """Contact list, falling back to the single legacy address."""
        if self.emails:
            return list(self.emails)
        if self.email:
            return [self.email]
        return []

    def public_view(self) -> Dict[str, Any]:
        """Family details safe to hand to any device (no PIN material)."""
        return {
            "id": self.id,
            "joinCode": self.join_code,
            "hasPin": self.has_pin,
            "emails": self.contact_emails,
            "emailDeliveryStatus": self.email_delivery_status,
            "emailLastSentAt": self.email_last_sent_at.isoformat() if self.email_last_sent_at else None,
            "createdAt": self.created_at.isoformat(),
        }


class FamilyCreate(BaseModel):
    """Request model for creating a family"""
    email: Optional[str] = Field(default=None, max_length=254)


class FamilyJoin(BaseModel):
    """Request model for joining a family by code"""
    code: str = Field(..., max_length=32)


class EmailRequest(BaseModel):
    """Request model for adding/removing/resending to a contact address"""
    email: str = Field(..., max_length=254)


class PinRequest(BaseModel):
    """Request model for setting or checking the parent PIN"""
    pin: str = Field(..., max_length=64)


# ============================================================================
# Profile Model
# ============================================================================

class Profile(StoredRecord):
    """
    Child profile - a named learner inside a family.

    Sessions and streaks reference the profile by id.
    """
    name: str
    created_at: datetime = Field(default_factory=datetime.now)
    migrated_from: Optional[MigrationMarker] = None


class ProfileCreate(BaseModel):
    """Request model for creating a profile"""
    name: str = Field(..., max_length=200)


# ============================================================================
# Streak Model
# ============================================================================

class StreakRecord(BaseModel):
    """
    Consecutive-day practice counter for one profile.

    last_date is a calendar date, never a timestamp.
    """
    model_config = ConfigDict(alias_generator=_to_camel, populate_by_name=True)

    count: int = Field(default=0, ge=0)
    last_date: Optional[date] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, data: Optional[Dict[str, Any]]) -> "StreakRecord":
        if not data:
            return cls()
        return cls.model_validate(data)
