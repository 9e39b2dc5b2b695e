"""
Device-local storage

Before a device belongs to a family it keeps everything on the device: word
lists, sessions, profiles, a plaintext PIN and streaks, each under a fixed
namespaced key. The same key-value store also holds small device pointers
(which family, which profile is active, whether migration already ran).
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import os
import tempfile
import uuid

from pydantic import ValidationError

from src.models import Profile, Session, WordList
from src.services.clock import Clock
from src.services.streaks import LocalStreakBackend, StreakEngine
from src.services.validation_service import (
    validate_name,
    validate_sentences,
    validate_words,
)

logger = logging.getLogger(__name__)

# Local data (copied into a family by migration)
LISTS_KEY = "spelling-collector-lists"
SESSIONS_KEY = "spelling-collector-sessions"
PIN_KEY = "spelling-collector-pin"
PROFILES_KEY = "spelling-collector-profiles"
STREAK_KEY = "spelling-collector-streak"

# Device pointers
ACTIVE_PROFILE_KEY = "spelling-collector-active-profile"
FAMILY_ID_KEY = "spelling-collector-family-id"
MIGRATION_DONE_KEY = "spelling-collector-migration-done"
MIGRATION_BATCH_KEY = "spelling-collector-migration-batch"
WELCOME_KEY = "spelling-collector-welcome-seen"


# ============================================================================
# Key-value stores
# ============================================================================

class LocalKeyValueStore(ABC):
    """get/set/remove of JSON values under string keys."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Stored value or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Forget a key (no error if absent)."""


class MemoryKeyValueStore(LocalKeyValueStore):
    """Key-value store that lives as long as the object."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so stored values behave like persisted ones
        self._data[key] = json.dumps(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore(LocalKeyValueStore):
    """
    Key-value store persisted to a single JSON file.

    An unreadable or corrupt file is treated as empty rather than fatal, the
    same way a browser treats garbage in local storage.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._data = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable device store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".device-", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return json.loads(json.dumps(value)) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value))
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()


# ============================================================================
# Device pointers
# ============================================================================

class DeviceState:
    """Small per-device pointers kept next to the local data."""

    def __init__(self, kv: LocalKeyValueStore):
        self.kv = kv

    # Family association

    @property
    def family_id(self) -> Optional[str]:
        return self.kv.get(FAMILY_ID_KEY)

    def set_family_id(self, family_id: Optional[str]) -> None:
        if family_id:
            self.kv.set(FAMILY_ID_KEY, family_id)
        else:
            self.kv.remove(FAMILY_ID_KEY)

    # Active profile

    @property
    def active_profile(self) -> Optional[Dict[str, Any]]:
        value = self.kv.get(ACTIVE_PROFILE_KEY)
        return value if isinstance(value, dict) and value.get("id") else None

    @property
    def active_profile_id(self) -> Optional[str]:
        active = self.active_profile
        return active["id"] if active else None

    def set_active_profile(self, profile: Optional[Profile]) -> None:
        if profile:
            self.kv.set(ACTIVE_PROFILE_KEY, {"id": profile.id, "name": profile.name})
        else:
            self.kv.remove(ACTIVE_PROFILE_KEY)

    def clear_active_profile_if(self, profile_id: str) -> bool:
        """Drop the active-profile pointer if it names profile_id."""
        if self.active_profile_id == profile_id:
            self.kv.remove(ACTIVE_PROFILE_KEY)
            return True
        return False

    # Migration bookkeeping

    def has_migrated(self) -> bool:
        return self.kv.get(MIGRATION_DONE_KEY) is True

    def mark_migrated(self) -> None:
        self.kv.set(MIGRATION_DONE_KEY, True)

    def migration_batch_id(self) -> str:
        """Batch id for this device's migration; created once and reused on retry."""
        batch_id = self.kv.get(MIGRATION_BATCH_KEY)
        if not batch_id:
            batch_id = uuid.uuid4().hex[:12]
            self.kv.set(MIGRATION_BATCH_KEY, batch_id)
        return batch_id

    # Welcome screen

    def has_seen_welcome(self) -> bool:
        return self.kv.get(WELCOME_KEY) is True

    def dismiss_welcome(self) -> None:
        self.kv.set(WELCOME_KEY, True)


# ============================================================================
# Local-only mode
# ============================================================================

class LocalSpellingStore:
    """
    Word lists, profiles, sessions, PIN and streaks for a device that has not
    joined a family. Records carry their own "id" field.
    """

    def __init__(self, kv: LocalKeyValueStore, clock: Optional[Clock] = None, logger=None):
        self.kv = kv
        self.clock = clock or Clock()
        self.logger = logger
        self.device = DeviceState(kv)
        self.streaks = StreakEngine(LocalStreakBackend(kv, STREAK_KEY), clock=self.clock, logger=logger)

    def _load_list(self, key: str) -> List[Dict[str, Any]]:
        value = self.kv.get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @staticmethod
    def _as_local(model) -> Dict[str, Any]:
        return {"id": model.id, **model.to_record()}

    @staticmethod
    def _parse(model, raw: Dict[str, Any], what: str, strict: bool):
        """
        Validate one stored record. Unreadable records are skipped with a
        warning, or raise ValidationError when strict (migration must not
        drop anything silently).
        """
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            if strict:
                raise
            logger.warning(f"Skipping malformed local {what}: {e}")
            return None

    def has_data(self) -> bool:
        """True if anything here would be worth copying into a family."""
        return bool(
            self.kv.get(LISTS_KEY) or self.kv.get(SESSIONS_KEY)
            or self.kv.get(PROFILES_KEY) or self.kv.get(PIN_KEY)
        )

    # Word lists

    def load_word_lists(self, strict: bool = False) -> List[WordList]:
        lists = []
        for raw in self._load_list(LISTS_KEY):
            word_list = self._parse(WordList, raw, "word list", strict)
            if word_list is not None:
                lists.append(word_list)
        return lists

    def create_word_list(self, name: str, words: List[str], sentences: Optional[Dict[str, str]] = None) -> WordList:
        words = validate_words(words)
        word_list = WordList(
            id=uuid.uuid4().hex,
            name=validate_name(name, "List name"),
            words=words,
            sentences=validate_sentences(sentences, words),
            created_at=self.clock.now(),
        )
        self.kv.set(LISTS_KEY, self._load_list(LISTS_KEY) + [self._as_local(word_list)])
        return word_list

    def update_word_list(self, list_id: str, updates: Dict[str, Any]) -> Optional[WordList]:
        raw_lists = self._load_list(LISTS_KEY)
        for index, raw in enumerate(raw_lists):
            if raw.get("id") != list_id:
                continue
            current = WordList.model_validate(raw)
            words = validate_words(updates["words"]) if "words" in updates else current.words
            sentences = updates.get("sentences", current.sentences)
            updated = current.model_copy(update={
                "name": validate_name(updates["name"], "List name") if "name" in updates else current.name,
                "words": words,
                "sentences": validate_sentences(sentences, words),
            })
            raw_lists[index] = self._as_local(updated)
            self.kv.set(LISTS_KEY, raw_lists)
            return updated
        return None

    def delete_word_list(self, list_id: str) -> None:
        self.kv.set(LISTS_KEY, [raw for raw in self._load_list(LISTS_KEY) if raw.get("id") != list_id])

    # Sessions

    def load_sessions(self, profile_id: Optional[str] = None, strict: bool = False) -> List[Session]:
        sessions = []
        for index, raw in enumerate(self._load_list(SESSIONS_KEY)):
            # Older sessions were stored without an id
            raw = {"id": f"local-{index}", **raw}
            session = self._parse(Session, raw, "session", strict)
            if session is None:
                continue
            if profile_id is None or session.profile_id == profile_id:
                sessions.append(session)
        return sessions

    async def record_session(self, session: Session, profile_id: Optional[str]) -> Optional[int]:
        """Append a finished session; credit the streak when it belongs to a profile."""
        stored = session.model_copy(update={
            "id": uuid.uuid4().hex,
            "profile_id": profile_id or None,
            "completed_at": self.clock.now(),
        })
        self.kv.set(SESSIONS_KEY, self._load_list(SESSIONS_KEY) + [self._as_local(stored)])
        if not profile_id:
            return None
        return await self.streaks.update(profile_id)

    # PIN (plaintext on the device; hashed once it reaches the family store)

    def get_pin(self) -> Optional[str]:
        return self.kv.get(PIN_KEY) or None

    def set_pin(self, pin: Optional[str]) -> None:
        if pin:
            self.kv.set(PIN_KEY, pin)
        else:
            self.kv.remove(PIN_KEY)

    def verify_pin(self, candidate: str) -> bool:
        stored = self.get_pin()
        return not stored or stored == candidate

    # Profiles

    def load_profiles(self, strict: bool = False) -> List[Profile]:
        profiles = []
        for raw in self._load_list(PROFILES_KEY):
            profile = self._parse(Profile, raw, "profile", strict)
            if profile is not None:
                profiles.append(profile)
        return sorted(profiles, key=lambda p: p.created_at.timestamp())

    def create_profile(self, name: str) -> Profile:
        profile = Profile(id=uuid.uuid4().hex, name=validate_name(name), created_at=self.clock.now())
        self.kv.set(PROFILES_KEY, self._load_list(PROFILES_KEY) + [self._as_local(profile)])
        return profile

    def delete_profile(self, profile_id: str) -> None:
        remaining = [raw for raw in self._load_list(PROFILES_KEY) if raw.get("id") != profile_id]
        self.kv.set(PROFILES_KEY, remaining)
        self.device.clear_active_profile_if(profile_id)

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        for profile in self.load_profiles():
            if profile.id == profile_id:
                return profile
        return None

    # Streaks

    async def get_streak(self, profile_id: str) -> int:
        return await self.streaks.read(profile_id)

    def raw_streaks(self) -> Dict[str, Dict[str, Any]]:
        """Stored streak records keyed by local profile id."""
        data = self.kv.get(STREAK_KEY)
        return data if isinstance(data, dict) else {}
