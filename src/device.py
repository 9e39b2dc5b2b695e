"""
One device's view of Spelling Word Collector.

Before joining a family everything lives in the device-local store. Creating
or joining a family points the device at the shared store and, the first time,
copies the local data across. After that sessions, profiles and streaks are
read and written through the family services.
"""

from typing import Optional, Tuple
import logging

from src.models import Profile, Session
from src.services.access_gate import AccessGate
from src.services.clock import Clock
from src.services.family_service import FamilyAccountService
from src.services.local_store import LocalKeyValueStore, LocalSpellingStore
from src.services.migration import MigrationReport, MigrationService
from src.services.profile_service import ProfileStore
from src.services.session_service import SessionRecorder
from src.services.store import DocumentStore
from src.services.word_list_service import WordListStore

logger = logging.getLogger(__name__)


class SpellingDevice:
    """Routes a device's reads and writes to its local store or its family."""

    def __init__(
        self,
        kv: LocalKeyValueStore,
        store: DocumentStore,
        families: Optional[FamilyAccountService] = None,
        clock: Optional[Clock] = None,
        logger=None
    ):
        """
        Args:
            kv: Device-local key-value store
            store: Shared document store
            families: FamilyAccountService (built over store if omitted)
            clock: Clock shared by streaks and timestamps
            logger: Optional SpellingLogger
        """
        self.clock = clock or Clock()
        self.logger = logger
        self.store = store
        self.families = families or FamilyAccountService(store, clock=self.clock, app_logger=logger)
        self.local = LocalSpellingStore(kv, clock=self.clock, logger=logger)
        self.device = self.local.device
        self.sessions = SessionRecorder(store, clock=self.clock, logger=logger)
        self.migration = MigrationService(store, self.local, families=self.families, logger=logger)
        self.last_migration: Optional[MigrationReport] = None
        self._gate: Optional[AccessGate] = None

    # ========================================================================
    # Family association
    # ========================================================================

    @property
    def family_id(self) -> Optional[str]:
        return self.device.family_id

    @property
    def in_family(self) -> bool:
        return self.family_id is not None

    async def setup_family(self, email: Optional[str] = None) -> Tuple[str, str]:
        """Create a family, switch this device to it and bring local data along."""
        family_id, join_code = await self.families.create_family(email)
        await self._enter_family(family_id)
        return family_id, join_code

    async def join_family(self, code: str) -> Optional[str]:
        """Join by code. None (device unchanged) if no family uses the code."""
        family_id = await self.families.join_family(code)
        if family_id is None:
            return None
        await self._enter_family(family_id)
        return family_id

    async def _enter_family(self, family_id: str) -> None:
        # The family pointer is stored first; a failed migration can be retried
        # later with retry_migration() while the device already syncs.
        self.device.set_family_id(family_id)
        self._gate = None
        self.last_migration = await self.migration.migrate_if_needed(family_id)

    async def retry_migration(self) -> Optional[MigrationReport]:
        if not self.in_family:
            return None
        self.last_migration = await self.migration.migrate_if_needed(self.family_id)
        return self.last_migration

    def leave_family(self) -> None:
        """Go back to local-only mode. Family data stays in the shared store."""
        if self.family_id:
            logger.info(f"Device leaving family {self.family_id[:8]}")
        self.device.set_family_id(None)
        self.device.set_active_profile(None)
        self._gate = None

    # ========================================================================
    # Family-scoped services
    # ========================================================================

    def _require_family(self) -> str:
        if not self.family_id:
            raise RuntimeError("This device has not joined a family")
        return self.family_id

    @property
    def gate(self) -> AccessGate:
        """The PIN gate for the current family (one per device session)."""
        family_id = self._require_family()
        if self._gate is None or self._gate.family_id != family_id:
            self._gate = AccessGate(self.families, family_id)
        return self._gate

    def profiles(self) -> ProfileStore:
        return ProfileStore(self.store, self._require_family(), device=self.device, clock=self.clock)

    def word_lists(self) -> WordListStore:
        return WordListStore(self.store, self._require_family(), clock=self.clock)

    # ========================================================================
    # Active profile
    # ========================================================================

    @property
    def active_profile_id(self) -> Optional[str]:
        return self.device.active_profile_id

    def select_profile(self, profile: Optional[Profile]) -> None:
        self.device.set_active_profile(profile)

    # ========================================================================
    # Practice
    # ========================================================================

    async def record_session(self, session: Session, profile_id: Optional[str] = None) -> Optional[int]:
        """
        Record a finished session for profile_id (default: the active profile).

        Returns the profile's streak after the session, or None for
        anonymous practice.
        """
        if profile_id is None:
            profile_id = self.active_profile_id

        if not self.in_family:
            return await self.local.record_session(session, profile_id)

        stored = await self.sessions.record(self.family_id, session, profile_id)
        if not stored.profile_id:
            return None
        return await self.sessions.streaks(self.family_id).read(stored.profile_id)

    async def get_streak(self, profile_id: str) -> int:
        if not self.in_family:
            return await self.local.get_streak(profile_id)
        return await self.sessions.streaks(self.family_id).read(profile_id)
