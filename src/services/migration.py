"""
Local-to-family migration

Copies a device's local-only data (word lists, profiles, sessions, PIN and
streaks) into a family the first time the device joins one.

Every copied record gets a deterministic key built from the device's batch id
and the record's local id, plus a migratedFrom marker. A retry after a
partial failure therefore overwrites what the first attempt already wrote
instead of creating duplicates. The device flag is only set once everything
has been copied.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import re

from src.models import MigrationMarker, Profile, Session, StreakRecord, WordList
from src.services import paths
from src.services.errors import MigrationError
from src.services.local_store import LocalSpellingStore
from src.services.store import DocumentStore

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def migrated_key(batch_id: str, kind: str, source_id: str) -> str:
    """Store key for a record copied from the device: m-{batch}-{kind}-{source}."""
    return f"m-{batch_id}-{kind}-{_UNSAFE_KEY_CHARS.sub('_', str(source_id))}"


@dataclass
class MigrationReport:
    """What one migration run copied."""
    family_id: str
    batch_id: str
    word_lists: int = 0
    profiles: int = 0
    sessions: int = 0
    streaks: int = 0
    pin: bool = False
    profile_map: Dict[str, str] = field(default_factory=dict)

    def counts(self) -> Dict[str, int]:
        return {
            "wordLists": self.word_lists,
            "profiles": self.profiles,
            "sessions": self.sessions,
            "streaks": self.streaks,
            "pin": int(self.pin),
        }


class MigrationService:
    """Moves a device's local data into a family's shared store."""

    def __init__(self, store: DocumentStore, local: LocalSpellingStore, families=None, logger=None):
        """
        Args:
            store: Shared document store
            local: The device's local-only store (also holds the migration flag)
            families: FamilyAccountService used to set the migrated PIN
            logger: Optional SpellingLogger
        """
        self.store = store
        self.local = local
        self.families = families
        self.logger = logger

    def has_local_data(self) -> bool:
        return self.local.has_data()

    def has_migrated(self) -> bool:
        return self.local.device.has_migrated()

    async def migrate(self, target_family_id: str) -> MigrationReport:
        """
        Copy all local data into the family and set the migration flag.

        Local data is never modified. Any failure raises MigrationError and
        leaves the flag unset; calling again resumes under the same batch id.
        """
        batch_id = self.local.device.migration_batch_id()
        report = MigrationReport(family_id=target_family_id, batch_id=batch_id)
        if self.logger:
            self.logger.migration_started(target_family_id, batch_id)

        try:
            if not await self.store.get(paths.family(target_family_id)):
                raise MigrationError(f"Family {target_family_id} does not exist")

            # Unreadable local records fail the run before anything is written
            word_lists = self.local.load_word_lists(strict=True)
            profiles = self.local.load_profiles(strict=True)
            sessions = self.local.load_sessions(strict=True)

            await self._copy_word_lists(report, word_lists)
            await self._copy_profiles(report, profiles)
            await self._copy_sessions(report, sessions)
            await self._copy_streaks(report)
            await self._copy_pin(report)
        except MigrationError as e:
            if self.logger:
                self.logger.migration_failed(target_family_id, e)
            raise
        except Exception as e:
            if self.logger:
                self.logger.migration_failed(target_family_id, e)
            raise MigrationError(f"Migration into family {target_family_id} failed: {e}") from e

        self._remap_active_profile(report.profile_map)
        self.local.device.mark_migrated()

        logger.info(f"Migrated batch {batch_id} into family {target_family_id}: {report.counts()}")
        if self.logger:
            self.logger.migration_completed(target_family_id, report.counts())
        return report

    async def migrate_if_needed(self, target_family_id: str) -> Optional[MigrationReport]:
        """Run migrate() only when there is local data and it has not run yet."""
        if self.has_migrated() or not self.has_local_data():
            return None
        return await self.migrate(target_family_id)

    # ========================================================================
    # Steps
    # ========================================================================

    def _marker(self, batch_id: str, source_id: str) -> MigrationMarker:
        return MigrationMarker(batch_id=batch_id, source_id=source_id)

    async def _copy_word_lists(self, report: MigrationReport, word_lists: List[WordList]) -> None:
        for word_list in word_lists:
            key = migrated_key(report.batch_id, "list", word_list.id)
            copied = word_list.model_copy(update={
                "migrated_from": self._marker(report.batch_id, word_list.id),
            })
            await self.store.set(paths.word_list(report.family_id, key), copied.to_record())
            report.word_lists += 1

    async def _copy_profiles(self, report: MigrationReport, profiles: List[Profile]) -> None:
        for profile in profiles:
            key = migrated_key(report.batch_id, "profile", profile.id)
            copied = profile.model_copy(update={
                "migrated_from": self._marker(report.batch_id, profile.id),
            })
            await self.store.set(paths.profile(report.family_id, key), copied.to_record())
            report.profile_map[profile.id] = key
            report.profiles += 1

    async def _copy_sessions(self, report: MigrationReport, sessions: List[Session]) -> None:
        # Sessions keep their own completedAt and never credit a streak here;
        # streak records are carried over as they are in _copy_streaks.
        for session in sessions:
            key = migrated_key(report.batch_id, "session", session.id)
            copied = session.model_copy(update={
                "profile_id": report.profile_map.get(session.profile_id) if session.profile_id else None,
                "migrated_from": self._marker(report.batch_id, session.id),
            })
            await self.store.set(paths.session(report.family_id, key), copied.to_record())
            report.sessions += 1

    async def _copy_streaks(self, report: MigrationReport) -> None:
        for local_id, raw in self.local.raw_streaks().items():
            new_id = report.profile_map.get(local_id)
            if not new_id or not isinstance(raw, dict):
                continue
            record = StreakRecord.from_record(raw).to_record()

            def _keep_existing(current: Optional[Dict[str, Any]], record=record):
                return current if current else record

            await self.store.transaction(paths.streak(report.family_id, new_id), _keep_existing)
            report.streaks += 1

    async def _copy_pin(self, report: MigrationReport) -> None:
        pin = self.local.get_pin()
        if not pin:
            return
        if not self.families:
            raise MigrationError("A local PIN exists but no family service was given to store it")
        if not await self.families.set_pin(report.family_id, pin, enforce_format=False):
            raise MigrationError(f"Family {report.family_id} disappeared during migration")
        report.pin = True

    def _remap_active_profile(self, profile_map: Dict[str, str]) -> None:
        device = self.local.device
        active = device.active_profile
        if active and active["id"] in profile_map:
            device.set_active_profile(Profile(id=profile_map[active["id"]], name=active["name"]))
