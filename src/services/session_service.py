"""
Practice session recording

Sessions are appended and never changed. A session that belongs to a profile
then credits that profile's streak; anonymous sessions touch no streak.
"""

from typing import List, Optional

from pydantic import ValidationError

from src.models import Session
from src.services import paths
from src.services.clock import Clock
from src.services.errors import InvalidInputError
from src.services.store import DocumentStore
from src.services.streaks import DocumentStreakBackend, StreakEngine


def family_streaks(store: DocumentStore, family_id: str, clock: Optional[Clock] = None, logger=None) -> StreakEngine:
    """StreakEngine over a family's streak records in the shared store."""
    return StreakEngine(DocumentStreakBackend(store, family_id), clock=clock, logger=logger)


def build_session(**fields) -> Session:
    """Session from loose fields, turning model errors into InvalidInputError."""
    try:
        return Session(**fields)
    except ValidationError as e:
        first = e.errors()[0]
        raise InvalidInputError(f"Invalid session: {first.get('msg', 'bad value')}") from None


class SessionRecorder:
    """Writes finished sessions for families in the shared store."""

    def __init__(self, store: DocumentStore, clock: Optional[Clock] = None, logger=None):
        self.store = store
        self.clock = clock or Clock()
        self.logger = logger

    def streaks(self, family_id: str) -> StreakEngine:
        return family_streaks(self.store, family_id, clock=self.clock, logger=self.logger)

    async def record(self, family_id: str, session: Session, profile_id: Optional[str]) -> Session:
        """
        Append the session (stamped now) and, for a profile, credit its streak.

        No rollback: if the streak update fails the session stays recorded and
        the error propagates.
        """
        stored = session.model_copy(update={
            "id": None,
            "profile_id": profile_id or None,
            "completed_at": self.clock.now(),
            "migrated_from": None,
        })
        key = await self.store.push(paths.sessions(family_id), stored.to_record())
        stored = stored.model_copy(update={"id": key})

        if self.logger:
            self.logger.session_recorded(family_id, stored.profile_id, len(stored.words))

        if stored.profile_id:
            await self.streaks(family_id).update(stored.profile_id)
        return stored

    async def load(self, family_id: str, profile_id: Optional[str] = None) -> List[Session]:
        """Session history, newest first, optionally for one profile."""
        collection = paths.sessions(family_id)
        if profile_id:
            docs = await self.store.find(collection, "profileId", profile_id)
        else:
            docs = await self.store.list(collection)
        sessions = [Session.from_record(key, data) for key, data in docs.items()]
        return sorted(sessions, key=lambda s: s.completed_at.timestamp(), reverse=True)
