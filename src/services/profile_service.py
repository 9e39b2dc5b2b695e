"""Child profiles within a family."""

from typing import List, Optional
import logging

from src.models import Profile
from src.services import paths
from src.services.clock import Clock
from src.services.store import DocumentStore
from src.services.validation_service import validate_name

logger = logging.getLogger(__name__)


class ProfileStore:
    """Profiles of one family, oldest first."""

    def __init__(self, store: DocumentStore, family_id: str, device=None, clock: Optional[Clock] = None):
        """
        Args:
            store: Shared document store
            family_id: Family that owns the profiles
            device: Optional DeviceState whose active-profile pointer is
                cleared when that profile is deleted
            clock: Clock for creation timestamps
        """
        self.store = store
        self.family_id = family_id
        self.device = device
        self.clock = clock or Clock()

    async def create(self, name: str) -> Profile:
        profile = Profile(name=validate_name(name), created_at=self.clock.now())
        key = await self.store.push(paths.profiles(self.family_id), profile.to_record())
        return profile.model_copy(update={"id": key})

    async def list(self) -> List[Profile]:
        docs = await self.store.list(paths.profiles(self.family_id))
        profiles = [Profile.from_record(key, data) for key, data in docs.items()]
        return sorted(profiles, key=lambda p: (p.created_at.timestamp(), p.id))

    async def get(self, profile_id: str) -> Optional[Profile]:
        data = await self.store.get(paths.profile(self.family_id, profile_id))
        return Profile.from_record(profile_id, data) if data else None

    async def delete(self, profile_id: str) -> None:
        """
        Delete a profile. Its sessions and streak stay in the store; the
        device forgets it as the active profile.
        """
        await self.store.delete(paths.profile(self.family_id, profile_id))
        if self.device and self.device.clear_active_profile_if(profile_id):
            logger.info(f"Cleared active profile {profile_id[:8]} after delete")
