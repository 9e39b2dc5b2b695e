"""
Parent PIN gate for admin actions

Reading lists and history is never gated. Creating, editing or deleting
lists, managing profiles, changing the PIN and managing contact emails go
through the gate:

    UNLOCKED  no PIN on the family, or the PIN was entered this session
    LOCKED    PIN set and not yet entered

A gated action while LOCKED is parked as the pending action. Entering the
right PIN unlocks the gate until the app restarts and runs the parked action
right away; a wrong PIN raises IncorrectPinError and runs nothing. The gate
lives in memory on one device and is never shared or persisted.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Optional
import logging

from src.services.errors import IncorrectPinError

logger = logging.getLogger(__name__)

GatedAction = Callable[[], Awaitable[Any]]


class GateState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class AccessGate:
    """Lazy PIN gate for one family on one device."""

    def __init__(self, families, family_id: str):
        """
        Args:
            families: FamilyAccountService that knows the family's PIN
            family_id: Family whose data the gated actions change
        """
        self.families = families
        self.family_id = family_id
        self._validated = False
        self._pending: Optional[GatedAction] = None

    async def state(self) -> GateState:
        """Current state. Checks the family for a PIN each time, so a PIN set elsewhere locks the gate."""
        if self._validated:
            return GateState.UNLOCKED
        if await self.families.has_pin(self.family_id):
            return GateState.LOCKED
        return GateState.UNLOCKED

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    async def require(self, action: GatedAction) -> Any:
        """
        Run action now if UNLOCKED and return its result.

        If LOCKED, park it (replacing any earlier parked action) and return None.
        """
        if await self.state() == GateState.UNLOCKED:
            return await action()
        self._pending = action
        return None

    async def submit_pin(self, pin: str) -> Any:
        """
        Check a PIN. On success unlock for the session and run the parked action
        (returning its result, or None if nothing was parked).
        """
        if not await self.families.verify_pin(self.family_id, pin):
            logger.info(f"Incorrect PIN for family {self.family_id[:8]}")
            raise IncorrectPinError("Incorrect PIN")

        self._validated = True
        action, self._pending = self._pending, None
        if action is None:
            return None
        return await action()

    def cancel(self) -> None:
        """Drop the parked action without running it."""
        self._pending = None

    async def change_pin(self, new_pin: str) -> Any:
        """
        Gated PIN change. Whoever sets the PIN knows it, so the gate stays
        unlocked for the rest of the session once the change goes through.
        """
        async def _set():
            result = await self.families.set_pin(self.family_id, new_pin)
            self._validated = True
            return result

        return await self.require(_set)
