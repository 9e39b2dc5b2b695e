"""
Error types for the family sync layer.

Not-found is never an exception here: lookups return None.
"""

from typing import Optional


class SpellingSyncError(Exception):
    """Base class for errors surfaced to callers of the sync services."""

    # Short message safe to show to a parent
    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str = "", user_message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if user_message:
            self.user_message = user_message


class InvalidInputError(SpellingSyncError):
    """Malformed input, rejected before any store call."""

    def __init__(self, message: str):
        super().__init__(message, user_message=message)


class IncorrectPinError(SpellingSyncError):
    """Wrong parent PIN. The gate stays locked; the user may try again."""

    user_message = "Incorrect PIN"


class StoreUnavailableError(SpellingSyncError):
    """The document store could not be reached or rejected the call."""

    user_message = "Could not reach the family store. Please try again."


class MigrationError(SpellingSyncError):
    """Copying device-local data into a family did not finish."""

    user_message = "Could not move this device's data into the family. Please try again."


class MailDeliveryError(SpellingSyncError):
    """The join-code email could not be sent."""

    user_message = "Could not send the email."


class SentenceGenerationError(SpellingSyncError):
    """The example sentence service failed or answered with garbage."""

    user_message = "Could not generate example sentences."
