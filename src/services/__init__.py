"""Services package for Spelling Word Collector sync"""

from .errors import (
    SpellingSyncError,
    InvalidInputError,
    IncorrectPinError,
    StoreUnavailableError,
    MigrationError,
    MailDeliveryError,
    SentenceGenerationError,
)
from .clock import Clock, FixedClock
from .store import DocumentStore, InMemoryDocumentStore
from .firebase import FirebaseStore
from .join_code import generate_join_code, normalize_join_code
from .family_service import FamilyAccountService
from .access_gate import AccessGate, GateState
from .profile_service import ProfileStore
from .word_list_service import WordListStore
from .streaks import StreakEngine, DocumentStreakBackend, LocalStreakBackend
from .session_service import SessionRecorder
from .local_store import (
    LocalKeyValueStore,
    MemoryKeyValueStore,
    JsonFileKeyValueStore,
    DeviceState,
    LocalSpellingStore,
)
from .migration import MigrationService, MigrationReport
from .mail import MailService
from .sentences import SentenceGenerator
from .logger import SpellingLogger, get_logger, init_logger

__all__ = [
    # Errors
    "SpellingSyncError",
    "InvalidInputError",
    "IncorrectPinError",
    "StoreUnavailableError",
    "MigrationError",
    "MailDeliveryError",
    "SentenceGenerationError",
    # Storage
    "Clock",
    "FixedClock",
    "DocumentStore",
    "InMemoryDocumentStore",
    "FirebaseStore",
    # Family sync
    "generate_join_code",
    "normalize_join_code",
    "FamilyAccountService",
    "AccessGate",
    "GateState",
    "ProfileStore",
    "WordListStore",
    "StreakEngine",
    "DocumentStreakBackend",
    "LocalStreakBackend",
    "SessionRecorder",
    # Device-local mode
    "LocalKeyValueStore",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "DeviceState",
    "LocalSpellingStore",
    "MigrationService",
    "MigrationReport",
    # Collaborators
    "MailService",
    "SentenceGenerator",
    # Logging
    "SpellingLogger",
    "get_logger",
    "init_logger",
]
