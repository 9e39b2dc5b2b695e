"""
Models package - Pydantic data models for Spelling Word Collector

Re-exports all models for cleaner imports:
    from src.models import Family, Profile, StreakRecord
    from src.models import WordList, Session, PracticeMode
"""

from src.models.profiles import (
    StoredRecord,
    MigrationMarker,
    # Family
    Family,
    FamilyCreate,
    FamilyJoin,
    EmailRequest,
    PinRequest,
    # Profiles
    Profile,
    ProfileCreate,
    # Streaks
    StreakRecord,
)
from src.models.models import (
    PracticeMode,
    clean_words,
    clean_sentences,
    # Word lists
    WordList,
    WordListCreate,
    WordListUpdate,
    # Sessions
    Session,
    SessionCreate,
    SentenceRequest,
)
