"""Configuration package for Spelling Word Collector"""

from .settings import Settings, get_settings
from .limits import (
    JOIN_CODE_LENGTH,
    JOIN_CODE_ALPHABET,
    JOIN_CODE_ATTEMPTS,
    NAME_MIN_LENGTH,
    NAME_MAX_LENGTH,
    PIN_MIN_LENGTH,
    PIN_MAX_LENGTH,
    MAX_FAMILY_EMAILS,
    MAX_WORDS_PER_LIST,
    WORD_MAX_LENGTH,
    SENTENCE_MAX_LENGTH,
    MAX_SENTENCE_BATCH,
)

__all__ = [
    "Settings",
    "get_settings",
    "JOIN_CODE_LENGTH",
    "JOIN_CODE_ALPHABET",
    "JOIN_CODE_ATTEMPTS",
    "NAME_MIN_LENGTH",
    "NAME_MAX_LENGTH",
    "PIN_MIN_LENGTH",
    "PIN_MAX_LENGTH",
    "MAX_FAMILY_EMAILS",
    "MAX_WORDS_PER_LIST",
    "WORD_MAX_LENGTH",
    "SENTENCE_MAX_LENGTH",
    "MAX_SENTENCE_BATCH",
]
