"""
Practice Models for Spelling Word Collector

Word lists are edited by parents; sessions are written once when a child
finishes a practice run and never change afterwards.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Dict, List, Optional
from datetime import datetime
from enum import Enum

from src.config.limits import (
    MAX_WORDS_PER_LIST,
    SENTENCE_MAX_LENGTH,
    WORD_MAX_LENGTH,
)
from src.models.profiles import MigrationMarker, StoredRecord


class PracticeMode(str, Enum):
    """How the words were practiced"""
    STANDARD = "standard"   # Listen and type the word
    SCRAMBLE = "scramble"   # Unscramble the letters


def clean_words(words: List[str]) -> List[str]:
    """Trim each word and drop blanks, keeping order and duplicates."""
    return [w.strip() for w in words if w and w.strip()]


def clean_sentences(sentences: Dict[str, str], words: List[str]) -> Dict[str, str]:
    """Keep only non-blank sentences for words that are on the list."""
    on_list = set(words)
    return {
        word: sentence.strip()
        for word, sentence in (sentences or {}).items()
        if word in on_list and sentence and sentence.strip()
    }


# ============================================================================
# Word Lists
# ============================================================================

class WordList(StoredRecord):
    """A named, ordered list of spelling words with optional example sentences"""
    # Name limits are checked on create/update; stored names are read as they are
    name: str
    words: List[str] = Field(default_factory=list)
    sentences: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    migrated_from: Optional[MigrationMarker] = None


class WordListCreate(BaseModel):
    """Request model for creating a word list"""
    name: str = Field(..., max_length=200)
    words: List[str] = Field(default_factory=list, max_length=MAX_WORDS_PER_LIST)
    sentences: Dict[str, str] = Field(default_factory=dict)

    @field_validator("words")
    @classmethod
    def _word_length(cls, words: List[str]) -> List[str]:
        for word in words:
            if len(word) > WORD_MAX_LENGTH:
                raise ValueError(f"Word too long (max {WORD_MAX_LENGTH} characters): {word[:20]}...")
        return words

    @field_validator("sentences")
    @classmethod
    def _sentence_length(cls, sentences: Dict[str, str]) -> Dict[str, str]:
        for sentence in sentences.values():
            if len(sentence) > SENTENCE_MAX_LENGTH:
                raise ValueError(f"Sentence too long (max {SENTENCE_MAX_LENGTH} characters)")
        return sentences


class WordListUpdate(BaseModel):
    """Request model for updating a word list"""
    name: Optional[str] = Field(default=None, max_length=200)
    words: Optional[List[str]] = Field(default=None, max_length=MAX_WORDS_PER_LIST)
    sentences: Optional[Dict[str, str]] = None


# ============================================================================
# Practice Sessions
# ============================================================================

class Session(StoredRecord):
    """
    One completed practice run.

    typed_words[i] is what the learner typed for words[i]. profile_id is
    None for anonymous practice. Sessions are append-only.
    """
    list_name: Optional[str] = None
    words: List[str] = Field(default_factory=list)
    typed_words: List[str] = Field(default_factory=list)
    theme: str = "garden"
    mode: PracticeMode = PracticeMode.STANDARD
    profile_id: Optional[str] = None
    completed_at: datetime = Field(default_factory=datetime.now)
    migrated_from: Optional[MigrationMarker] = None

    @model_validator(mode="after")
    def _typed_matches_words(self):
        if len(self.typed_words) != len(self.words):
            raise ValueError(
                f"typedWords has {len(self.typed_words)} entries for {len(self.words)} words"
            )
        return self


class SessionCreate(BaseModel):
    """Request model for recording a finished session"""
    list_name: Optional[str] = Field(default=None, alias="listName", max_length=200)
    words: List[str] = Field(..., max_length=MAX_WORDS_PER_LIST)
    typed_words: List[str] = Field(..., alias="typedWords", max_length=MAX_WORDS_PER_LIST)
    theme: str = Field(default="garden", max_length=40)
    mode: PracticeMode = PracticeMode.STANDARD
    profile_id: Optional[str] = Field(default=None, alias="profileId")

    model_config = {"populate_by_name": True}


class SentenceRequest(BaseModel):
    """Request model for example sentence generation"""
    words: List[str] = Field(..., min_length=1)
