"""
Input validation for the family sync services.

Everything here runs before any store call and raises InvalidInputError with
a message short enough to show a parent as-is.
"""

from typing import Dict, List, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from src.config.limits import (
    JOIN_CODE_LENGTH,
    MAX_WORDS_PER_LIST,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PIN_MAX_LENGTH,
    PIN_MIN_LENGTH,
    SENTENCE_MAX_LENGTH,
    WORD_MAX_LENGTH,
)
from src.models import clean_sentences, clean_words
from src.services.errors import InvalidInputError
from src.services.join_code import normalize_join_code

_email_adapter = TypeAdapter(EmailStr)


def validate_name(name: Optional[str], what: str = "Name") -> str:
    """Trimmed display name within NAME_MIN_LENGTH..NAME_MAX_LENGTH."""
    cleaned = (name or "").strip()
    if len(cleaned) < NAME_MIN_LENGTH:
        raise InvalidInputError(f"{what} cannot be empty")
    if len(cleaned) > NAME_MAX_LENGTH:
        raise InvalidInputError(f"{what} must be at most {NAME_MAX_LENGTH} characters")
    return cleaned


def validate_email(email: Optional[str]) -> str:
    """Trimmed email address; anything that is not an address is rejected."""
    cleaned = (email or "").strip()
    if not cleaned:
        raise InvalidInputError("Email address is required")
    try:
        _email_adapter.validate_python(cleaned)
    except ValidationError:
        raise InvalidInputError("Invalid email address") from None
    return cleaned


def validate_join_code(code: Optional[str]) -> str:
    """
    Normalized join code (uppercase, no spaces).

    Only the length is checked: a code with characters that are never drawn
    simply matches no family.
    """
    normalized = normalize_join_code(code or "")
    if len(normalized) != JOIN_CODE_LENGTH:
        raise InvalidInputError(f"Join code must be {JOIN_CODE_LENGTH} characters")
    return normalized


def validate_pin(pin: Optional[str]) -> str:
    """Trimmed PIN of digits within PIN_MIN_LENGTH..PIN_MAX_LENGTH."""
    cleaned = (pin or "").strip()
    if not cleaned:
        raise InvalidInputError("PIN cannot be empty")
    if not cleaned.isdigit():
        raise InvalidInputError("PIN must contain digits only")
    if not PIN_MIN_LENGTH <= len(cleaned) <= PIN_MAX_LENGTH:
        raise InvalidInputError(f"PIN must be {PIN_MIN_LENGTH}-{PIN_MAX_LENGTH} digits")
    return cleaned


def validate_words(words: Optional[List[str]]) -> List[str]:
    """Cleaned word list (trimmed, blanks dropped) within list limits."""
    cleaned = clean_words(words or [])
    if not cleaned:
        raise InvalidInputError("Add at least one word")
    if len(cleaned) > MAX_WORDS_PER_LIST:
        raise InvalidInputError(f"A list can hold at most {MAX_WORDS_PER_LIST} words")
    for word in cleaned:
        if len(word) > WORD_MAX_LENGTH:
            raise InvalidInputError(f"Words must be at most {WORD_MAX_LENGTH} characters")
    return cleaned


def validate_sentences(sentences: Optional[Dict[str, str]], words: List[str]) -> Dict[str, str]:
    """Sentences for words on the list only; over-long sentences are rejected."""
    cleaned = clean_sentences(sentences or {}, words)
    for sentence in cleaned.values():
        if len(sentence) > SENTENCE_MAX_LENGTH:
            raise InvalidInputError(f"Sentences must be at most {SENTENCE_MAX_LENGTH} characters")
    return cleaned
