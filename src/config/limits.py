"""
Centralized Validation Limits

All input limits in one place for consistency.
Import these in both API routes and Pydantic models.
"""

# =============================================================================
# JOIN CODES
# =============================================================================

# Join code length (shown to parents, typed on the second device)
JOIN_CODE_LENGTH = 6

# No 0/O or 1/I: codes get read aloud and copied by hand
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Fresh codes drawn when a generated code is already taken
JOIN_CODE_ATTEMPTS = 5

# =============================================================================
# FAMILY FIELDS
# =============================================================================

# Profile and word list names
NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 50

# Parent PIN
PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 12

# Contact emails per family
MAX_FAMILY_EMAILS = 5

# =============================================================================
# WORD LISTS
# =============================================================================

MAX_WORDS_PER_LIST = 100
WORD_MAX_LENGTH = 40
SENTENCE_MAX_LENGTH = 300

# Words sent to the sentence generator in one call
MAX_SENTENCE_BATCH = 10
