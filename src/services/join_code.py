"""
Join codes

Six characters from an alphabet without look-alikes (no 0/O, no 1/I), so a
parent can read a code off one screen and type it on another. 32^6 is just
over a billion codes; uniqueness is checked by the caller, not guaranteed
here.
"""

import random
import secrets
from typing import Optional

from src.config.limits import JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH

_system_random = secrets.SystemRandom()


def generate_join_code(rng: Optional[random.Random] = None) -> str:
    """Draw a join code uniformly from JOIN_CODE_ALPHABET."""
    rng = rng or _system_random
    return "".join(rng.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


def normalize_join_code(code: str) -> str:
    """Codes match case-insensitively and ignore surrounding/inner spaces and dashes."""
    return "".join(code.split()).replace("-", "").upper()


def is_well_formed(code: str) -> bool:
    """True if a normalized code could have come from generate_join_code."""
    return len(code) == JOIN_CODE_LENGTH and all(ch in JOIN_CODE_ALPHABET for ch in code)
