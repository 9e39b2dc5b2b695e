"""
Parent PIN hashing

The PIN is a friction gate that keeps children out of the admin screens. It
is not account security. It is still stored as a salted PBKDF2 hash so the
family record never holds it in the clear.
"""

import hashlib
import hmac
import secrets
from typing import Optional, Tuple

PBKDF2_ITERATIONS = 100_000


def hash_pin(pin: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """Return (hash_hex, salt_hex) for a PIN, drawing a fresh salt if none given."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", pin.encode("utf-8"), bytes.fromhex(salt), PBKDF2_ITERATIONS)
    return digest.hex(), salt


def check_pin(candidate: str, pin_hash: str, salt: str) -> bool:
    """Constant-time comparison of a candidate PIN against a stored hash."""
    candidate_hash, _ = hash_pin(candidate, salt)
    return hmac.compare_digest(candidate_hash, pin_hash)
