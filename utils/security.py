"""
security helpers:
- Argon2 password hashing via argon2-cffi
- sha256 fingerprints for tokens that are persisted (sessions, reset tokens, OTPs)
- random one-time secrets
"""
from __future__ import annotations

import hashlib
import secrets
import uuid

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

ph = PasswordHasher()

# verified against when the email is unknown, so a miss costs the same as a hit
_DUMMY_HASH = ph.hash("dummy-password-for-timing")


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext password using argon2
    """
    if not password_hash:
        try:
            ph.verify(_DUMMY_HASH, password)
        except VerificationError:
            pass
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return uuid.uuid4().hex


def fingerprint(token: str) -> str:
    """sha256 hex digest used to store and look up tokens without keeping them."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def generate_otp() -> str:
    """Six random digits."""
    return f"{secrets.randbelow(900000) + 100000}"
