"""
Security utilities for authentication.

This module provides:
- Password hashing and verification using Argon2id
- Verification of legacy bcrypt hashes (upgraded to Argon2 on login)
- A dummy hash so failed lookups cost the same as failed passwords
- Session token generation and hashing
"""

import base64
import hashlib
import re
import secrets
from functools import lru_cache

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from aloha.config import settings

LEGACY_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

_hasher = PasswordHasher(
    time_cost=settings.ARGON2_TIME_COST,
    memory_cost=settings.ARGON2_MEMORY_COST,
    parallelism=settings.ARGON2_PARALLELISM,
)


def validate_password_strength(password: str) -> tuple[bool, str | None]:
    """
    Validate password meets security requirements.

    Requirements:
    - At least 8 characters
    - Contains at least one uppercase letter
    - Contains at least one lowercase letter
    - Contains at least one digit
    - Contains at least one special character

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"

    if not re.search(r"[A-Z]", password):
        return False, "Password must contain at least one uppercase letter"

    if not re.search(r"[a-z]", password):
        return False, "Password must contain at least one lowercase letter"

    if not re.search(r"\d", password):
        return False, "Password must contain at least one digit"

    if not re.search(r'[!@#$%^&*(),.?":{}|<>_\-+=\[\]\\\/~`]', password):
        return False, "Password must contain at least one special character"

    return True, None


def get_password_hash(password: str) -> str:
    """
    Hash a password using Argon2id.

    The encoded result embeds the salt and the cost parameters, so
    verification needs nothing else.
    """
    return _hasher.hash(password)


def is_legacy_hash(hashed_password: str) -> bool:
    """Return True for hashes stored before the move to Argon2."""
    return hashed_password.startswith(LEGACY_BCRYPT_PREFIXES)


def _prepare_password_for_bcrypt(password: str) -> str:
    """
    Prepare password for bcrypt by handling long passwords.

    Bcrypt has a 72 byte limit. Longer passwords were SHA256 hashed and
    base64 encoded before hashing, so verification must do the same.
    """
    password_bytes = password.encode("utf-8")

    if len(password_bytes) <= 72:
        return password

    hashed = hashlib.sha256(password_bytes).digest()
    return base64.b64encode(hashed).decode("ascii")


def _verify_legacy_password(plain_password: str, hashed_password: str) -> bool:
    prepared_password = _prepare_password_for_bcrypt(plain_password)
    try:
        return bcrypt.checkpw(prepared_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a stored hash.

    Accepts Argon2 hashes and legacy bcrypt hashes. Malformed hashes never
    verify.
    """
    if is_legacy_hash(hashed_password):
        return _verify_legacy_password(plain_password, hashed_password)

    try:
        return _hasher.verify(hashed_password, plain_password)
    except (VerifyMismatchError, InvalidHashError, VerificationError):
        return False


def password_needs_rehash(hashed_password: str) -> bool:
    """True if the hash is legacy or uses outdated Argon2 parameters."""
    if is_legacy_hash(hashed_password):
        return True
    try:
        return _hasher.check_needs_rehash(hashed_password)
    except InvalidHashError:
        return True


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """
    Argon2 hash of a random password nobody knows.

    Verified against when a login names an unknown user, so that path costs
    one full hash verification like a wrong password does.
    """
    return get_password_hash(secrets.token_urlsafe(32))


def create_session_token() -> str:
    """
    Create a cryptographically secure session token.

    Returns:
        URL-safe random token string (32 random bytes, 43 characters)
    """
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    """
    Digest used as the storage key for a session token.

    The token itself is never written to the session store.
    """
    return hashlib.sha256(token.encode()).hexdigest()
