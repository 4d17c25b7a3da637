"""Tests for password hashing and session token helpers."""

import bcrypt
import pytest

from aloha.core.security import (
    create_session_token,
    dummy_password_hash,
    get_password_hash,
    hash_session_token,
    is_legacy_hash,
    password_needs_rehash,
    validate_password_strength,
    verify_password,
)


@pytest.mark.unit
class TestPasswordHashing:
    def test_hash_is_argon2id_and_salted(self):
        first = get_password_hash("TestPassword123!")
        second = get_password_hash("TestPassword123!")

        assert first.startswith("$argon2id$")
        assert first != second  # fresh salt every time
        assert "TestPassword123!" not in first

    def test_verify_correct_and_wrong_password(self):
        hashed = get_password_hash("TestPassword123!")

        assert verify_password("TestPassword123!", hashed) is True
        assert verify_password("WrongPassword123!", hashed) is False

    @pytest.mark.parametrize("stored", ["", "not-a-hash", "$argon2id$garbage", "$2b$broken"])
    def test_malformed_hash_never_verifies(self, stored: str):
        assert verify_password("TestPassword123!", stored) is False

    def test_fresh_hash_needs_no_rehash(self):
        assert password_needs_rehash(get_password_hash("TestPassword123!")) is False

    def test_dummy_hash_is_stable_and_unguessable(self):
        assert dummy_password_hash() == dummy_password_hash()
        assert verify_password("", dummy_password_hash()) is False


@pytest.mark.unit
class TestLegacyHashes:
    """Hashes stored before the move to Argon2 still verify."""

    def test_bcrypt_hash_verifies_and_needs_rehash(self):
        legacy = bcrypt.hashpw(b"OldPassword1!", bcrypt.gensalt(rounds=4)).decode()

        assert is_legacy_hash(legacy)
        assert verify_password("OldPassword1!", legacy) is True
        assert verify_password("OldPassword2!", legacy) is False
        assert password_needs_rehash(legacy) is True

    def test_long_password_was_prehashed(self):
        """Passwords over 72 bytes were SHA256+base64 encoded before bcrypt."""
        import base64
        import hashlib

        long_password = "A1!" + "x" * 100
        prepared = base64.b64encode(hashlib.sha256(long_password.encode()).digest())
        legacy = bcrypt.hashpw(prepared, bcrypt.gensalt(rounds=4)).decode()

        assert verify_password(long_password, legacy) is True
        assert verify_password(long_password[:-1], legacy) is False

    def test_argon2_hash_is_not_legacy(self):
        assert not is_legacy_hash(get_password_hash("TestPassword123!"))


@pytest.mark.unit
class TestPasswordStrength:
    @pytest.mark.parametrize(
        "password, message",
        [
            ("Sh0rt!", "at least 8 characters"),
            ("lowercase123!", "uppercase"),
            ("UPPERCASE123!", "lowercase"),
            ("NoDigitsHere!", "digit"),
            ("NoSpecial123", "special character"),
        ],
    )
    def test_weak_passwords_rejected(self, password: str, message: str):
        is_valid, error = validate_password_strength(password)
        assert is_valid is False
        assert error is not None and message in error

    def test_strong_password_accepted(self):
        assert validate_password_strength("TestPassword123!") == (True, None)


@pytest.mark.unit
class TestSessionTokens:
    def test_tokens_are_random_and_url_safe(self):
        tokens = {create_session_token() for _ in range(50)}

        assert len(tokens) == 50
        for token in tokens:
            assert len(token) == 43
            assert all(c.isalnum() or c in "-_" for c in token)

    def test_token_digest_is_deterministic_and_hides_token(self):
        token = create_session_token()
        digest = hash_session_token(token)

        assert digest == hash_session_token(token)
        assert len(digest) == 64
        assert token not in digest
