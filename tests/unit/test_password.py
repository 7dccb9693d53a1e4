"""Password hashing and strength rules."""

import pytest

from streakbet.auth.password import PasswordStrengthError, hash_password, validate_password_strength, verify_password


class TestHashing:
    def test_hash_is_argon2id(self):
        assert hash_password("Streak1234").startswith("$argon2id$")

    def test_verify_roundtrip(self):
        hashed = hash_password("Streak1234")
        assert verify_password("Streak1234", hashed)
        assert not verify_password("Streak12345", hashed)

    def test_garbage_hash_does_not_raise(self):
        assert not verify_password("Streak1234", "not-a-hash")


class TestStrength:
    def test_valid(self):
        validate_password_strength("Streak1234")

    @pytest.mark.parametrize(
        ("password", "message"),
        [
            ("", "cannot be empty"),
            ("   ", "cannot be empty"),
            ("Ab1", "at least 8 characters"),
            ("12345678", "at least one letter"),
            ("abcdefgh", "at least one digit"),
            ("a1" * 100, "must not exceed 128"),
        ],
    )
    def test_rejected(self, password, message):
        with pytest.raises(PasswordStrengthError, match=message):
            validate_password_strength(password)
